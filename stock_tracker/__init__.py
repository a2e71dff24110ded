"""Portfolio and stock price tracking over a calendar year."""

__version__ = "1.0.0"
