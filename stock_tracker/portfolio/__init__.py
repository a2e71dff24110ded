"""Portfolio valuation domain package."""

from stock_tracker.portfolio.aggregation import MonthlyTable, build_monthly_table
from stock_tracker.portfolio.models import PortfolioDefinition, PortfolioValuePoint, RankedEntry
from stock_tracker.portfolio.ranking import rank_portfolios
from stock_tracker.portfolio.valuation import compute_portfolio_values

__all__ = [
    "MonthlyTable",
    "PortfolioDefinition",
    "PortfolioValuePoint",
    "RankedEntry",
    "build_monthly_table",
    "compute_portfolio_values",
    "rank_portfolios",
]
