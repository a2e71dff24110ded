"""Daily price models, loaders and sources."""

from stock_tracker.prices.models import PricePoint, PriceSeries, collect_dates

__all__ = ["PricePoint", "PriceSeries", "collect_dates"]
