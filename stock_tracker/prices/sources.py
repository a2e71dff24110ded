"""Price source interface and a local CSV-backed implementation."""

from __future__ import annotations

import os
from datetime import date
from typing import Protocol

from stock_tracker.errors import PriceSourceError
from stock_tracker.prices.data_loader import load_price_csv
from stock_tracker.prices.models import PriceSeries


class PriceSource(Protocol):
    def fetch_prices(self, ticker: str, start: date | None = None, end: date | None = None) -> PriceSeries:
        """Return the ticker's daily closes in ``[start, end]`` or raise PriceSourceError."""
        ...


def csv_file_name(ticker: str) -> str:
    # CRYPTO:SOL -> CRYPTO_SOL.csv
    return ticker.replace(":", "_").replace("/", "_") + ".csv"


class CsvPriceSource:
    """Reads ``<TICKER>.csv`` files exported by a download job."""

    def __init__(self, directory: str) -> None:
        self.directory = directory

    def path_for(self, ticker: str) -> str:
        return os.path.join(self.directory, csv_file_name(ticker))

    def fetch_prices(self, ticker: str, start: date | None = None, end: date | None = None) -> PriceSeries:
        path = self.path_for(ticker)
        if not os.path.exists(path):
            raise PriceSourceError(ticker, "NOT_FOUND", f"No price file for {ticker}.")
        try:
            series = load_price_csv(path, ticker)
        except ValueError as error:
            raise PriceSourceError(ticker, "BAD_RESPONSE", str(error)) from error
        return series.between(start, end)
