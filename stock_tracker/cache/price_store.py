"""File-backed store for downloaded daily closes.

Layout matches the ``stocks.json`` written by the download job::

    {"lastUpdated": "2025-03-01T12:00:00+00:00",
     "stocks": {"AAPL": [{"date": "2025-01-02", "price": 243.85}, ...]}}
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import date, datetime, timezone
from typing import Any, Mapping

from stock_tracker.errors import ConfigurationError, DataIntegrityError, PriceSourceError
from stock_tracker.prices.models import PriceSeries

LOGGER = logging.getLogger(__name__)


class JsonPriceStore:
    def __init__(self, path: str) -> None:
        self.path = path if os.path.isabs(path) else os.path.abspath(path)

    def _read(self) -> dict[str, Any]:
        if not os.path.exists(self.path):
            return {"lastUpdated": None, "stocks": {}}
        try:
            with open(self.path, encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError as error:
            raise ConfigurationError(
                f"Price store is not valid JSON: {self.path} ({error.msg}, line {error.lineno})"
            ) from error
        if not isinstance(data, dict) or not isinstance(data.get("stocks"), dict):
            raise ConfigurationError(f"Invalid price store structure: {self.path}")
        return data

    def _series(self, ticker: str, records: Any) -> PriceSeries:
        if not isinstance(records, list):
            raise PriceSourceError(ticker, "BAD_RESPONSE", f"Stored prices for {ticker} must be a list.")
        try:
            return PriceSeries.from_records(ticker, records)
        except DataIntegrityError:
            raise
        except (AttributeError, TypeError, ValueError) as error:
            raise PriceSourceError(ticker, "BAD_RESPONSE", f"Stored prices for {ticker} are unreadable: {error}") from error

    def _write(self, data: dict[str, Any]) -> None:
        directory = os.path.dirname(self.path)
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".stocks-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            os.unlink(tmp_path)
            raise

    def tickers(self) -> list[str]:
        return sorted(self._read()["stocks"])

    def last_updated(self) -> datetime | None:
        stamp = self._read().get("lastUpdated")
        return datetime.fromisoformat(stamp) if stamp else None

    def load(self, ticker: str, year: int | None = None) -> PriceSeries | None:
        records = self._read()["stocks"].get(ticker)
        if records is None:
            return None
        series = self._series(ticker, records)
        return series.for_year(year) if year is not None else series

    def store(self, series_by_ticker: Mapping[str, PriceSeries]) -> None:
        """Merge closes into the store; a new close for an existing date replaces the old one."""
        data = self._read()
        stocks = data["stocks"]
        for ticker, series in series_by_ticker.items():
            merged = {point.date: point.price for point in self._series(ticker, stocks.get(ticker, [])).points}
            merged.update((point.date, point.price) for point in series.points)
            stocks[ticker] = [
                {"date": day.isoformat(), "price": price} for day, price in sorted(merged.items())
            ]
        data["lastUpdated"] = datetime.now(timezone.utc).isoformat()
        self._write(data)
        LOGGER.info("price store updated: path=%s tickers=%s", self.path, len(series_by_ticker))

    def clear(self) -> None:
        if os.path.exists(self.path):
            os.remove(self.path)

    def fetch_prices(self, ticker: str, start: date | None = None, end: date | None = None) -> PriceSeries:
        series = self.load(ticker)
        if series is None:
            raise PriceSourceError(ticker, "NOT_FOUND", f"No stored prices for {ticker}.")
        return series.between(start, end)

