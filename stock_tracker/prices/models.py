"""Price observation models."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Iterator, Mapping

from stock_tracker.errors import DataIntegrityError


def parse_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def valid_price(value: Any) -> float | None:
    """Return ``value`` as a positive finite float, or None when it is unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(price) or price <= 0:
        return None
    return price


@dataclass(frozen=True)
class PricePoint:
    date: date
    price: float


@dataclass(frozen=True)
class PriceSeries:
    """Closing prices for one ticker, strictly ascending by date.

    Construction fails with :class:`DataIntegrityError` when dates repeat or go
    backwards. Points are never re-sorted here; ordering is the producer's job.
    """

    ticker: str
    points: tuple[PricePoint, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "points", tuple(self.points))
        previous: date | None = None
        for point in self.points:
            if valid_price(point.price) is None:
                raise DataIntegrityError(
                    f"{self.ticker}: stored price on {point.date.isoformat()} must be positive.",
                    ticker=self.ticker,
                )
            if previous is not None and point.date <= previous:
                kind = "duplicate" if point.date == previous else "out-of-order"
                raise DataIntegrityError(
                    f"{self.ticker}: {kind} date {point.date.isoformat()} after {previous.isoformat()}.",
                    ticker=self.ticker,
                )
            previous = point.date

    @classmethod
    def from_records(cls, ticker: str, records: Iterable[Mapping[str, Any]]) -> PriceSeries:
        """Build a series from ``{"date", "price"}`` records, dropping unusable prices."""
        points = []
        for record in records:
            price = valid_price(record.get("price"))
            if price is None or not record.get("date"):
                continue
            points.append(PricePoint(date=parse_date(record["date"]), price=price))
        return cls(ticker=ticker, points=tuple(points))

    def to_records(self) -> list[dict[str, Any]]:
        return [{"date": point.date.isoformat(), "price": point.price} for point in self.points]

    def for_year(self, year: int) -> PriceSeries:
        return PriceSeries(self.ticker, tuple(p for p in self.points if p.date.year == year))

    def between(self, start: date | None = None, end: date | None = None) -> PriceSeries:
        return PriceSeries(
            self.ticker,
            tuple(
                p
                for p in self.points
                if (start is None or p.date >= start) and (end is None or p.date <= end)
            ),
        )

    @property
    def first(self) -> PricePoint | None:
        return self.points[0] if self.points else None

    @property
    def last(self) -> PricePoint | None:
        return self.points[-1] if self.points else None

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[PricePoint]:
        return iter(self.points)


def collect_dates(series_by_ticker: Mapping[str, PriceSeries]) -> list[date]:
    """Sorted union of every observed date across tickers."""
    dates: set[date] = set()
    for series in series_by_ticker.values():
        dates.update(point.date for point in series.points)
    return sorted(dates)
