"""Monthly year-to-date tables for portfolio values and raw prices."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Mapping, Sequence

import pandas as pd

from stock_tracker.errors import DataIntegrityError
from stock_tracker.portfolio.models import Direction, PortfolioValuePoint
from stock_tracker.portfolio.valuation import group_by_date
from stock_tracker.prices.models import PriceSeries, collect_dates, parse_date

Observation = tuple[date, Mapping[str, Any]]


@dataclass(frozen=True)
class MonthlyCell:
    value: float
    delta: float
    percent: float | None
    direction: Direction


@dataclass(frozen=True)
class MonthlyBucket:
    month_key: str
    label: str
    values: dict[str, float | None]
    cells: dict[str, MonthlyCell | None]


@dataclass(frozen=True)
class MonthlyTable:
    year: int
    entities: list[str]
    baseline: dict[str, float | None]
    rows: list[MonthlyBucket]

    def to_frame(self) -> pd.DataFrame:
        """YTD deltas, one row per expected month; NaN marks "no data"."""
        records = [
            [cell.delta if cell is not None else math.nan for cell in (row.cells[e] for e in self.entities)]
            for row in self.rows
        ]
        index = pd.Index([row.month_key for row in self.rows], name="month")
        return pd.DataFrame(records or None, index=index, columns=self.entities, dtype=float)


def expected_months(year: int, today: date | None = None) -> list[int]:
    """Months that have started: all twelve for past years, none for future ones."""
    today = today or date.today()
    if year < today.year:
        return list(range(1, 13))
    if year == today.year:
        return list(range(1, today.month + 1))
    return []


def direction_of(delta: float) -> Direction:
    if delta > 0:
        return "up"
    if delta < 0:
        return "down"
    return "flat"


def _clean(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return math.nan
    try:
        number = float(value)
    except (TypeError, ValueError):
        return math.nan
    return number if math.isfinite(number) else math.nan


def _observation_frame(observations: Iterable[Observation], entities: Sequence[str], year: int) -> pd.DataFrame:
    index: list[pd.Timestamp] = []
    records: list[list[float]] = []
    previous: date | None = None
    for raw_day, values in observations:
        day = parse_date(raw_day)
        if previous is not None and day <= previous:
            raise DataIntegrityError(
                f"Observations must be strictly ascending ({day.isoformat()} follows {previous.isoformat()})."
            )
        previous = day
        if day.year != year:
            continue
        index.append(pd.Timestamp(day))
        records.append([_clean(values.get(entity)) for entity in entities])
    return pd.DataFrame(records or None, index=pd.DatetimeIndex(index), columns=list(entities), dtype=float)


def _baseline(column: pd.Series, year: int) -> float | None:
    jan1 = pd.Timestamp(year=year, month=1, day=1)
    value: float | None = None
    if jan1 in column.index and pd.notna(column.loc[jan1]):
        value = float(column.loc[jan1])
    else:
        first = column.first_valid_index()
        if first is not None:
            value = float(column.loc[first])
    # a zero baseline cannot anchor a YTD figure
    return value if value else None


def build_monthly_table(
    observations: Iterable[Observation],
    year: int,
    entities: Sequence[str],
    today: date | None = None,
) -> MonthlyTable:
    """Bucket date-ordered observations into the year's elapsed months.

    Each month carries the last valid observation per entity within it and the
    change against the entity's baseline (January 1, else its first
    observation of the year). Entities without a baseline render as no data.
    """
    entities = list(dict.fromkeys(entities))
    frame = _observation_frame(observations, entities, year)
    baseline = {entity: _baseline(frame[entity], year) for entity in entities}
    # GroupBy.last skips NaN, so each month keeps its last valid observation
    monthly = frame.groupby(frame.index.month).last() if not frame.empty else frame

    rows: list[MonthlyBucket] = []
    for month in expected_months(year, today):
        values: dict[str, float | None] = {}
        cells: dict[str, MonthlyCell | None] = {}
        for entity in entities:
            value: float | None = None
            if month in monthly.index and pd.notna(monthly.at[month, entity]):
                value = float(monthly.at[month, entity])
            values[entity] = value
            base = baseline[entity]
            if value is None or base is None:
                cells[entity] = None
                continue
            delta = value - base
            cells[entity] = MonthlyCell(
                value=value,
                delta=delta,
                percent=delta / base * 100.0,
                direction=direction_of(delta),
            )
        first_day = date(year, month, 1)
        rows.append(
            MonthlyBucket(
                month_key=f"{year}-{month:02d}",
                label=first_day.strftime("%b %Y"),
                values=values,
                cells=cells,
            )
        )
    return MonthlyTable(year=year, entities=entities, baseline=baseline, rows=rows)


def observations_from_points(points: Iterable[PortfolioValuePoint]) -> list[Observation]:
    return [(day, values) for day, values in group_by_date(points)]


def observations_from_series(series_by_ticker: Mapping[str, PriceSeries]) -> list[Observation]:
    """Price rows by date; a ticker without a close on a date maps to None."""
    lookup = {ticker: {point.date: point.price for point in series.points} for ticker, series in series_by_ticker.items()}
    return [
        (day, {ticker: prices.get(day) for ticker, prices in lookup.items()})
        for day in collect_dates(series_by_ticker)
    ]
