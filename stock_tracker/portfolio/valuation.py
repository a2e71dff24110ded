"""Per-date portfolio valuation from invested dollars and daily closes.

Share counts are fixed once per run: ``invested / initial price`` where the
initial price is the first positive close in the ticker's series. On every date each
position is priced with, in order:

1. the close on that date,
2. the most recent earlier close (forward-fill across non-trading days),
3. nothing at all: the position is carried at its invested dollar amount.

Rule 3 treats a not-yet-priced holding as flat. It is a product policy for
late-listing or never-priced tickers, not an accounting valuation.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Mapping, Sequence, Union

from stock_tracker.errors import DataIntegrityError
from stock_tracker.portfolio.models import HoldingValuation, PortfolioDefinition, PortfolioValuePoint
from stock_tracker.prices.models import PricePoint, PriceSeries, valid_price

SeriesLike = Union[PriceSeries, Sequence[PricePoint]]


def _points_of(ticker: str, series: SeriesLike | None) -> tuple[PricePoint, ...]:
    if series is None:
        return ()
    if isinstance(series, PriceSeries):
        points = series.points
    else:
        # raw sequences may carry zero or NaN closes; those never price a position
        points = tuple(point for point in series if valid_price(point.price) is not None)
    for previous, current in zip(points, points[1:]):
        if current.date <= previous.date:
            raise DataIntegrityError(
                f"{ticker}: price dates must be strictly ascending "
                f"({current.date.isoformat()} follows {previous.date.isoformat()}).",
                ticker=ticker,
            )
    return points


def _check_ascending(dates: Sequence[date]) -> None:
    for previous, current in zip(dates, dates[1:]):
        if current <= previous:
            raise DataIntegrityError(
                f"Valuation dates must be strictly ascending ({current.isoformat()} follows {previous.isoformat()})."
            )


def _normalize(series_by_ticker: Mapping[str, SeriesLike], tickers: Iterable[str]) -> dict[str, tuple[PricePoint, ...]]:
    return {ticker: _points_of(ticker, series_by_ticker.get(ticker)) for ticker in tickers}


def initial_prices(series_by_ticker: Mapping[str, SeriesLike], tickers: Iterable[str]) -> dict[str, float | None]:
    points = _normalize(series_by_ticker, tickers)
    return {ticker: (rows[0].price if rows else None) for ticker, rows in points.items()}


def _share_counts(portfolios: PortfolioDefinition, first: Mapping[str, float | None]) -> dict[str, dict[str, float]]:
    shares: dict[str, dict[str, float]] = {}
    for name in portfolios.names:
        shares[name] = {}
        for ticker, invested in portfolios.stocks(name).items():
            price = first.get(ticker)
            shares[name][ticker] = invested / price if price else 0.0
    return shares


def compute_share_counts(
    series_by_ticker: Mapping[str, SeriesLike],
    portfolios: PortfolioDefinition,
) -> dict[str, dict[str, float]]:
    return _share_counts(portfolios, initial_prices(series_by_ticker, portfolios.all_tickers()))


def _forward_filled(points: Sequence[PricePoint], dates: Sequence[date]) -> list[float | None]:
    resolved: list[float | None] = []
    last: float | None = None
    idx = 0
    for day in dates:
        while idx < len(points) and points[idx].date <= day:
            last = points[idx].price
            idx += 1
        resolved.append(last)
    return resolved


def resolve_prices(
    series_by_ticker: Mapping[str, SeriesLike],
    tickers: Iterable[str],
    dates: Sequence[date],
) -> dict[str, list[float | None]]:
    """Close in effect on each date per ticker; None before the ticker's first close."""
    _check_ascending(dates)
    return {ticker: _forward_filled(points, dates) for ticker, points in _normalize(series_by_ticker, tickers).items()}


def compute_portfolio_values(
    series_by_ticker: Mapping[str, SeriesLike],
    portfolios: PortfolioDefinition,
    dates: Sequence[date] | None = None,
) -> list[PortfolioValuePoint]:
    """Value every portfolio on every date, ascending by date.

    ``dates`` defaults to the sorted union of all observed dates. Tickers
    missing from ``series_by_ticker`` are carried at their invested amount.
    """
    tickers = portfolios.all_tickers()
    points = _normalize(series_by_ticker, tickers)
    if dates is None:
        dates = sorted({point.date for rows in points.values() for point in rows})
    else:
        dates = list(dates)
        _check_ascending(dates)

    resolved = {ticker: _forward_filled(rows, dates) for ticker, rows in points.items()}
    shares = _share_counts(portfolios, {ticker: (rows[0].price if rows else None) for ticker, rows in points.items()})
    holdings = {name: (portfolios.cash(name), portfolios.stocks(name)) for name in portfolios.names}

    values: list[PortfolioValuePoint] = []
    for idx, day in enumerate(dates):
        for name, (cash, stocks) in holdings.items():
            total = cash
            for ticker, invested in stocks.items():
                price = resolved[ticker][idx]
                total += invested if price is None else shares[name][ticker] * price
            values.append(PortfolioValuePoint(date=day, portfolio_name=name, value=total))
    return values


def group_by_date(values: Iterable[PortfolioValuePoint]) -> list[tuple[date, dict[str, float]]]:
    rows: list[tuple[date, dict[str, float]]] = []
    for point in values:
        if not rows or rows[-1][0] != point.date:
            rows.append((point.date, {}))
        rows[-1][1][point.portfolio_name] = point.value
    return rows


def latest_values(values: Iterable[PortfolioValuePoint]) -> dict[str, float]:
    """Value of each portfolio on the last date it appears."""
    latest: dict[str, float] = {}
    for point in values:
        latest[point.portfolio_name] = point.value
    return latest


def compute_holdings(
    series_by_ticker: Mapping[str, SeriesLike],
    portfolios: PortfolioDefinition,
    name: str,
    as_of: date | None = None,
) -> list[HoldingValuation]:
    """Per-ticker breakdown of one portfolio at ``as_of`` (default: latest close)."""
    stocks = portfolios.stocks(name)
    points = _normalize(series_by_ticker, stocks)
    breakdown: list[HoldingValuation] = []
    for ticker, invested in stocks.items():
        rows = points[ticker]
        initial = rows[0].price if rows else None
        shares = invested / initial if initial else 0.0
        eligible = [row for row in rows if as_of is None or row.date <= as_of]
        current = eligible[-1].price if eligible else None
        breakdown.append(
            HoldingValuation(
                ticker=ticker,
                invested=invested,
                shares=shares,
                initial_price=initial,
                current_price=current,
                value=invested if current is None else shares * current,
                priced=current is not None,
            )
        )
    return breakdown
