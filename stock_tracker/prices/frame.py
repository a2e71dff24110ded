"""Wide date x ticker price table."""

from __future__ import annotations

from typing import Mapping, Sequence

import pandas as pd

from stock_tracker.prices.models import PriceSeries


def build_price_frame(
    series_by_ticker: Mapping[str, PriceSeries],
    tickers: Sequence[str] | None = None,
) -> pd.DataFrame:
    """One row per observed date, one column per ticker, NaN where a ticker has no close.

    Tickers requested but absent from ``series_by_ticker`` still get an all-NaN column.
    """
    columns = list(tickers) if tickers is not None else sorted(series_by_ticker)
    histories = []
    for ticker in columns:
        series = series_by_ticker.get(ticker)
        points = series.points if series is not None else ()
        histories.append(
            pd.Series(
                [point.price for point in points],
                index=pd.DatetimeIndex([pd.Timestamp(point.date) for point in points]),
                name=ticker,
                dtype=float,
            )
        )
    if not histories:
        return pd.DataFrame()
    frame = pd.concat(histories, axis=1).sort_index()
    frame.index.name = "date"
    return frame
