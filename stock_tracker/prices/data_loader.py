"""Daily price file loading helpers."""

from __future__ import annotations

import os

import pandas as pd

from stock_tracker.prices.models import PricePoint, PriceSeries

DATE_COLUMN = "Date"
CLOSE_COLUMN = "Close"


def load_price_csv(file_path: str, ticker: str) -> PriceSeries:
    """Read a Stooq-style daily CSV (``Date,Open,High,Low,Close,Volume``)."""
    absolute_path = file_path if os.path.isabs(file_path) else os.path.abspath(file_path)
    ext = os.path.splitext(absolute_path)[1].lower()
    if ext != ".csv":
        raise ValueError("Price input must be a CSV file (.csv).")
    frame = pd.read_csv(absolute_path)
    missing = [col for col in (DATE_COLUMN, CLOSE_COLUMN) if col not in frame.columns]
    if missing:
        raise ValueError(f"Price file is missing required columns: {', '.join(missing)}")
    return frame_to_series(frame, ticker)


def frame_to_series(frame: pd.DataFrame, ticker: str) -> PriceSeries:
    data = frame[[DATE_COLUMN, CLOSE_COLUMN]].copy()
    data[DATE_COLUMN] = pd.to_datetime(data[DATE_COLUMN], errors="coerce")
    data[CLOSE_COLUMN] = pd.to_numeric(data[CLOSE_COLUMN], errors="coerce")
    data = data.dropna()
    data = data[data[CLOSE_COLUMN] > 0]
    # one close per day; later rows win
    data = data.drop_duplicates(subset=DATE_COLUMN, keep="last").sort_values(DATE_COLUMN)
    points = tuple(
        PricePoint(date=row.Date.date(), price=float(row.Close)) for row in data.itertuples(index=False)
    )
    return PriceSeries(ticker=ticker, points=points)
