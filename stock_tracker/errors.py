"""Typed errors raised by the valuation core and its collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

PriceSourceErrorCode = Literal["NOT_FOUND", "RATE_LIMIT", "UPSTREAM", "BAD_RESPONSE"]


class DataIntegrityError(ValueError):
    """A price series or date sequence is unsorted or has duplicate dates."""

    def __init__(self, message: str, ticker: str | None = None) -> None:
        super().__init__(message)
        self.ticker = ticker


class ConfigurationError(ValueError):
    """Portfolio configuration cannot be loaded or parsed."""


@dataclass
class PriceSourceError(Exception):
    ticker: str
    code: PriceSourceErrorCode
    message: str

    def __str__(self) -> str:
        return self.message
