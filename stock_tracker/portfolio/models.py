"""Typed portfolio models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Literal, Mapping

CASH_KEY = "cash_amount"

Direction = Literal["up", "down", "flat"]


@dataclass(frozen=True)
class PortfolioDefinition:
    """Dollars invested per ticker for each named portfolio.

    Each holdings mapping may carry the reserved ``cash_amount`` key, which is
    held as cash and never converted into shares.
    """

    portfolios: Mapping[str, Mapping[str, float]] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Mapping[str, float]]) -> PortfolioDefinition:
        return cls({name: {key: float(amount) for key, amount in holdings.items()} for name, holdings in raw.items()})

    @property
    def names(self) -> list[str]:
        return list(self.portfolios)

    def holdings(self, name: str) -> Mapping[str, float]:
        return self.portfolios.get(name, {})

    def stocks(self, name: str) -> dict[str, float]:
        return {ticker: amount for ticker, amount in self.holdings(name).items() if ticker != CASH_KEY}

    def cash(self, name: str) -> float:
        return float(self.holdings(name).get(CASH_KEY, 0.0))

    def total_invested(self, name: str) -> float:
        return float(sum(self.holdings(name).values()))

    def is_empty(self, name: str) -> bool:
        return not self.holdings(name)

    def all_tickers(self) -> list[str]:
        tickers: set[str] = set()
        for name in self.portfolios:
            tickers.update(self.stocks(name))
        return sorted(tickers)

    def __len__(self) -> int:
        return len(self.portfolios)


@dataclass(frozen=True)
class PortfolioValuePoint:
    date: date
    portfolio_name: str
    value: float


@dataclass(frozen=True)
class HoldingValuation:
    ticker: str
    invested: float
    shares: float
    initial_price: float | None
    current_price: float | None
    value: float
    priced: bool

    @property
    def gain(self) -> float:
        return self.value - self.invested

    @property
    def gain_percent(self) -> float | None:
        if self.invested == 0:
            return None
        return self.gain / self.invested * 100.0


@dataclass(frozen=True)
class RankedEntry:
    portfolio_name: str
    rank: int
    gain: float
    gain_percent: float | None
    value: float
    total_invested: float


@dataclass
class ValidationIssue:
    field: str
    message: str
    portfolio: str | None = None
    code: str = "invalid_value"
