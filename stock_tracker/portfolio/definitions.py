"""Portfolio configuration loading and validation."""

from __future__ import annotations

import json
import math
import os
import re
from typing import Any, Mapping

from stock_tracker.errors import ConfigurationError
from stock_tracker.portfolio.models import CASH_KEY, PortfolioDefinition, ValidationIssue

DEFAULT_GROUP = "default"
SYMBOL_PATTERN = re.compile(r"^(CRYPTO:)?[A-Z0-9][A-Z0-9.\-]{0,14}$")


def is_normalized(raw: Mapping[str, Any]) -> bool:
    return "portfolios" in raw and "portfolioGroups" in raw


def _portfolio_names(groups: Mapping[str, Any], group_names: list[str]) -> list[str]:
    names: list[str] = []
    for group_name in group_names:
        members = groups.get(group_name)
        if not isinstance(members, list):
            continue
        for name in members:
            if name not in names:
                names.append(name)
    return names


def flatten_portfolios(raw: Mapping[str, Any], group: str = DEFAULT_GROUP) -> dict[str, dict[str, Any]]:
    """Resolve one portfolio group into a flat ``{name: holdings}`` mapping.

    Uses ``group`` when defined, falls back to ``"default"``, and otherwise to
    every group. Legacy files without groups are returned as-is.
    """
    if not is_normalized(raw):
        return dict(raw)
    groups = raw["portfolioGroups"]
    portfolios = raw["portfolios"]
    if group in groups:
        target = [group]
    elif DEFAULT_GROUP in groups:
        target = [DEFAULT_GROUP]
    else:
        target = list(groups)
    return {name: portfolios[name] for name in _portfolio_names(groups, target) if name in portfolios}


def all_groups_tickers(raw: Mapping[str, Any]) -> list[str]:
    """Every ticker held by any portfolio in any group, sorted."""
    if is_normalized(raw):
        flat = {
            name: raw["portfolios"][name]
            for name in _portfolio_names(raw["portfolioGroups"], list(raw["portfolioGroups"]))
            if name in raw["portfolios"]
        }
    else:
        flat = dict(raw.get("portfolios", raw))
    return _coerce(flat).all_tickers()


def _coerce(flat: Mapping[str, Any]) -> PortfolioDefinition:
    portfolios: dict[str, dict[str, float]] = {}
    for name, holdings in flat.items():
        if not isinstance(holdings, Mapping):
            raise ConfigurationError(f"Portfolio {name!r} must map tickers to dollar amounts.")
        parsed: dict[str, float] = {}
        for ticker, amount in holdings.items():
            if isinstance(amount, bool) or not isinstance(amount, (int, float)):
                raise ConfigurationError(f"Portfolio {name!r}: amount for {ticker!r} must be numeric.")
            key = ticker if ticker == CASH_KEY else str(ticker).strip().upper()
            parsed[key] = float(amount)
        portfolios[str(name)] = parsed
    return PortfolioDefinition(portfolios)


def parse_portfolio_definitions(raw: Mapping[str, Any], group: str = DEFAULT_GROUP) -> PortfolioDefinition:
    if not isinstance(raw, Mapping):
        raise ConfigurationError("Portfolio configuration must be a JSON object.")
    return _coerce(flatten_portfolios(raw, group))


def load_portfolio_definitions(file_path: str, group: str = DEFAULT_GROUP) -> PortfolioDefinition:
    absolute_path = file_path if os.path.isabs(file_path) else os.path.abspath(file_path)
    try:
        with open(absolute_path, encoding="utf-8") as handle:
            raw = json.load(handle)
    except FileNotFoundError as error:
        raise ConfigurationError(f"Portfolio file not found: {absolute_path}") from error
    except json.JSONDecodeError as error:
        raise ConfigurationError(f"Portfolio file is not valid JSON: {error.msg} (line {error.lineno})") from error
    return parse_portfolio_definitions(raw, group)


def validate_definitions(portfolios: PortfolioDefinition) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for name in portfolios.names:
        if portfolios.is_empty(name):
            issues.append(
                ValidationIssue(
                    field="holdings",
                    portfolio=name,
                    code="empty_portfolio",
                    message="Portfolio has no tickers and no cash; it is excluded from ranking.",
                )
            )
            continue
        for ticker, amount in portfolios.holdings(name).items():
            if ticker != CASH_KEY and not SYMBOL_PATTERN.match(ticker):
                issues.append(
                    ValidationIssue(
                        field=ticker,
                        portfolio=name,
                        code="invalid_symbol",
                        message=f"Invalid ticker: {ticker}",
                    )
                )
            if not math.isfinite(amount) or amount < 0:
                issues.append(
                    ValidationIssue(
                        field=ticker,
                        portfolio=name,
                        code="invalid_amount",
                        message="Invested amount must be a non-negative number.",
                    )
                )
    return issues
