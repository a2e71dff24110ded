"""Leaderboard ranking by total gain."""

from __future__ import annotations

from typing import Mapping

from stock_tracker.portfolio.models import PortfolioDefinition, RankedEntry


def rank_portfolios(latest_values: Mapping[str, float], portfolios: PortfolioDefinition) -> list[RankedEntry]:
    """Rank non-empty portfolios by gain, best first, using competition ranking.

    Ties on gain are ordered by name and share the rank of the first member of
    the tie group, so ranks may skip (1, 1, 3). A portfolio with no latest
    value is taken at its invested total.
    """
    scored: list[tuple[str, float, float, float]] = []
    for name in portfolios.names:
        if portfolios.is_empty(name):
            continue
        invested = portfolios.total_invested(name)
        value = float(latest_values.get(name, invested))
        scored.append((name, value - invested, value, invested))
    scored.sort(key=lambda item: (-item[1], item[0]))

    ranked: list[RankedEntry] = []
    for idx, (name, gain, value, invested) in enumerate(scored):
        rank = ranked[-1].rank if ranked and ranked[-1].gain == gain else idx + 1
        ranked.append(
            RankedEntry(
                portfolio_name=name,
                rank=rank,
                gain=gain,
                gain_percent=gain / invested * 100.0 if invested else None,
                value=value,
                total_invested=invested,
            )
        )
    return ranked


def ordinal(rank: int) -> str:
    if 11 <= rank % 100 <= 13:
        return f"{rank}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(rank % 10, "th")
    return f"{rank}{suffix}"
