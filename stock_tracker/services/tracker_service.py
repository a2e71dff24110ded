"""Year view orchestration: load prices, value portfolios, tabulate and rank."""

from __future__ import annotations

import logging
import time
from datetime import date
from typing import Callable, Iterable, TypeVar

import pandas as pd

from stock_tracker.cache.price_store import JsonPriceStore
from stock_tracker.cache.ttl_cache import TTLCache, snapshot_key
from stock_tracker.config.settings import Settings
from stock_tracker.errors import ConfigurationError, DataIntegrityError, PriceSourceError
from stock_tracker.portfolio.aggregation import (
    MonthlyTable,
    build_monthly_table,
    observations_from_points,
    observations_from_series,
)
from stock_tracker.portfolio.definitions import load_portfolio_definitions, validate_definitions
from stock_tracker.portfolio.models import HoldingValuation, PortfolioDefinition, PortfolioValuePoint, RankedEntry
from stock_tracker.portfolio.ranking import rank_portfolios
from stock_tracker.portfolio.valuation import compute_holdings, compute_portfolio_values, latest_values
from stock_tracker.prices.frame import build_price_frame
from stock_tracker.prices.models import PriceSeries
from stock_tracker.prices.sources import CsvPriceSource
from stock_tracker.runtime.monitoring import configure_logging, log_run_event
from stock_tracker.services.base import ServiceContext, ServiceResult, envelope_from_error, run_with_cache

LOGGER = logging.getLogger(__name__)
T = TypeVar("T")

PriceMap = dict[str, PriceSeries]


class TrackerService:
    def __init__(self, ctx: ServiceContext, today: Callable[[], date] = date.today) -> None:
        self.ctx = ctx
        self._today = today

    def _load_one(self, ticker: str, year: int) -> tuple[PriceSeries | None, str | None]:
        if self.ctx.store is not None:
            stored = self.ctx.store.load(ticker, year)
            if stored is not None and len(stored):
                return stored, "store"
        if self.ctx.price_source is None:
            return None, None
        fetched = self.ctx.price_source.fetch_prices(ticker, date(year, 1, 1), date(year, 12, 31))
        if self.ctx.store is not None and len(fetched):
            self.ctx.store.store({ticker: fetched})
        return fetched, "source"

    def _load_prices(self, tickers: list[str], year: int) -> ServiceResult[PriceMap]:
        prices: PriceMap = {}
        missing: list[str] = []
        sources: set[str] = set()
        for ticker in tickers:
            try:
                series, origin = self._load_one(ticker, year)
            except (PriceSourceError, DataIntegrityError) as error:
                envelope = envelope_from_error(error)
                LOGGER.warning(
                    "price load failed: ticker=%s year=%s code=%s message=%s",
                    ticker,
                    year,
                    envelope.code,
                    envelope.message,
                )
                missing.append(ticker)
                continue
            if series is None or not len(series):
                missing.append(ticker)
                continue
            prices[ticker] = series
            sources.add(origin or "unknown")
        warning = f"No price data for: {', '.join(missing)}" if missing else None
        return ServiceResult(data=prices, source="+".join(sorted(sources)) or None, warning=warning)

    def load_prices(self, tickers: Iterable[str], year: int) -> ServiceResult[PriceMap]:
        """Price snapshot for a (year, ticker set); tickers that fail to load are left out."""
        wanted = sorted(set(tickers))
        return run_with_cache(self.ctx, snapshot_key(year, wanted), lambda: self._load_prices(wanted, year))

    def _run(self, operation: str, year: int, call: Callable[[], ServiceResult[T]]) -> ServiceResult[T]:
        started = time.perf_counter()
        try:
            result = call()
        except (DataIntegrityError, ConfigurationError) as error:
            result = ServiceResult(data=None, error=envelope_from_error(error))
        elapsed_ms = (time.perf_counter() - started) * 1000
        log_run_event(operation, year, elapsed_ms, result.ok, warning=result.warning)
        return result

    def _with_prices(
        self,
        portfolios: PortfolioDefinition,
        year: int,
        compute: Callable[[PriceMap], T],
    ) -> ServiceResult[T]:
        prices = self.load_prices(portfolios.all_tickers(), year)
        return ServiceResult(data=compute(prices.data or {}), source=prices.source, warning=prices.warning)

    def portfolio_values(self, portfolios: PortfolioDefinition, year: int) -> ServiceResult[list[PortfolioValuePoint]]:
        return self._run(
            "portfolio_values",
            year,
            lambda: self._with_prices(portfolios, year, lambda prices: compute_portfolio_values(prices, portfolios)),
        )

    def portfolio_table(self, portfolios: PortfolioDefinition, year: int) -> ServiceResult[MonthlyTable]:
        def compute(prices: PriceMap) -> MonthlyTable:
            values = compute_portfolio_values(prices, portfolios)
            return build_monthly_table(observations_from_points(values), year, portfolios.names, today=self._today())

        return self._run("portfolio_table", year, lambda: self._with_prices(portfolios, year, compute))

    def stock_table(self, portfolios: PortfolioDefinition, year: int) -> ServiceResult[MonthlyTable]:
        def compute(prices: PriceMap) -> MonthlyTable:
            return build_monthly_table(
                observations_from_series(prices),
                year,
                portfolios.all_tickers(),
                today=self._today(),
            )

        return self._run("stock_table", year, lambda: self._with_prices(portfolios, year, compute))

    def leaderboard(self, portfolios: PortfolioDefinition, year: int) -> ServiceResult[list[RankedEntry]]:
        def compute(prices: PriceMap) -> list[RankedEntry]:
            return rank_portfolios(latest_values(compute_portfolio_values(prices, portfolios)), portfolios)

        result = self._run("leaderboard", year, lambda: self._with_prices(portfolios, year, compute))
        excluded = [issue.portfolio for issue in validate_definitions(portfolios) if issue.code == "empty_portfolio"]
        if excluded and result.ok:
            LOGGER.info("empty portfolios excluded from ranking: year=%s portfolios=%s", year, ",".join(excluded))
        return result

    def holdings(self, portfolios: PortfolioDefinition, name: str, year: int) -> ServiceResult[list[HoldingValuation]]:
        if name not in portfolios.names:
            return ServiceResult(
                data=None,
                error=envelope_from_error(ConfigurationError(f"Unknown portfolio: {name}")),
            )
        return self._run(
            "holdings",
            year,
            lambda: self._with_prices(portfolios, year, lambda prices: compute_holdings(prices, portfolios, name)),
        )

    def price_frame(self, portfolios: PortfolioDefinition, year: int) -> ServiceResult[pd.DataFrame]:
        tickers = portfolios.all_tickers()
        return self._run(
            "price_frame",
            year,
            lambda: self._with_prices(portfolios, year, lambda prices: build_price_frame(prices, tickers)),
        )


def build_tracker_service(settings: Settings, today: Callable[[], date] = date.today) -> TrackerService:
    configure_logging(settings.log_level, settings.log_json_events)
    ctx = ServiceContext(
        cache=TTLCache(settings.cache_ttl_seconds),
        price_source=CsvPriceSource(settings.price_csv_dir) if settings.price_csv_dir else None,
        store=JsonPriceStore(settings.price_store_path),
        cache_ttl_seconds=settings.cache_ttl_seconds,
    )
    return TrackerService(ctx, today=today)


def load_configured_portfolios(settings: Settings, group: str | None = None) -> PortfolioDefinition:
    portfolios = load_portfolio_definitions(settings.portfolios_path, group or settings.portfolio_group)
    for issue in validate_definitions(portfolios):
        LOGGER.warning(
            "portfolio config issue: portfolio=%s field=%s code=%s message=%s",
            issue.portfolio,
            issue.field,
            issue.code,
            issue.message,
        )
    return portfolios
