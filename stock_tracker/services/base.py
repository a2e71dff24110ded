"""Shared service orchestration helpers."""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from typing import Callable, Generic, TypeVar

from stock_tracker.cache.price_store import JsonPriceStore
from stock_tracker.cache.ttl_cache import TTLCache
from stock_tracker.errors import ConfigurationError, DataIntegrityError, PriceSourceError
from stock_tracker.prices.sources import PriceSource

T = TypeVar("T")


@dataclass
class ErrorEnvelope:
    code: str
    message: str
    retriable: bool = False
    ticker: str | None = None


@dataclass
class ServiceResult(Generic[T]):
    data: T | None
    source: str | None = None
    warning: str | None = None
    error: ErrorEnvelope | None = None
    computed_at: float | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ServiceContext:
    cache: TTLCache
    price_source: PriceSource | None = None
    store: JsonPriceStore | None = None
    cache_ttl_seconds: int = 3600


def envelope_from_error(error: Exception) -> ErrorEnvelope:
    if isinstance(error, DataIntegrityError):
        return ErrorEnvelope(code="DATA_INTEGRITY", message=str(error), retriable=False, ticker=error.ticker)
    if isinstance(error, ConfigurationError):
        return ErrorEnvelope(code="CONFIGURATION", message=str(error), retriable=False)
    if isinstance(error, PriceSourceError):
        retriable = error.code in {"RATE_LIMIT", "UPSTREAM"}
        return ErrorEnvelope(code=error.code, message=error.message, retriable=retriable, ticker=error.ticker)
    return ErrorEnvelope(code="INTERNAL", message="Unexpected error while computing portfolio data.")


def _detached(data: T | None) -> T | None:
    # maps are copied on the way into and out of the cache
    return dict(data) if isinstance(data, dict) else data


def run_with_cache(
    ctx: ServiceContext,
    cache_key: str,
    call: Callable[[], ServiceResult[T]],
    ttl_seconds: int | None = None,
) -> ServiceResult[T]:
    """Serve ``cache_key`` from the cache, else compute it and cache clean results."""
    cached = ctx.cache.get(cache_key)
    if isinstance(cached, ServiceResult):
        return ServiceResult(
            data=_detached(cached.data),
            source="cache",
            warning=cached.warning,
            computed_at=cached.computed_at,
        )
    value = call()
    value.computed_at = value.computed_at or time.time()
    if value.ok and value.warning is None:
        ctx.cache.set(
            cache_key,
            replace(value, data=_detached(value.data)),
            ttl_seconds=ttl_seconds or ctx.cache_ttl_seconds,
        )
    return value
