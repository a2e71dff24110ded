"""Environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the tracker service."""

    portfolios_path: str = "portfolios.json"
    portfolio_group: str = "default"
    price_store_path: str = "data/stocks.json"
    price_csv_dir: str | None = None
    cache_ttl_seconds: int = 3600
    log_level: str = "INFO"
    log_json_events: bool = True


def _as_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def get_settings() -> Settings:
    """Load runtime settings from environment variables."""
    load_dotenv()

    return Settings(
        portfolios_path=os.getenv("PORTFOLIOS_PATH", "portfolios.json"),
        portfolio_group=os.getenv("PORTFOLIO_GROUP", "default").strip() or "default",
        price_store_path=os.getenv("PRICE_STORE_PATH", "data/stocks.json"),
        price_csv_dir=os.getenv("PRICE_CSV_DIR") or None,
        cache_ttl_seconds=_as_int(os.getenv("CACHE_TTL_SECONDS"), 3600),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        log_json_events=_as_bool(os.getenv("LOG_JSON_EVENTS"), True),
    )
