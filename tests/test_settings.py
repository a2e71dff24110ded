import json
import logging

from stock_tracker.config.settings import get_settings
from stock_tracker.runtime.monitoring import EVENT_LOGGER, configure_logging, log_run_event

ENV_KEYS = (
    "PORTFOLIOS_PATH",
    "PORTFOLIO_GROUP",
    "PRICE_STORE_PATH",
    "PRICE_CSV_DIR",
    "CACHE_TTL_SECONDS",
    "LOG_LEVEL",
    "LOG_JSON_EVENTS",
)


def _clear_env(monkeypatch) -> None:
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_settings_defaults(monkeypatch) -> None:
    _clear_env(monkeypatch)
    settings = get_settings()
    assert settings.portfolios_path == "portfolios.json"
    assert settings.portfolio_group == "default"
    assert settings.price_store_path == "data/stocks.json"
    assert settings.price_csv_dir is None
    assert settings.cache_ttl_seconds == 3600
    assert settings.log_level == "INFO"
    assert settings.log_json_events is True


def test_settings_read_environment(monkeypatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("PORTFOLIOS_PATH", "/tmp/p.json")
    monkeypatch.setenv("PORTFOLIO_GROUP", "family")
    monkeypatch.setenv("PRICE_CSV_DIR", "/tmp/csv")
    monkeypatch.setenv("CACHE_TTL_SECONDS", "90")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("LOG_JSON_EVENTS", "off")
    settings = get_settings()
    assert settings.portfolios_path == "/tmp/p.json"
    assert settings.portfolio_group == "family"
    assert settings.price_csv_dir == "/tmp/csv"
    assert settings.cache_ttl_seconds == 90
    assert settings.log_level == "DEBUG"
    assert settings.log_json_events is False


def test_invalid_ttl_falls_back_to_default(monkeypatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("CACHE_TTL_SECONDS", "soon")
    monkeypatch.setenv("PORTFOLIO_GROUP", "  ")
    settings = get_settings()
    assert settings.cache_ttl_seconds == 3600
    assert settings.portfolio_group == "default"


def test_run_event_is_json_line(caplog) -> None:
    with caplog.at_level(logging.INFO, logger="stock_tracker.events"):
        log_run_event("leaderboard", 2025, 12.34567, True, warning="No price data for: XYZ", portfolios=3)
    payload = json.loads(caplog.records[-1].getMessage())
    assert payload["operation"] == "leaderboard"
    assert payload["year"] == 2025
    assert payload["latency_ms"] == 12.346
    assert payload["success"] is True
    assert payload["warning"] == "No price data for: XYZ"
    assert payload["portfolios"] == 3


def test_configure_logging_can_silence_events() -> None:
    try:
        configure_logging("warning", json_events=False)
        assert EVENT_LOGGER.disabled is True
    finally:
        EVENT_LOGGER.disabled = False
