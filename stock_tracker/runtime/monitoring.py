"""Logging setup and structured run events."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

EVENT_LOGGER = logging.getLogger("stock_tracker.events")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def configure_logging(level: str = "INFO", json_events: bool = True) -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    EVENT_LOGGER.disabled = not json_events


def log_run_event(
    operation: str,
    year: int,
    latency_ms: float,
    success: bool,
    warning: str | None = None,
    **fields: Any,
) -> None:
    payload: dict[str, Any] = {
        "operation": operation,
        "year": year,
        "latency_ms": round(latency_ms, 3),
        "success": success,
        "timestamp": int(time.time()),
        **fields,
    }
    if warning:
        payload["warning"] = warning
    EVENT_LOGGER.info(json.dumps(payload, ensure_ascii=True, default=str))
