"""Structured tool event logging."""

from __future__ import annotations

import json
import logging
import time

EVENT_LOGGER = logging.getLogger("bond_server.events")


def log_tool_event(
    tool: str,
    symbol: str | None,
    latency_ms: float,
    success: bool,
    warning: str | None = None,
) -> None:
    payload = {
        "tool": tool,
        "symbol": symbol,
        "latency_ms": round(latency_ms, 3),
        "success": success,
        "timestamp": int(time.time()),
    }
    if warning:
        payload["warning"] = warning
    EVENT_LOGGER.info(json.dumps(payload, ensure_ascii=True))


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
