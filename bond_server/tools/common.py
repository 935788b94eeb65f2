"""Shared tool-layer helpers."""

from __future__ import annotations

import time
from typing import Awaitable, TypeVar

from bond_server.runtime.monitoring import log_tool_event

T = TypeVar("T")


def ensure_data(data: T | None, default_message: str = "No data returned.") -> T:
    if data is not None:
        return data
    raise ValueError(default_message)


async def timed_call(tool: str, symbol: str | None, call: Awaitable[T]) -> T:
    started = time.perf_counter()
    try:
        result = await call
    except Exception:
        log_tool_event(tool, symbol, (time.perf_counter() - started) * 1000.0, success=False)
        raise
    latency_ms = (time.perf_counter() - started) * 1000.0
    warning = "slow_response" if latency_ms > 2000 else None
    log_tool_event(tool, symbol, latency_ms, success=True, warning=warning)
    return result
