"""Environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_BONDS_URL = "https://www.gov.pl/attachment/b3ec5054-0cc1-45ce-900a-6242e284e65c"


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the bond price server."""

    app_name: str = "polish-bond-prices"
    app_version: str = "1.0.0"
    transport_mode: str = "auto"
    http_transport: str = "sse"
    host: str = "0.0.0.0"
    port: int = 8000
    mcp_path: str = "/mcp"
    health_path: str = "/health"
    bonds_source_url: str = DEFAULT_BONDS_URL
    request_timeout_seconds: float = 15.0
    schedule_mode: str = "events"
    interest_policy: str = "explicit"
    price_tolerance: float = 0.004
    quote_batch_size: int = 50
    write_lease_seconds: float = 1.5
    quote_currency: str = "PLN"
    holdings_file: str = "holdings.xlsx"
    quote_store_file: str = "bond_quotes.json"
    log_level: str = "INFO"


def _as_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _as_float(value: str | None, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _as_choice(value: str | None, choices: set[str], default: str) -> str:
    if value is None:
        return default
    normalized = value.strip().lower()
    return normalized if normalized in choices else default


def get_settings() -> Settings:
    """Load runtime settings from environment variables."""
    load_dotenv()

    return Settings(
        transport_mode=os.getenv("TRANSPORT_MODE", "auto").strip().lower(),
        http_transport=os.getenv("HTTP_TRANSPORT", "sse").strip().lower(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=_as_int(os.getenv("PORT"), 8000),
        mcp_path=os.getenv("MCP_PATH", "/mcp"),
        health_path=os.getenv("HEALTH_PATH", "/health"),
        bonds_source_url=os.getenv("BONDS_SOURCE_URL") or DEFAULT_BONDS_URL,
        request_timeout_seconds=_as_float(os.getenv("REQUEST_TIMEOUT_SECONDS"), 15.0),
        schedule_mode=_as_choice(os.getenv("SCHEDULE_MODE"), {"events", "daily"}, "events"),
        interest_policy=_as_choice(os.getenv("INTEREST_POLICY"), {"explicit", "rate"}, "explicit"),
        price_tolerance=_as_float(os.getenv("PRICE_TOLERANCE"), 0.004),
        quote_batch_size=_as_int(os.getenv("QUOTE_BATCH_SIZE"), 50),
        write_lease_seconds=_as_float(os.getenv("WRITE_LEASE_SECONDS"), 1.5),
        quote_currency=os.getenv("QUOTE_CURRENCY", "PLN").strip().upper() or "PLN",
        holdings_file=os.getenv("HOLDINGS_FILE", "holdings.xlsx"),
        quote_store_file=os.getenv("QUOTE_STORE_FILE", "bond_quotes.json"),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
