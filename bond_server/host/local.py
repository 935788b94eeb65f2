"""File-backed host: holdings from a spreadsheet, quotes and profiles in a JSON store."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import asdict
from typing import Any, Callable

import pandas as pd

from bond_server.bonds.symbols import normalize_symbol
from bond_server.host.base import Unsubscribe
from bond_server.providers.models import Account, AssetProfile, Holding, RecordedQuote

LOGGER = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["Symbol"]
DEFAULT_ACCOUNT = "default"


def load_holdings_frame(file_path: str) -> pd.DataFrame:
    absolute_path = file_path if os.path.isabs(file_path) else os.path.abspath(file_path)
    ext = os.path.splitext(absolute_path)[1].lower()
    if ext in {".xlsx", ".xls"}:
        frame = pd.read_excel(absolute_path, sheet_name=0)
    elif ext == ".csv":
        frame = pd.read_csv(absolute_path)
    else:
        raise ValueError("Holdings input must be an Excel (.xlsx, .xls) or CSV file.")
    missing = [col for col in REQUIRED_COLUMNS if col not in frame.columns]
    if missing:
        raise ValueError(f"Required column is missing: {', '.join(missing)}")
    return frame


def holdings_from_frame(frame: pd.DataFrame) -> list[Holding]:
    holdings: list[Holding] = []
    for _, row in frame.iterrows():
        symbol = row.get("Symbol")
        if pd.isna(symbol) or not str(symbol).strip():
            continue
        account = row.get("Account", DEFAULT_ACCOUNT)
        quantity = row.get("Quantity", 0.0)
        holdings.append(
            Holding(
                account_id=DEFAULT_ACCOUNT if pd.isna(account) else str(account).strip(),
                symbol=normalize_symbol(str(symbol)),
                quantity=0.0 if pd.isna(quantity) else float(quantity),
            )
        )
    return holdings


class LocalHost:
    """Emits one portfolio-updated event per burst of quote writes."""

    def __init__(self, holdings_path: str, store_path: str, emit_on_write: bool = True) -> None:
        self.holdings_path = holdings_path
        self.store_path = store_path
        self.emit_on_write = emit_on_write
        self._quotes: dict[str, dict[str, RecordedQuote]] = {}
        self._profiles: dict[str, AssetProfile] = {}
        self._listeners: list[Callable[[], None]] = []
        self._notify_scheduled = False
        self._pending: set[asyncio.Task[None]] = set()
        self._save_lock = asyncio.Lock()
        self._load_store()

    def _load_store(self) -> None:
        if not os.path.exists(self.store_path):
            return
        with open(self.store_path, encoding="utf-8") as handle:
            payload: dict[str, Any] = json.load(handle)
        for symbol, quotes in (payload.get("quotes") or {}).items():
            self._quotes[symbol] = {item["id"]: RecordedQuote(**item) for item in quotes}
        for symbol, profile in (payload.get("profiles") or {}).items():
            self._profiles[symbol] = AssetProfile(**profile)

    def _payload(self) -> dict[str, Any]:
        return {
            "quotes": {
                symbol: [asdict(quote) for quote in sorted(quotes.values(), key=lambda item: item.timestamp)]
                for symbol, quotes in self._quotes.items()
            },
            "profiles": {symbol: asdict(profile) for symbol, profile in self._profiles.items()},
        }

    def _write(self, payload: dict[str, Any]) -> None:
        with open(self.store_path, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=True, indent=2)

    async def save(self) -> None:
        # snapshot on the loop, write in a worker thread, one write at a time
        async with self._save_lock:
            await asyncio.to_thread(self._write, self._payload())

    async def _holdings(self) -> list[Holding]:
        frame = await asyncio.to_thread(load_holdings_frame, self.holdings_path)
        return holdings_from_frame(frame)

    async def list_accounts(self) -> list[Account]:
        holdings = await self._holdings()
        account_ids = dict.fromkeys(holding.account_id for holding in holdings)
        return [Account(id=account_id, name=account_id) for account_id in account_ids]

    async def get_holdings(self, account_id: str) -> list[Holding]:
        return [holding for holding in await self._holdings() if holding.account_id == account_id]

    async def get_quote_history(self, symbol: str) -> list[RecordedQuote]:
        quotes = self._quotes.get(normalize_symbol(symbol), {})
        return sorted(quotes.values(), key=lambda item: item.timestamp)

    async def get_asset_profile(self, symbol: str) -> AssetProfile | None:
        normalized = normalize_symbol(symbol)
        return self._profiles.get(normalized) or AssetProfile(symbol=normalized)

    async def update_asset_profile(self, profile: AssetProfile) -> None:
        self._profiles[normalize_symbol(profile.symbol)] = profile
        await self.save()

    async def update_quote(self, symbol: str, quote: RecordedQuote) -> None:
        self._quotes.setdefault(normalize_symbol(symbol), {})[quote.id] = quote
        if not self._notify_scheduled:
            self._notify_scheduled = True
            task = asyncio.ensure_future(self._flush_and_notify())
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def flush(self) -> None:
        """Wait for scheduled quote writes and their portfolio event."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def _flush_and_notify(self) -> None:
        self._notify_scheduled = False
        await self.save()
        if self.emit_on_write:
            self.notify_portfolio_updated()

    async def on_portfolio_updated(self, callback: Callable[[], None]) -> Unsubscribe:
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def notify_portfolio_updated(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                LOGGER.exception("portfolio listener failed")
