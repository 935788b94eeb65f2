"""Incremental synchronization of synthesized bond prices into the host quote store."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from bond_server.bonds.catalog import SeriesCatalog
from bond_server.bonds.schedule import ScheduleBuilder
from bond_server.bonds.symbols import normalize_symbol, parse_bond_symbol
from bond_server.host.base import HostApi, Unsubscribe
from bond_server.providers.models import BondReference, RecordedQuote
from bond_server.services.metadata import ensure_bond_metadata
from bond_server.services.quotes import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_TOLERANCE,
    diff_schedule,
    index_history,
    upsert_in_batches,
)

LOGGER = logging.getLogger(__name__)
DEFAULT_LEASE_SECONDS = 1.5


class SymbolState(str, Enum):
    UNSEEN = "unseen"
    IN_FLIGHT = "in_flight"
    PROCESSED = "processed"
    SKIPPED = "skipped"


class WriteLease:
    """Suppression window opened by our own quote writes."""

    def __init__(self, duration_seconds: float = DEFAULT_LEASE_SECONDS, clock: Callable[[], float] = time.monotonic) -> None:
        self.duration_seconds = max(0.0, duration_seconds)
        self._clock = clock
        self._expires_at: float | None = None

    def acquire(self) -> float:
        self._expires_at = self._clock() + self.duration_seconds
        return self._expires_at

    def active(self) -> bool:
        if self._expires_at is None:
            return False
        if self._clock() >= self._expires_at:
            self._expires_at = None
            return False
        return True

    def release(self) -> None:
        self._expires_at = None


@dataclass
class SyncReport:
    processed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    quotes_written: int = 0


class SyncEngine:
    """Maps held bond symbols to price schedules and upserts what changed.

    Per symbol: unseen -> in_flight -> processed | skipped. Processed and
    skipped are sticky for the life of the engine; a symbol whose pipeline
    raises goes back to unseen and is retried on the next pass.
    """

    def __init__(
        self,
        host: HostApi,
        catalog: SeriesCatalog,
        builder: ScheduleBuilder,
        tolerance: float = DEFAULT_TOLERANCE,
        batch_size: int = DEFAULT_BATCH_SIZE,
        currency: str = "PLN",
        lease: WriteLease | None = None,
    ) -> None:
        self._host = host
        self._catalog = catalog
        self._builder = builder
        self.tolerance = tolerance
        self.batch_size = batch_size
        self.currency = currency
        self.lease = lease or WriteLease()
        self._states: dict[str, SymbolState] = {}
        self._enriched: set[str] = set()
        self._current_pass: asyncio.Task[SyncReport] | None = None
        self._background: set[asyncio.Task[SyncReport]] = set()
        self._unsubscribe: Unsubscribe | None = None
        self._stopped = False

    def state_of(self, symbol: str) -> SymbolState:
        return self._states.get(normalize_symbol(symbol), SymbolState.UNSEEN)

    def status(self) -> dict[str, str]:
        return {symbol: state.value for symbol, state in sorted(self._states.items())}

    async def refresh_holdings(self) -> SyncReport:
        """Run one pass, or join the pass already in progress."""
        if self._current_pass is None:
            self._current_pass = asyncio.ensure_future(self._run_pass())
        return await asyncio.shield(self._current_pass)

    def on_portfolio_updated(self) -> None:
        if self._stopped:
            return
        if self.lease.active():
            LOGGER.debug("portfolio update ignored: own write lease active")
            return
        task = asyncio.ensure_future(self.refresh_holdings())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def start(self) -> None:
        try:
            unsubscribe = await self._host.on_portfolio_updated(self.on_portfolio_updated)
            if self._stopped:
                unsubscribe()
                return
            self._unsubscribe = unsubscribe
            await self.refresh_holdings()
        except Exception as error:
            LOGGER.warning("bond tracking start failed: error=%s", error)

    def stop(self) -> None:
        self._stopped = True
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.lease.release()

    async def _run_pass(self) -> SyncReport:
        report = SyncReport()
        try:
            try:
                symbols = await self._holding_symbols()
            except Exception as error:
                LOGGER.warning("holdings load failed: error=%s", error)
                return report

            for symbol in symbols:
                if self._states.get(symbol, SymbolState.UNSEEN) is not SymbolState.UNSEEN:
                    continue
                reference = parse_bond_symbol(symbol)
                if reference is None:
                    continue
                self._states[symbol] = SymbolState.IN_FLIGHT
                try:
                    state = await self._process_symbol(symbol, reference, report)
                except Exception as error:
                    LOGGER.warning("bond update failed: symbol=%s error=%s", symbol, error)
                    self._states.pop(symbol, None)
                    report.failed.append(symbol)
                    continue
                self._states[symbol] = state
                if state is SymbolState.PROCESSED:
                    report.processed.append(symbol)
                else:
                    report.skipped.append(symbol)
            return report
        finally:
            self._current_pass = None

    async def _holding_symbols(self) -> list[str]:
        accounts = await self._host.list_accounts()

        async def _holdings(account_id: str):
            try:
                return await self._host.get_holdings(account_id)
            except Exception as error:
                LOGGER.warning("holdings load failed: account=%s error=%s", account_id, error)
                return []

        per_account = await asyncio.gather(*(_holdings(account.id) for account in accounts))
        symbols: dict[str, None] = {}
        for holdings in per_account:
            for holding in holdings:
                symbol = normalize_symbol(holding.symbol or "")
                if symbol:
                    symbols.setdefault(symbol, None)
        return list(symbols)

    async def _process_symbol(self, symbol: str, reference: BondReference, report: SyncReport) -> SymbolState:
        series = await self._catalog.get_series(reference.series_id, reference.bond_type)
        if series is None:
            LOGGER.warning("no bond series data: symbol=%s", symbol)
            return SymbolState.SKIPPED

        points = self._builder.build(series, reference.purchase_day)
        if not points:
            LOGGER.warning("no price schedule: symbol=%s", symbol)
            return SymbolState.SKIPPED

        if symbol not in self._enriched:
            try:
                await ensure_bond_metadata(self._host, self._catalog, symbol, reference)
                self._enriched.add(symbol)
            except Exception as error:
                LOGGER.warning("metadata update failed: symbol=%s error=%s", symbol, error)

        history: list[RecordedQuote] = []
        try:
            history = await self._host.get_quote_history(symbol)
        except Exception as error:
            LOGGER.warning("quote history load failed: symbol=%s error=%s", symbol, error)

        diff = diff_schedule(symbol, points, index_history(history), self.tolerance, self.currency)
        writes = diff.writes
        if writes:
            self.lease.acquire()
            try:
                await upsert_in_batches(self._host, writes, self.batch_size)
            finally:
                self.lease.acquire()
            report.quotes_written += len(writes)

        LOGGER.info(
            "bond quotes synced: symbol=%s added=%s updated=%s unchanged=%s buyback=%s",
            symbol,
            len(diff.additions),
            len(diff.updates),
            diff.unchanged,
            points[-1].price,
        )
        return SymbolState.PROCESSED
