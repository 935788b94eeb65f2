"""Process-wide cache for the remote bond price workbook."""

from __future__ import annotations

import asyncio
import logging
import time
from io import BytesIO

import pandas as pd

from bond_server.providers.http import SourceError, fetch_bytes
from bond_server.providers.models import Workbook

LOGGER = logging.getLogger(__name__)


def decode_workbook(content: bytes) -> Workbook:
    """Decode xlsx bytes into `{sheet name: rows}` with empty cells as None."""
    try:
        frames = pd.read_excel(BytesIO(content), sheet_name=None, header=None, dtype=object, engine="openpyxl")
    except Exception as error:
        raise SourceError("BAD_RESPONSE", "Workbook could not be decoded.") from error
    workbook: Workbook = {}
    for name, frame in frames.items():
        cleaned = frame.astype(object).where(frame.notna(), None)
        workbook[str(name)] = cleaned.values.tolist()
    return workbook


class SourceWorkbookCache:
    """Fetches the workbook once; concurrent callers share the in-flight download.

    A failed download clears the entry so the next call starts over. There is
    no expiry: a successful result lives for the rest of the process.
    """

    def __init__(self, url: str, timeout_seconds: float = 15.0) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._workbook: Workbook | None = None
        self._pending: asyncio.Task[Workbook] | None = None
        self.fetched_at: float | None = None

    @property
    def is_loaded(self) -> bool:
        return self._workbook is not None

    async def get_workbook(self) -> Workbook:
        if self._workbook is not None:
            return self._workbook
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._load())
        pending = self._pending
        try:
            workbook = await asyncio.shield(pending)
        except Exception:
            if self._pending is pending:
                self._pending = None
            raise
        if self._pending is pending:
            self._workbook = workbook
            self._pending = None
        return workbook

    def invalidate(self) -> None:
        self._workbook = None
        self._pending = None
        self.fetched_at = None

    async def _load(self) -> Workbook:
        started = time.perf_counter()
        try:
            content = await asyncio.to_thread(fetch_bytes, self.url, self.timeout_seconds)
            workbook = await asyncio.to_thread(decode_workbook, content)
        except SourceError as error:
            LOGGER.warning("workbook download failed: url=%s code=%s error=%s", self.url, error.code, error)
            raise
        self.fetched_at = time.time()
        LOGGER.info(
            "workbook loaded: url=%s sheets=%s latency_ms=%s",
            self.url,
            len(workbook),
            round((time.perf_counter() - started) * 1000, 2),
        )
        return workbook
