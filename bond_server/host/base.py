"""Host application boundary consumed by the sync engine."""

from __future__ import annotations

from typing import Callable, Protocol

from bond_server.providers.models import Account, AssetProfile, Holding, RecordedQuote

Unsubscribe = Callable[[], None]


class HostApi(Protocol):
    async def list_accounts(self) -> list[Account]: ...

    async def get_holdings(self, account_id: str) -> list[Holding]: ...

    async def get_quote_history(self, symbol: str) -> list[RecordedQuote]: ...

    async def get_asset_profile(self, symbol: str) -> AssetProfile | None: ...

    async def update_asset_profile(self, profile: AssetProfile) -> None: ...

    async def update_quote(self, symbol: str, quote: RecordedQuote) -> None: ...

    async def on_portfolio_updated(self, callback: Callable[[], None]) -> Unsubscribe: ...
