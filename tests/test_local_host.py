import asyncio
import json
import threading
from datetime import date

import pandas as pd
import pytest

from bond_server.host.local import LocalHost, holdings_from_frame, load_holdings_frame
from bond_server.providers.models import AssetProfile
from bond_server.services.quotes import build_quote


def _write_holdings(tmp_path) -> str:
    path = tmp_path / "holdings.csv"
    path.write_text(
        "Account,Symbol,Quantity\n"
        "ike,ror0127.19,10\n"
        "ike,AAPL,3\n"
        "ikze,EDO0434,\n"
        ",OTS0425,1\n",
        encoding="utf-8",
    )
    return str(path)


def test_holdings_frame_requires_symbol_column(tmp_path) -> None:
    path = tmp_path / "holdings.csv"
    path.write_text("Ticker,Quantity\nEDO0434,1\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_holdings_frame(str(path))
    with pytest.raises(ValueError):
        load_holdings_frame(str(tmp_path / "holdings.json"))


def test_holdings_from_frame_defaults_account_and_quantity() -> None:
    frame = pd.DataFrame({"Symbol": ["edo0434", None, "  "]})
    holdings = holdings_from_frame(frame)
    assert len(holdings) == 1
    assert holdings[0].account_id == "default"
    assert holdings[0].symbol == "EDO0434"
    assert holdings[0].quantity == 0.0


def test_accounts_and_holdings_come_from_spreadsheet(tmp_path) -> None:
    host = LocalHost(_write_holdings(tmp_path), str(tmp_path / "store.json"))

    async def scenario():
        accounts = await host.list_accounts()
        ike = await host.get_holdings("ike")
        return accounts, ike

    accounts, ike = asyncio.run(scenario())
    assert [account.id for account in accounts] == ["ike", "ikze", "default"]
    assert [holding.symbol for holding in ike] == ["ROR0127.19", "AAPL"]
    assert ike[0].quantity == 10.0


def test_quotes_and_profiles_persist_across_instances(tmp_path) -> None:
    store = tmp_path / "store.json"
    host = LocalHost(_write_holdings(tmp_path), str(store), emit_on_write=False)

    async def scenario() -> None:
        await host.update_quote("ROR0127.19", build_quote("ROR0127.19", date(2024, 7, 19), 101.0))
        await host.update_quote("ROR0127.19", build_quote("ROR0127.19", date(2024, 1, 19), 100.0))
        await host.update_asset_profile(AssetProfile(symbol="ROR0127.19", name="ROR0127 Roczne"))
        await host.flush()

    asyncio.run(scenario())
    payload = json.loads(store.read_text(encoding="utf-8"))
    assert [item["id"] for item in payload["quotes"]["ROR0127.19"]] == [
        "20240119_ROR0127.19",
        "20240719_ROR0127.19",
    ]

    reopened = LocalHost(_write_holdings(tmp_path), str(store))
    history = asyncio.run(reopened.get_quote_history("ror0127.19"))
    assert [quote.adjclose for quote in history] == [100.0, 101.0]
    profile = asyncio.run(reopened.get_asset_profile("ROR0127.19"))
    assert profile.name == "ROR0127 Roczne"
    assert asyncio.run(reopened.get_asset_profile("EDO0434")) == AssetProfile(symbol="EDO0434")


def test_quote_writes_emit_one_portfolio_event(tmp_path) -> None:
    host = LocalHost(_write_holdings(tmp_path), str(tmp_path / "store.json"))
    events: list[str] = []

    def broken_listener() -> None:
        raise RuntimeError("listener bug")

    async def scenario() -> None:
        unsubscribe = await host.on_portfolio_updated(lambda: events.append("updated"))
        await host.on_portfolio_updated(broken_listener)
        for day in (1, 2, 3):
            await host.update_quote("EDO0434", build_quote("EDO0434", date(2024, 1, day), 100.0))
        await host.flush()
        unsubscribe()
        await host.update_quote("EDO0434", build_quote("EDO0434", date(2024, 1, 4), 100.1))
        await host.flush()

    asyncio.run(scenario())
    assert events == ["updated"]


def test_store_writes_run_off_the_event_loop_thread(tmp_path) -> None:
    host = LocalHost(_write_holdings(tmp_path), str(tmp_path / "store.json"), emit_on_write=False)
    writer_threads: list[int] = []
    original_write = host._write

    def recording_write(payload) -> None:
        writer_threads.append(threading.get_ident())
        original_write(payload)

    host._write = recording_write

    async def scenario() -> int:
        await host.update_quote("EDO0434", build_quote("EDO0434", date(2024, 1, 1), 100.0))
        await host.update_asset_profile(AssetProfile(symbol="EDO0434", name="EDO0434"))
        await host.flush()
        return threading.get_ident()

    loop_thread = asyncio.run(scenario())
    assert len(writer_threads) == 2
    assert loop_thread not in writer_threads
    payload = json.loads((tmp_path / "store.json").read_text(encoding="utf-8"))
    assert [item["id"] for item in payload["quotes"]["EDO0434"]] == ["20240101_EDO0434"]
    assert payload["profiles"]["EDO0434"]["name"] == "EDO0434"
