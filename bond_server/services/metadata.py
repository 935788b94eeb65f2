"""Asset profile enrichment for tracked bond instruments."""

from __future__ import annotations

import json
import logging
from dataclasses import replace

from bond_server.bonds.catalog import SeriesCatalog
from bond_server.host.base import HostApi
from bond_server.providers.models import AssetProfile, BondReference

LOGGER = logging.getLogger(__name__)

DEFAULT_ASSET_CLASS = "Bonds"
DEFAULT_ASSET_SUB_CLASS = "Government"
DEFAULT_COUNTRIES = json.dumps([{"name": "Poland", "weight": 100}])


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def format_bond_name(series_id: str, description: str | None = None) -> str:
    """Series id followed by the last line of the product description."""
    if not description:
        return series_id
    lines = [line.strip() for line in description.splitlines() if line.strip()]
    if not lines:
        return series_id
    return f"{series_id} {lines[-1]}".strip()


async def ensure_bond_metadata(
    host: HostApi,
    catalog: SeriesCatalog,
    symbol: str,
    reference: BondReference,
) -> bool:
    """Fill in missing classification fields; never overwrites a user-set name.

    Returns True when the profile was written.
    """
    try:
        profile = await host.get_asset_profile(symbol)
    except Exception as error:
        LOGGER.warning("profile load failed: symbol=%s error=%s", symbol, error)
        return False
    if profile is None:
        return False

    name = None
    if _blank(profile.name):
        name = format_bond_name(reference.series_id, await catalog.get_description(reference.bond_type))
    needs_update = (
        _blank(profile.asset_class)
        or _blank(profile.asset_sub_class)
        or _blank(profile.countries)
        or name is not None
    )
    if not needs_update:
        return False

    updated: AssetProfile = replace(
        profile,
        symbol=symbol,
        name=name if name is not None else profile.name,
        asset_class=DEFAULT_ASSET_CLASS if _blank(profile.asset_class) else profile.asset_class.strip(),
        asset_sub_class=DEFAULT_ASSET_SUB_CLASS if _blank(profile.asset_sub_class) else profile.asset_sub_class.strip(),
        countries=DEFAULT_COUNTRIES if _blank(profile.countries) else profile.countries,
        sectors=profile.sectors or "",
        notes=profile.notes or "",
    )
    await host.update_asset_profile(updated)
    LOGGER.info("profile enriched: symbol=%s name=%s", symbol, updated.name)
    return True
