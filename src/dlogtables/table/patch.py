"""Provisioning patches applied to decoded tables before upload.

Both operations mutate a DecodedTable in place and are idempotent: applying
one twice leaves the table exactly as applying it once.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace

from .codec import DecodedTable
from .common import TableId
from .layout import INTL_RATE_TABLE_MAX_ENTRIES
from .record import (
    BLOCKED,
    NCC_RATED,
    CoinEntry,
    CoinType,
    IntlRateEntry,
    RateSelector,
)

_LOGGER = logging.getLogger(__name__)

COIN_PARAM_DEFAULT = 0x03  # Known-good validation parameter byte


@dataclass(frozen=True, kw_only=True)
class CoinOverride:
    """Values forced onto one coin type (None leaves the field untouched)."""

    param: int = COIN_PARAM_DEFAULT
    value: int | None = None
    volume: int | None = None


COIN_PROVISIONING: Mapping[CoinType, CoinOverride] = {
    CoinType.CDN_NICKEL: CoinOverride(),
    CoinType.CDN_NICKEL2: CoinOverride(),
    CoinType.CDN_DIME: CoinOverride(),
    CoinType.CDN_QUARTER: CoinOverride(),
    CoinType.CDN_DOLLAR: CoinOverride(),
    CoinType.US_DOLLAR: CoinOverride(value=100, volume=40),
    CoinType.CDN_STEEL_NICKEL: CoinOverride(value=5, volume=20),
    CoinType.CDN_STEEL_DIME: CoinOverride(value=10, volume=10),
    CoinType.CDN_STEEL_QUARTER: CoinOverride(value=25, volume=25),
    CoinType.CDN_DOLLAR2: CoinOverride(value=100, volume=40),
}

REFERENCE_INTERNATIONAL_RATES: tuple[tuple[int, RateSelector], ...] = (
    (44, RateSelector(6)),  # United Kingdom
    (7, RateSelector(7)),  # Russia
    (850, BLOCKED),  # North Korea
    (98, BLOCKED),  # Iran
    (218, BLOCKED),  # Libya
    (249, BLOCKED),  # Sudan
    (963, BLOCKED),  # Syria
    (43, NCC_RATED),  # Austria
)


def _require_table(table: DecodedTable, table_id: TableId) -> None:
    if table.table_id is not table_id:
        raise ValueError(f"Patch applies to {table_id}, got {table.table_id}")


def apply_coin_provisioning(
    table: DecodedTable,
    overrides: Mapping[CoinType, CoinOverride] = COIN_PROVISIONING,
) -> None:
    """Force known-good coin parameters onto a COINVL table.

    Overrides are keyed by coin type, never by slot position. Coin types not
    present in ``overrides`` are left unchanged.

    Args:
        table: Decoded COINVL table (modified in place)
        overrides: Values to force per coin type

    Raises:
        ValueError: If the table is not a COINVL table
    """
    _require_table(table, TableId.COIN_VALIDATION)

    for slot, entry in table.entries("coins"):
        assert isinstance(entry, CoinEntry)

        override = overrides.get(entry.coin_type)
        if override is None:
            continue

        patched = replace(
            entry,
            param=override.param,
            value=entry.value if override.value is None else override.value,
            volume=entry.volume if override.volume is None else override.volume,
        )

        if patched != entry:
            _LOGGER.debug("Coin %s: %s -> %s", entry.coin_type.label, entry, patched)
            table.set_entry("coins", slot, patched)


def replace_international_rates(
    table: DecodedTable,
    entries: Iterable[tuple[int, int]] = REFERENCE_INTERNATIONAL_RATES,
) -> None:
    """Replace the whole INTL_SBR entry array.

    All existing entries are discarded (this is not a merge); the given
    (calling code, rate selector) pairs are installed from slot 0 and the
    remaining slots are zero-filled.

    Args:
        table: Decoded INTL_SBR table (modified in place)
        entries: (calling code, selector byte) pairs

    Raises:
        ValueError: If the table is not an INTL_SBR table, the list does not
                    fit the array, or a calling code is 0 or wider than 16 bits
    """
    _require_table(table, TableId.INTL_SBR)

    new_entries = [
        IntlRateEntry(calling_code=calling_code, selector=RateSelector(selector))
        for calling_code, selector in entries
    ]

    if len(new_entries) > INTL_RATE_TABLE_MAX_ENTRIES:
        raise ValueError(
            f"{len(new_entries)} international rates exceed the table size of {INTL_RATE_TABLE_MAX_ENTRIES}"
        )

    for entry in new_entries:
        if not 0 < entry.calling_code <= 0xFFFF:
            raise ValueError(f"Calling code must be 1-65535, got {entry.calling_code}")

    new_entries.extend(IntlRateEntry() for _ in range(INTL_RATE_TABLE_MAX_ENTRIES - len(new_entries)))

    for slot, entry in enumerate(new_entries):
        table.set_entry("entries", slot, entry)

    _LOGGER.debug("Installed %d international rate entries", len(table.entries("entries")))
