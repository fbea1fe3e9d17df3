"""Common types shared across the table codec components.

This module contains the table identifiers and the warning records produced
while decoding.

Reference: Nortel Millennium Database Design Report MSR 2.1
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, StrEnum
from typing import Any, Self


class TableId(IntEnum):
    """DLOG table identifiers supported by the codec.

    The numeric value is the table number used by the terminal firmware. Each
    member also carries the short mnemonic used in DLOG documentation.
    """

    def __new__(cls, value: int, mnemonic: str = "") -> Self:
        obj = int.__new__(cls, value)
        obj._value_ = value
        obj.mnemonic = mnemonic
        return obj

    mnemonic: str

    FEATURE_CONFIG = 0x1A, "FEATRU"  # Feature configuration options
    COIN_VALIDATION = 0x32, "COINVL"  # Coin validation parameters
    REP_DIAL_LIST = 0x3A, "RDLIST"  # Repertory dialer (speed dial) list
    RATE = 0x49, "RATE"  # Rate table
    INTL_SBR = 0x87, "INTL_SBR"  # International set-based rating

    def __str__(self) -> str:
        return f"{self.mnemonic} Table {self.value} (0x{self.value:02x})"


class WarningKind(StrEnum):
    """Kinds of decode warnings (value outside the documented vocabulary)."""

    UNKNOWN_FLAG_BIT = "unknown flag bit"
    UNKNOWN_CLASSIFICATION = "unknown classification"


@dataclass(frozen=True, kw_only=True)
class DecodeWarning:
    """A field value the firmware documentation does not describe.

    Decoding never fails once the buffer size is validated; undocumented
    values are kept verbatim and reported through these records instead.

    Attributes:
        kind: Warning kind
        table_id: Table the value was found in
        field: Field name (``array[slot].member`` for sub-record members)
        offset: Canonical byte offset of the value
        value: The offending raw value
    """

    kind: WarningKind
    table_id: TableId
    field: str
    offset: int
    value: Any

    def __str__(self) -> str:
        return f"{self.table_id}: {self.kind} in {self.field} at offset {self.offset}: {self.value!r}"
