"""Table codec components for DLOG table decoding/encoding.

This package contains the Layout Registry, the scalar/flag and sub-record
decoders, the generic codec and the provisioning patches.

Reference: Nortel Millennium Database Design Report MSR 2.1
"""

from .codec import (
    DecodedTable,
    decode_table,
    encode_table,
    read_table,
    save_table,
    validate_buffer,
    write_table,
)
from .common import DecodeWarning, TableId, WarningKind
from .layout import TableLayout, get_layout
from .patch import (
    REFERENCE_INTERNATIONAL_RATES,
    apply_coin_provisioning,
    replace_international_rates,
)
from .record import (
    CoinEntry,
    CoinType,
    IntlRateEntry,
    RateEntry,
    RateSelector,
    RateType,
    RepDialEntry,
    SelectorClass,
)

__all__ = [
    # Common types
    "DecodeWarning",
    "TableId",
    "WarningKind",
    # Layouts
    "TableLayout",
    "get_layout",
    # Codec
    "DecodedTable",
    "decode_table",
    "encode_table",
    "read_table",
    "save_table",
    "validate_buffer",
    "write_table",
    # Patches
    "REFERENCE_INTERNATIONAL_RATES",
    "apply_coin_provisioning",
    "replace_international_rates",
    # Sub-records
    "CoinEntry",
    "CoinType",
    "IntlRateEntry",
    "RateEntry",
    "RateSelector",
    "RateType",
    "RepDialEntry",
    "SelectorClass",
]
