"""
pyDLOGTables: codec for Nortel Millennium DLOG configuration tables.

This library decodes, patches and re-encodes the fixed-layout binary tables
a Millennium payphone exchanges with its management host, and provides the
modem handshake used to reach the terminal.
"""

from __future__ import annotations

from .exceptions import (
    DLOGConnectionError,
    DLOGError,
    DLOGModemError,
    DLOGTableError,
    DLOGTimeoutError,
    ShortWriteError,
    SizeMismatchError,
    TruncatedReadError,
)
from .table import (
    DecodedTable,
    TableId,
    decode_table,
    encode_table,
    read_table,
    save_table,
    write_table,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Exceptions
    "DLOGConnectionError",
    "DLOGError",
    "DLOGModemError",
    "DLOGTableError",
    "DLOGTimeoutError",
    "ShortWriteError",
    "SizeMismatchError",
    "TruncatedReadError",
    # Table codec
    "DecodedTable",
    "TableId",
    "decode_table",
    "encode_table",
    "read_table",
    "save_table",
    "write_table",
]
