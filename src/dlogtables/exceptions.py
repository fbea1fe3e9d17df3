"""DLOG exception classes."""

from __future__ import annotations


class DLOGError(Exception):
    """Base exception for all DLOG errors."""


class DLOGConnectionError(DLOGError):
    """Connection-related errors."""


class DLOGTimeoutError(DLOGError):
    """Timeout waiting for data or response."""


class DLOGModemError(DLOGError):
    """Modem did not acknowledge an AT command."""


class DLOGTableError(DLOGError):
    """Table-level errors (size validation, truncated reads, short writes).

    Attributes:
        table_id: Table identifier the failing operation was working on
    """

    table_id: int

    def __init__(self, table_id: int, message: str) -> None:
        super().__init__(message)
        self.table_id = table_id


class _TableSizeError(DLOGTableError):
    expected: int
    actual: int

    _what: str = ""

    def __init__(self, table_id: int, expected: int, actual: int) -> None:
        super().__init__(
            table_id,
            f"Table 0x{table_id:02X} ({table_id}): {self._what}, expected {expected} bytes, got {actual} bytes",
        )
        self.expected = expected
        self.actual = actual


class SizeMismatchError(_TableSizeError):
    """Input buffer length differs from the table's file size."""

    _what = "size mismatch"


class TruncatedReadError(_TableSizeError):
    """Byte source returned fewer bytes than it announced."""

    _what = "truncated read"


class ShortWriteError(_TableSizeError):
    """Byte sink accepted fewer bytes than the encoded table."""

    _what = "short write"
