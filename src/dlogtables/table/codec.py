"""Generic DLOG table codec.

This module implements one data-driven codec for every table in the Layout
Registry. It provides:

Classes:
    - DecodedTable: In-memory representation of one decoded table

Functions:
    - validate_buffer: Size check that must pass before any field is read
    - decode_table / encode_table: Bytes <-> DecodedTable
    - read_table / write_table: Decode from a byte source, encode to a sink
    - save_table: Encode to a file through a temporary file and rename

The framing quirk:
    Several tables are stored without their leading header byte. The header
    is kept as a separate ``header_byte`` value (None when the buffer did not
    carry it) instead of treating the buffer as offset by one byte, and it is
    never written back to a file image.
"""

from __future__ import annotations

import logging
import os
import tempfile
from enum import IntFlag
from pathlib import Path
from typing import Any, BinaryIO

from ..exceptions import ShortWriteError, SizeMismatchError, TruncatedReadError
from .common import DecodeWarning, TableId, WarningKind
from .field import (
    ArrayDescriptor,
    FieldDescriptor,
    FieldEncoding,
    decode_scalar,
    encode_scalar,
    flag_names,
    undocumented_value,
)
from .layout import TableLayout, get_layout
from .record import CoinEntry, CoinType, SubRecord

_LOGGER = logging.getLogger(__name__)

HEADER_BYTE_MAX = 0xFF
DEFAULT_FILE_MODE = 0o666  # Before the umask is applied

# =============================================================================
# Buffer Validator
# =============================================================================


def validate_buffer(table_id: int, data: bytes) -> TableLayout:
    """Check that ``data`` is exactly one stored table.

    Args:
        table_id: Table identifier
        data: Stored table bytes (header byte omitted where the layout says so)

    Returns:
        The table's layout

    Raises:
        ValueError: If the table id is unknown
        SizeMismatchError: If the buffer length differs from the file size
    """
    layout = get_layout(table_id)

    if len(data) != layout.file_size:
        raise SizeMismatchError(int(table_id), layout.file_size, len(data))

    return layout


# =============================================================================
# Table Model
# =============================================================================


class DecodedTable:
    """Decoded, in-memory representation of one DLOG table.

    A DecodedTable is created by ``decode_table`` from a validated buffer (or
    by ``DecodedTable.blank``) and owned by a single caller. It is mutated only
    through ``set_scalar``, ``set_entry`` and the provisioning patches in
    ``dlogtables.table.patch``.

    Attributes:
        table_id: Table identifier
        layout: The table's byte layout
        header_byte: Leading header byte, None when the buffer omitted it
        scalars: Integer, enumerated and selector fields by name
        flags: Flag fields by name
        blocks: Opaque byte blocks (spare, pad, timestamp) by name
        arrays: Sub-record arrays by name, one record per slot
        warnings: Values found outside the documented vocabulary

    Usage:
        table = decode_table(TableId.RATE, data)

        for slot, entry in table.entries("rates"):
            print(slot, entry.classification, entry.initial_charge)
    """

    table_id: TableId
    layout: TableLayout
    header_byte: int | None

    scalars: dict[str, Any]
    flags: dict[str, IntFlag]
    blocks: dict[str, bytes]
    arrays: dict[str, list[SubRecord]]

    warnings: list[DecodeWarning]

    def __init__(self, layout: TableLayout, header_byte: int | None = None) -> None:
        self.table_id = layout.table_id
        self.layout = layout
        self.header_byte = header_byte

        self.scalars = {}
        self.flags = {}
        self.blocks = {}
        self.arrays = {}

        self.warnings = []

    @classmethod
    def blank(cls, table_id: int) -> DecodedTable:
        """Create a table with every byte zero (all array slots unused)."""
        layout = get_layout(table_id)
        return decode_table(table_id, bytes(layout.file_size))

    def __repr__(self) -> str:
        return f"DecodedTable({self.table_id!s}, warnings={len(self.warnings)})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DecodedTable):
            return NotImplemented
        return (
            self.table_id is other.table_id
            and self.header_byte == other.header_byte
            and self.scalars == other.scalars
            and self.flags == other.flags
            and self.blocks == other.blocks
            and self.arrays == other.arrays
        )

    __hash__ = None  # type: ignore[assignment]

    def value(self, name: str) -> Any:
        """Return the decoded value of a non-array field."""
        descriptor = self.layout.field(name)

        if descriptor.encoding is FieldEncoding.FLAGS:
            return self.flags[name]
        if descriptor.encoding is FieldEncoding.BYTES:
            return self.blocks[name]
        if descriptor.encoding is FieldEncoding.ARRAY:
            raise KeyError(f"{name!r} is an array, use entries() or arrays[{name!r}]")
        return self.scalars[name]

    def set_scalar(self, name: str, value: Any) -> None:
        """Override one non-array field.

        The value is checked against the field width, and re-decoded so the
        stored value has the same type a fresh decode would produce.

        Raises:
            KeyError: If the table has no such field
            ValueError: If the value does not fit the field
        """
        descriptor = self.layout.field(name)

        raw = encode_scalar(descriptor, value)

        self._store(descriptor, decode_scalar(descriptor, raw))

    def set_entry(self, name: str, slot: int, entry: SubRecord) -> None:
        """Replace the record in one array slot.

        Raises:
            KeyError: If the table has no such array
            TypeError: If the record kind does not match the array
            IndexError: If the slot is out of range
            ValueError: If a member does not fit its width, or a coin entry's
                        type is not the coin its slot holds
        """
        descriptor = self._array(name)

        if not isinstance(entry, descriptor.kind.value.record_type):
            raise TypeError(f"{name} holds {descriptor.kind.value.record_type.__name__}, got {type(entry).__name__}")

        if not 0 <= slot < descriptor.count:
            raise IndexError(f"{name} has {descriptor.count} slots, got slot {slot}")

        # Coin slots are fixed by coin type
        if isinstance(entry, CoinEntry) and entry.coin_type is not CoinType(slot):
            raise ValueError(f"Slot {slot} holds {CoinType(slot).name}, got a {entry.coin_type.name} entry")

        members = entry.to_members()
        for member, _ in descriptor.iter_members(slot):
            encode_scalar(member, members[member.name])

        self.arrays[name][slot] = entry

    def fields(self) -> list[tuple[str, Any, tuple[str, ...] | None]]:
        """Non-array fields in layout order.

        Returns:
            List of (field name, decoded value, flag names or None) tuples
        """
        result: list[tuple[str, Any, tuple[str, ...] | None]] = []

        for descriptor in self.layout.fields:
            if descriptor.encoding is FieldEncoding.ARRAY:
                continue

            if descriptor.encoding is FieldEncoding.FLAGS:
                flags = self.flags[descriptor.name]
                result.append((descriptor.name, flags, flag_names(flags)))
            else:
                result.append((descriptor.name, self.value(descriptor.name), None))

        return result

    def entries(self, name: str) -> list[tuple[int, SubRecord]]:
        """Entries of a sub-record array with their original slot index.

        Sentinel (unused) slots are left out for the kinds that suppress them
        (rate and international rate entries); coin and speed-dial arrays
        list every slot.
        """
        descriptor = self._array(name)

        suppress = descriptor.kind.value.suppress_sentinels

        return [
            (slot, entry)
            for slot, entry in enumerate(self.arrays[name])
            if not (suppress and entry.is_sentinel)
        ]

    def _array(self, name: str) -> ArrayDescriptor:
        descriptor = self.layout.field(name)
        if not isinstance(descriptor, ArrayDescriptor):
            raise KeyError(f"{self.table_id} field {name!r} is not an array")
        return descriptor

    def _store(self, descriptor: FieldDescriptor, value: Any) -> None:
        if descriptor.encoding is FieldEncoding.FLAGS:
            self.flags[descriptor.name] = value
        elif descriptor.encoding is FieldEncoding.BYTES:
            self.blocks[descriptor.name] = value
        else:
            self.scalars[descriptor.name] = value

    def _warn(self, kind: WarningKind, field: str, offset: int, value: Any) -> None:
        warning = DecodeWarning(kind=kind, table_id=self.table_id, field=field, offset=offset, value=value)
        self.warnings.append(warning)
        _LOGGER.warning("%s", warning)


# =============================================================================
# Decoder
# =============================================================================


def _check_header_byte(table_id: TableId, header_byte: int | None) -> None:
    if header_byte is not None and not 0 <= header_byte <= HEADER_BYTE_MAX:
        raise ValueError(f"{table_id}: header byte must be 0-{HEADER_BYTE_MAX}, got {header_byte}")


def _canonical_image(layout: TableLayout, data: bytes, header_byte: int | None) -> bytes:
    if layout.header_byte_omitted_in_file:
        return bytes([header_byte or 0]) + data
    return data


def _decode_array(table: DecodedTable, descriptor: ArrayDescriptor, canonical: bytes) -> None:
    kind = descriptor.kind
    records: list[SubRecord] = []

    for slot in range(descriptor.count):
        members: dict[str, Any] = {}

        for member, offset in descriptor.iter_members(slot):
            members[member.name] = decode_scalar(member, canonical[offset : offset + member.width])

        record = kind.build(slot, members)
        records.append(record)

        if kind.value.classified and not record.is_sentinel and record.classification is None:
            first_member = descriptor.members[0]
            table._warn(
                WarningKind.UNKNOWN_CLASSIFICATION,
                f"{descriptor.name}[{slot}].{first_member.name}",
                descriptor.member_offset(slot, first_member),
                members[first_member.name],
            )

    table.arrays[descriptor.name] = records


def decode_table(table_id: int, data: bytes, *, header_byte: int | None = None) -> DecodedTable:
    """Decode one stored table.

    The buffer size is validated before any field is read; once it passes,
    decoding cannot fail because every offset is in bounds by construction.

    Args:
        table_id: Table identifier
        data: Stored table bytes
        header_byte: Header byte delivered out of band, for tables whose file
                     image omits it (ignored otherwise)

    Returns:
        Freshly decoded table

    Raises:
        ValueError: If the table id is unknown or the header byte is out of range
        SizeMismatchError: If the buffer length is wrong
    """
    layout = validate_buffer(table_id, data)

    if not layout.header_byte_omitted_in_file:
        header_byte = None

    _check_header_byte(layout.table_id, header_byte)

    table = DecodedTable(layout, header_byte)

    canonical = _canonical_image(layout, bytes(data), header_byte)

    for descriptor in layout.fields:
        if isinstance(descriptor, ArrayDescriptor):
            _decode_array(table, descriptor, canonical)
            continue

        value = decode_scalar(descriptor, canonical[descriptor.offset : descriptor.end])
        table._store(descriptor, value)

        warning_kind = undocumented_value(descriptor, value)
        if warning_kind is not None:
            table._warn(warning_kind, descriptor.name, descriptor.offset, value)

    _LOGGER.debug("Decoded %s from %d bytes (%d warnings)", table.table_id, len(data), len(table.warnings))

    return table


# =============================================================================
# Encoder
# =============================================================================


def encode_table(table: DecodedTable, *, include_header: bool = False) -> bytes:
    """Encode a table back to its byte layout.

    Args:
        table: Decoded (and possibly patched) table
        include_header: Return the full canonical image, header byte first
                        (0 when unknown), instead of the stored file image

    Returns:
        ``layout.file_size`` bytes, or ``layout.total_size`` bytes with
        ``include_header``

    Raises:
        ValueError: If a field value or the header byte no longer fits its width
    """
    layout = table.layout

    if layout.header_byte_omitted_in_file:
        _check_header_byte(table.table_id, table.header_byte)

    canonical = bytearray(layout.total_size)

    if layout.header_byte_omitted_in_file:
        canonical[0] = table.header_byte or 0

    for descriptor in layout.fields:
        if isinstance(descriptor, ArrayDescriptor):
            for slot, record in enumerate(table.arrays[descriptor.name]):
                members = record.to_members()
                for member, offset in descriptor.iter_members(slot):
                    canonical[offset : offset + member.width] = encode_scalar(member, members[member.name])
            continue

        canonical[descriptor.offset : descriptor.end] = encode_scalar(descriptor, table.value(descriptor.name))

    if include_header or not layout.header_byte_omitted_in_file:
        return bytes(canonical)

    return bytes(canonical[layout.body_offset :])


# =============================================================================
# Byte Source / Sink
# =============================================================================


def read_table(table_id: int, source: BinaryIO, length: int | None = None) -> DecodedTable:
    """Read and decode one table from a byte source.

    Args:
        table_id: Table identifier
        source: Readable binary stream
        length: Number of bytes the source announced, if known. It is
                validated before anything is read.

    Returns:
        Decoded table

    Raises:
        SizeMismatchError: If the (announced or actual) length is wrong
        TruncatedReadError: If the source delivered fewer bytes than announced
    """
    layout = get_layout(table_id)

    if length is None:
        data = source.read()
    else:
        if length != layout.file_size:
            raise SizeMismatchError(int(table_id), layout.file_size, length)

        data = source.read(length)

        if len(data) < length:
            raise TruncatedReadError(int(table_id), length, len(data))

    return decode_table(table_id, data)


def write_table(table: DecodedTable, sink: BinaryIO) -> int:
    """Encode a table and write it to a byte sink in one logical write.

    Returns:
        Number of bytes written

    Raises:
        ShortWriteError: If the sink accepted fewer bytes than encoded
    """
    data = encode_table(table)

    written = sink.write(data)

    if written is None:  # Non-blocking raw stream accepted nothing
        written = 0

    if written != len(data):
        raise ShortWriteError(int(table.table_id), len(data), written)

    return written


def _file_mode(target: Path) -> int:
    """Permission bits for a saved table: the existing file's, else umask-based."""
    try:
        return target.stat().st_mode & 0o7777
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return DEFAULT_FILE_MODE & ~umask


def save_table(table: DecodedTable, path: str | os.PathLike[str]) -> None:
    """Write the table's file image to ``path``.

    The image is written to a temporary file in the same directory and
    renamed over ``path`` only after the full write succeeded, so a failed
    write never leaves a partial table file behind. The saved file keeps the
    permissions of the file it replaces; a new file gets the umask default.

    Raises:
        ShortWriteError: If the write was short
        OSError: If the file cannot be created or renamed
    """
    target = Path(path)

    mode = _file_mode(target)

    fd, temp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent or ".")
    try:
        with os.fdopen(fd, "wb") as sink:
            write_table(table, sink)
        os.chmod(temp_name, mode)
        os.replace(temp_name, target)
    except BaseException:
        os.unlink(temp_name)
        raise

    _LOGGER.debug("Saved %s to %s", table.table_id, target)


__all__ = [
    "DecodedTable",
    "decode_table",
    "encode_table",
    "read_table",
    "save_table",
    "validate_buffer",
    "write_table",
]
