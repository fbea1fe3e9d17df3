"""Field descriptors and scalar/flag decoding for DLOG tables.

This module implements the packed field encodings used by every DLOG table.
It provides:

Classes:
    - FieldEncoding: How the bytes of a field are interpreted
    - FieldDescriptor: One named field (offset, width, encoding)
    - ArrayDescriptor: A sub-record array (kind, slot count, member fields)

Functions:
    - decode_uint / encode_uint: Little-endian unsigned integers
    - flag_names: Ordered names of the bits set in a flag byte
    - decode_scalar / encode_scalar: Value of a non-array field
    - undocumented_value: Vocabulary check for flag and enumerated fields

Tables are densely packed: there is no alignment padding, multi-byte
integers are little-endian and offsets never depend on the host's native
struct layout.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum, IntFlag, auto
from typing import Any

from .common import WarningKind
from .record import RateSelector, RecordKind

# =============================================================================
# Field Constants
# =============================================================================

FLAG_FIELD_WIDTH = 1  # Flag fields are always one byte (eight named bits)
FLAG_FIELD_BITS = 8

UINT_WIDTHS = (1, 2, 4)  # Supported integer widths in bytes

# =============================================================================
# Field Descriptors
# =============================================================================


class FieldEncoding(Enum):
    UINT = auto()  # Unsigned little-endian integer
    FLAGS = auto()  # One byte of eight named flag bits
    ENUM = auto()  # One byte enumerated value
    SELECTOR = auto()  # One byte international rate selector
    BYTES = auto()  # Opaque byte block kept verbatim
    ARRAY = auto()  # Array of fixed-width sub-records


@dataclass(frozen=True, kw_only=True)
class FieldDescriptor:
    """One named field of a table or sub-record.

    Attributes:
        name: Field name
        width: Width in bytes
        encoding: How the bytes are interpreted
        value_type: IntFlag class (FLAGS) or IntEnum class (ENUM)
        reserved_mask: FLAGS only, bits with no documented meaning
        offset: Canonical byte offset, assigned when the layout is built
    """

    name: str
    width: int = 1
    encoding: FieldEncoding = FieldEncoding.UINT
    value_type: type[IntFlag] | type[IntEnum] | None = None
    reserved_mask: int = 0
    offset: int = 0

    def __post_init__(self) -> None:
        if self.encoding is FieldEncoding.UINT and self.width not in UINT_WIDTHS:
            raise ValueError(f"Field {self.name}: unsupported integer width {self.width}")

        if self.encoding in (FieldEncoding.FLAGS, FieldEncoding.ENUM, FieldEncoding.SELECTOR) and self.width != 1:
            raise ValueError(f"Field {self.name}: {self.encoding.name} fields are one byte wide")

        if self.encoding in (FieldEncoding.FLAGS, FieldEncoding.ENUM) and self.value_type is None:
            raise ValueError(f"Field {self.name}: {self.encoding.name} fields need a value_type")

    @property
    def end(self) -> int:
        return self.offset + self.width


@dataclass(frozen=True, kw_only=True)
class ArrayDescriptor(FieldDescriptor):
    """Array of ``count`` fixed-width sub-records.

    Interleaved arrays store each slot's members back to back (stride =
    sum of member widths). Columnar arrays store all slots of the first
    member, then all slots of the second, and so on.

    Member offsets are relative to the start of a slot (interleaved) or of
    the member's column (columnar).
    """

    encoding: FieldEncoding = FieldEncoding.ARRAY
    kind: RecordKind
    count: int
    members: tuple[FieldDescriptor, ...] = field(default=())
    columnar: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "width", self.stride * self.count)
        offset = 0
        placed: list[FieldDescriptor] = []
        for member in self.members:
            placed.append(_with_offset(member, offset))
            offset += member.width
        object.__setattr__(self, "members", tuple(placed))

    @property
    def stride(self) -> int:
        return sum(member.width for member in self.members)

    def member_offset(self, slot: int, member: FieldDescriptor) -> int:
        """Canonical byte offset of ``member`` in ``slot``."""
        if not 0 <= slot < self.count:
            raise IndexError(f"Slot {slot} out of range for {self.name} ({self.count} slots)")

        if self.columnar:
            return self.offset + member.offset * self.count + slot * member.width

        return self.offset + slot * self.stride + member.offset

    def iter_members(self, slot: int) -> Iterator[tuple[FieldDescriptor, int]]:
        for member in self.members:
            yield member, self.member_offset(slot, member)


def _with_offset(descriptor: FieldDescriptor, offset: int) -> FieldDescriptor:
    return replace(descriptor, offset=offset)


# =============================================================================
# Integer Helpers
# =============================================================================


def decode_uint(data: bytes) -> int:
    """Decode an unsigned little-endian integer of any width."""
    return int.from_bytes(data, byteorder="little")


def encode_uint(value: int, width: int) -> bytes:
    """Encode an unsigned little-endian integer.

    Raises:
        ValueError: If the value is negative or does not fit in ``width`` bytes
    """
    if not 0 <= value < (1 << (width * 8)):
        raise ValueError(f"Value {value} does not fit in {width} unsigned byte(s)")
    return int(value).to_bytes(width, byteorder="little")


# =============================================================================
# Flag Helpers
# =============================================================================


def flag_names(flags: IntFlag) -> tuple[str, ...]:
    """Return the names of the bits set in ``flags``, bit 0 first.

    Iteration stops as soon as no higher bit is set, so 0x00 yields an empty
    tuple and 0xFF yields all eight names in bit order.

    Args:
        flags: Decoded flag byte

    Returns:
        Tuple of member names of the set bits
    """
    flag_type = type(flags)
    names: list[str] = []

    bits = int(flags)
    position = 0

    while bits:
        if bits & 1:
            member = flag_type(1 << position)
            names.append(member.name or f"BIT_{position}")
        bits >>= 1
        position += 1

    return tuple(names)


# =============================================================================
# Scalar Decoding / Encoding
# =============================================================================


def decode_scalar(descriptor: FieldDescriptor, data: bytes) -> Any:
    """Decode a non-array field.

    Never fails for a correctly sized slice: every byte value is
    representable. Enumerated bytes outside the vocabulary are returned as
    plain ints (see ``undocumented_value``).

    Args:
        descriptor: Field descriptor
        data: Exactly ``descriptor.width`` bytes

    Returns:
        int (UINT), IntFlag (FLAGS), IntEnum or int (ENUM),
        RateSelector (SELECTOR) or bytes (BYTES)
    """
    encoding = descriptor.encoding

    if encoding is FieldEncoding.BYTES:
        return bytes(data)

    value = decode_uint(data)

    if encoding is FieldEncoding.FLAGS:
        assert descriptor.value_type is not None
        return descriptor.value_type(value)

    if encoding is FieldEncoding.ENUM:
        assert descriptor.value_type is not None
        try:
            return descriptor.value_type(value)
        except ValueError:
            return value

    if encoding is FieldEncoding.SELECTOR:
        return RateSelector(value)

    if encoding is FieldEncoding.UINT:
        return value

    raise ValueError(f"Field {descriptor.name}: {encoding.name} is not a scalar encoding")


def encode_scalar(descriptor: FieldDescriptor, value: Any) -> bytes:
    """Encode a non-array field to exactly ``descriptor.width`` bytes.

    Raises:
        ValueError: If the value does not fit the field
    """
    if descriptor.encoding is FieldEncoding.BYTES:
        if len(value) != descriptor.width:
            raise ValueError(f"Field {descriptor.name}: expected {descriptor.width} bytes, got {len(value)}")
        return bytes(value)

    if descriptor.encoding is FieldEncoding.ARRAY:
        raise ValueError(f"Field {descriptor.name}: arrays are not scalar fields")

    return encode_uint(int(value), descriptor.width)


def undocumented_value(descriptor: FieldDescriptor, value: Any) -> WarningKind | None:
    """Check a decoded value against the field's documented vocabulary.

    Returns:
        UNKNOWN_FLAG_BIT if a reserved flag bit is set,
        UNKNOWN_CLASSIFICATION if an enumerated byte has no member,
        None otherwise
    """
    if descriptor.encoding is FieldEncoding.FLAGS and int(value) & descriptor.reserved_mask:
        return WarningKind.UNKNOWN_FLAG_BIT

    if descriptor.encoding is FieldEncoding.ENUM and not isinstance(value, IntEnum):
        return WarningKind.UNKNOWN_CLASSIFICATION

    return None
