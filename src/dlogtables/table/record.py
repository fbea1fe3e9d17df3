"""Sub-record kinds and their classification.

This module implements the typed elements of the fixed-stride arrays found
in DLOG tables. It provides:

Classes:
    - RateType: Category of a RATE table entry (low nibble of the type byte)
    - CoinType: Coin denomination bound to a COINVL slot
    - SelectorClass / RateSelector: International rate selector byte
    - RateEntry: RATE table entry (type, periods, charges)
    - CoinEntry: COINVL coin slot (value, volume, parameter byte)
    - IntlRateEntry: INTL_SBR entry (calling code, rate selector)
    - RepDialEntry: RDLIST entry (packed phone number, display prompt)
    - RecordKind: Registry of the kinds above with their sentinel policy

Every record is built from the decoded members of one array slot
(``from_members``) and converts back to exactly the same members
(``to_members``), so a decode/encode cycle is byte-identical.

Reference: Nortel Millennium Database Design Report MSR 2.1
    - RATE (pp. 2-205), COINVL (pp. 2-79)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum, IntEnum, StrEnum
from typing import Any, NamedTuple, Self

# =============================================================================
# Sub-record Constants
# =============================================================================

RATE_TYPE_MASK = 0b00001111  # Bits 0-3: rate entry category

FLAG_PERIOD_UNLIMITED = 0x8000  # Bit 15 of a period: unlimited duration
PERIOD_SECONDS_MASK = 0x7FFF  # Bits 0-14: period in seconds

IXL_NCC_RATED = 0  # Selector: call is rated by the NCC
IXL_BLOCKED = 1  # Selector: call is blocked
IXL_RATE_OFFSET = 2  # Selector v >= 2 refers to rate table index v - 2

PROMPT_LENGTH = 20  # Characters per display prompt line
PRINTABLE_MINIMUM = 0x20  # Leading byte below this marks a blank string field

PHONE_DIGIT_ZERO = 0xA  # Packed digit nibble for '0'
PHONE_DIGIT_STAR = 0xB  # Packed digit nibble for '*'
PHONE_DIGIT_POUND = 0xC  # Packed digit nibble for '#'

# =============================================================================
# Classification Enums
# =============================================================================


class RateType(IntEnum):
    """Category of a RATE table entry."""

    MM_INTRA_LATA = 0x0
    LMS_RATE_LOCAL = 0x1
    FIXED_CHARGE_LOCAL = 0x2
    NOT_AVAILABLE = 0x3
    INVALID_NPA_NXX = 0x4
    TOLL_INTRA_LATA = 0x5
    TOLL_INTER_LATA = 0x6
    MM_INTER_LATA = 0x7
    MM_LOCAL = 0x8
    INTERNATIONAL = 0x9


class CoinType(IntEnum):
    """Coin denomination bound to each COINVL slot.

    Each member carries the label the terminal documentation uses.
    """

    def __new__(cls, value: int, label: str = "") -> Self:
        obj = int.__new__(cls, value)
        obj._value_ = value
        obj.label = label
        return obj

    label: str

    CDN_NICKEL = 0, "CDN Nickel"
    CDN_NICKEL2 = 1, "CDN Nickel2"
    CDN_DIME = 2, "CDN Dime"
    CDN_QUARTER = 3, "CDN Quarter"
    CDN_DOLLAR = 4, "CDN Dollar"
    US_NICKEL = 5, "US Nickel"
    US_DIME = 6, "US Dime"
    US_QUARTER = 7, "US Quarter"
    US_DOLLAR = 8, "US Dollar"
    CDN_STEEL_NICKEL = 9, "CDN Steel Nickel"
    CDN_STEEL_DIME = 10, "CDN Steel Dime"
    CDN_STEEL_QUARTER = 11, "CDN Steel Quarter"
    COIN_13 = 12, "Coin 13"
    CDN_DOLLAR2 = 13, "New CDN Dollar"
    COIN_15 = 14, "Coin 15"
    COIN_16 = 15, "Coin 16"


class SelectorClass(StrEnum):
    """How an international call is rated."""

    NCC_RATED = "NCC-rated"
    BLOCKED = "Blocked"
    RATE_TABLE = "Rate table"


class RateSelector(int):
    """International rate selector byte.

    The byte is not a plain index: 0 defers rating to the NCC, 1 blocks the
    call, and any other value ``v`` selects RATE table entry ``v - 2``.
    Behaves as the raw byte value everywhere an ``int`` is expected.
    """

    def __new__(cls, code: int) -> RateSelector:
        if not 0 <= code <= 0xFF:
            raise ValueError(f"Rate selector must fit in one byte, got {code}")
        return super().__new__(cls, code)

    @classmethod
    def for_rate_index(cls, rate_index: int) -> RateSelector:
        """Build the selector that points at a RATE table entry."""
        if rate_index < 0:
            raise ValueError(f"Rate table index cannot be negative, got {rate_index}")
        return cls(rate_index + IXL_RATE_OFFSET)

    @property
    def kind(self) -> SelectorClass:
        if self == IXL_NCC_RATED:
            return SelectorClass.NCC_RATED
        if self == IXL_BLOCKED:
            return SelectorClass.BLOCKED
        return SelectorClass.RATE_TABLE

    @property
    def rate_index(self) -> int | None:
        """RATE table index, or None for the NCC-rated and blocked codes."""
        if self.kind is SelectorClass.RATE_TABLE:
            return int(self) - IXL_RATE_OFFSET
        return None

    def __repr__(self) -> str:
        return f"RateSelector({int(self)})"

    def __str__(self) -> str:
        if self.rate_index is None:
            return str(self.kind)
        return f"{self.kind} {self.rate_index}"


NCC_RATED = RateSelector(IXL_NCC_RATED)
BLOCKED = RateSelector(IXL_BLOCKED)

# =============================================================================
# Helper functions
# =============================================================================


def _period_seconds(period: int) -> int | None:
    if period & FLAG_PERIOD_UNLIMITED:
        return None
    return period & PERIOD_SECONDS_MASK


def printable_string(data: bytes) -> str:
    """Decode a fixed-width string field.

    A leading byte below 0x20 marks the field as absent, and such a field
    decodes to an empty string rather than raw control bytes. Otherwise the
    text runs up to the first NUL byte.

    Args:
        data: Raw field bytes

    Returns:
        Decoded text (ISO 8859-1), empty when the field is absent
    """
    if not data or data[0] < PRINTABLE_MINIMUM:
        return ""
    return data.split(b"\x00", 1)[0].decode("latin-1")


def unpack_phone_number(data: bytes) -> str:
    """Decode a packed phone number.

    Each byte holds two digits, high nibble first. A zero nibble ends the
    number. Nibbles 1-9 are digits, 0xA is '0', 0xB is '*' and 0xC is '#';
    any other nibble decodes as '?'.

    Args:
        data: Packed number bytes

    Returns:
        Dialable digit string (empty when the first nibble is zero)
    """
    digits: list[str] = []

    for byte_val in data:
        for nibble in (byte_val >> 4, byte_val & 0x0F):
            if nibble == 0:
                return "".join(digits)

            if 1 <= nibble <= 9:
                digits.append(str(nibble))
            elif nibble == PHONE_DIGIT_ZERO:
                digits.append("0")
            elif nibble == PHONE_DIGIT_STAR:
                digits.append("*")
            elif nibble == PHONE_DIGIT_POUND:
                digits.append("#")
            else:
                digits.append("?")

    return "".join(digits)


def pack_phone_number(number: str, length: int) -> bytes:
    """Encode a digit string into ``length`` packed bytes (zero padded).

    Raises:
        ValueError: If the number has invalid characters or does not fit
    """
    if len(number) > length * 2:
        raise ValueError(f"Phone number {number!r} exceeds {length * 2} digits")

    nibbles: list[int] = []
    for char in number:
        if char == "0":
            nibbles.append(PHONE_DIGIT_ZERO)
        elif char == "*":
            nibbles.append(PHONE_DIGIT_STAR)
        elif char == "#":
            nibbles.append(PHONE_DIGIT_POUND)
        elif char.isdigit():
            nibbles.append(int(char))
        else:
            raise ValueError(f"Invalid character {char!r} in phone number {number!r}")

    nibbles.extend([0] * (length * 2 - len(nibbles)))

    return bytes((nibbles[i] << 4) | nibbles[i + 1] for i in range(0, len(nibbles), 2))


# =============================================================================
# Sub-record Classes
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class RateEntry:
    """RATE table entry.

    Periods are stored raw: bit 15 flags an unlimited period and is kept
    alongside the seconds bits so the entry re-encodes bit for bit.

    Attributes:
        type: Raw type byte (category in bits 0-3)
        initial_period: Raw initial period
        initial_charge: Initial charge in cents
        additional_period: Raw additional period
        additional_charge: Additional charge in cents
    """

    type: int = 0
    initial_period: int = 0
    initial_charge: int = 0
    additional_period: int = 0
    additional_charge: int = 0

    @classmethod
    def from_members(cls, slot: int, members: Mapping[str, Any]) -> RateEntry:
        return cls(
            type=members["type"],
            initial_period=members["initial_period"],
            initial_charge=members["initial_charge"],
            additional_period=members["additional_period"],
            additional_charge=members["additional_charge"],
        )

    def to_members(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "initial_period": self.initial_period,
            "initial_charge": self.initial_charge,
            "additional_period": self.additional_period,
            "additional_charge": self.additional_charge,
        }

    @property
    def is_sentinel(self) -> bool:
        return (
            self.type == 0
            and self.initial_charge == 0
            and self.additional_charge == 0
            and self.initial_period == 0
            and self.additional_period == 0
        )

    @property
    def classification(self) -> RateType | None:
        try:
            return RateType(self.type & RATE_TYPE_MASK)
        except ValueError:
            return None

    @property
    def initial_unlimited(self) -> bool:
        return bool(self.initial_period & FLAG_PERIOD_UNLIMITED)

    @property
    def additional_unlimited(self) -> bool:
        return bool(self.additional_period & FLAG_PERIOD_UNLIMITED)

    @property
    def initial_seconds(self) -> int | None:
        """Initial period in seconds, None when unlimited."""
        return _period_seconds(self.initial_period)

    @property
    def additional_seconds(self) -> int | None:
        """Additional period in seconds, None when unlimited."""
        return _period_seconds(self.additional_period)


@dataclass(frozen=True, kw_only=True)
class CoinEntry:
    """COINVL coin slot. Identity is the coin type, i.e. the slot."""

    coin_type: CoinType
    value: int = 0  # Face value in cents
    volume: int = 0  # Expected volume (capacity units)
    param: int = 0  # Validation parameter byte

    @classmethod
    def from_members(cls, slot: int, members: Mapping[str, Any]) -> CoinEntry:
        return cls(
            coin_type=CoinType(slot),
            value=members["value"],
            volume=members["volume"],
            param=members["param"],
        )

    def to_members(self) -> dict[str, Any]:
        return {"value": self.value, "volume": self.volume, "param": self.param}

    @property
    def is_sentinel(self) -> bool:
        return self.value == 0 and self.volume == 0 and self.param == 0

    @property
    def classification(self) -> CoinType:
        return self.coin_type


@dataclass(frozen=True, kw_only=True)
class IntlRateEntry:
    """INTL_SBR entry: international calling code and how it is rated."""

    calling_code: int = 0
    selector: RateSelector = NCC_RATED

    def __post_init__(self) -> None:
        if not isinstance(self.selector, RateSelector):
            object.__setattr__(self, "selector", RateSelector(self.selector))

    @classmethod
    def from_members(cls, slot: int, members: Mapping[str, Any]) -> IntlRateEntry:
        return cls(calling_code=members["calling_code"], selector=RateSelector(members["selector"]))

    def to_members(self) -> dict[str, Any]:
        return {"calling_code": self.calling_code, "selector": int(self.selector)}

    @property
    def is_sentinel(self) -> bool:
        return self.calling_code == 0

    @property
    def classification(self) -> SelectorClass:
        return self.selector.kind


@dataclass(frozen=True, kw_only=True)
class RepDialEntry:
    """RDLIST (repertory dialer) entry.

    The display prompt holds two 20-character lines back to back. Pad bytes
    have no documented meaning and are carried verbatim.
    """

    pad: bytes = bytes(3)
    phone_number: bytes = bytes(8)
    display_prompt: bytes = bytes(2 * PROMPT_LENGTH)
    pad2: bytes = bytes(6)

    @classmethod
    def from_members(cls, slot: int, members: Mapping[str, Any]) -> RepDialEntry:
        return cls(
            pad=members["pad"],
            phone_number=members["phone_number"],
            display_prompt=members["display_prompt"],
            pad2=members["pad2"],
        )

    def to_members(self) -> dict[str, Any]:
        return {
            "pad": self.pad,
            "phone_number": self.phone_number,
            "display_prompt": self.display_prompt,
            "pad2": self.pad2,
        }

    @property
    def is_sentinel(self) -> bool:
        return not any(self.pad + self.phone_number + self.display_prompt + self.pad2)

    @property
    def classification(self) -> None:
        return None

    @property
    def number(self) -> str:
        return unpack_phone_number(self.phone_number)

    @property
    def prompt_lines(self) -> tuple[str, str]:
        """Both display prompt lines, blank where the line is absent."""
        return (
            printable_string(self.display_prompt[:PROMPT_LENGTH]),
            printable_string(self.display_prompt[PROMPT_LENGTH:]),
        )


SubRecord = RateEntry | CoinEntry | IntlRateEntry | RepDialEntry

# =============================================================================
# Record Kind Registry
# =============================================================================


class _RecordDescriptor(NamedTuple):
    """Descriptor for one sub-record kind."""

    record_type: type[RateEntry] | type[CoinEntry] | type[IntlRateEntry] | type[RepDialEntry]
    suppress_sentinels: bool  # Sentinel slots are left out of the present entries
    classified: bool  # A None classification is an undocumented value


class RecordKind(Enum):
    """Sub-record kinds with their record type and sentinel policy."""

    RATE = _RecordDescriptor(RateEntry, suppress_sentinels=True, classified=True)
    COIN = _RecordDescriptor(CoinEntry, suppress_sentinels=False, classified=False)
    INTL_RATE = _RecordDescriptor(IntlRateEntry, suppress_sentinels=True, classified=False)
    REP_DIAL = _RecordDescriptor(RepDialEntry, suppress_sentinels=False, classified=False)

    def build(self, slot: int, members: Mapping[str, Any]) -> SubRecord:
        """Build the typed record for one slot from its decoded members."""
        return self.value.record_type.from_members(slot, members)
