"""Layout Registry: the byte layout of every supported DLOG table.

Each table is a closed, version-pinned contract with the terminal firmware:
field widths and order must not drift, so the layouts below are static
module constants rather than anything derived at runtime.

Canonical offsets include the table's leading header byte. For tables whose
stored file omits that byte (``header_byte_omitted_in_file``), the first
file byte is canonical offset 1.

Reference: Nortel Millennium Database Design Report MSR 2.1
    - FEATRU (pp. 2-151), COINVL (pp. 2-79), RATE (pp. 2-205)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, IntFlag
from functools import cache

from .common import TableId
from .field import ArrayDescriptor, FieldDescriptor, FieldEncoding, _with_offset
from .record import RecordKind

# =============================================================================
# FEATRU Flag Vocabularies
# =============================================================================


class CardAuthFlag(IntFlag):
    CARD_AUTH_ON_LOCAL_CALLS = 1 << 0
    DELAYED_CARD_AUTHORIZATION = 1 << 1
    CARD_AUTH_ON_MCE_LOCAL_CALLS = 1 << 2
    NO_NPA_ADDED_ZP_LOCAL_ACCS = 1 << 3
    CARD_AUTH_BIT_4 = 1 << 4
    CARD_AUTH_BIT_5 = 1 << 5
    CARD_AUTH_BIT_6 = 1 << 6
    IMMED_MCE_CARD_AUTH = 1 << 7


class AccsModeFlag(IntFlag):
    ACCS_AVAILABLE = 1 << 0
    MCE_ROUTING = 1 << 1
    MANUAL_DIALED_CARD_NUM_ENABLED = 1 << 2
    MANUALLY_DIALED_NCC_VALID_REQ = 1 << 3
    AOS_ENABLED = 1 << 4
    ZERO_PLUS_LOCAL_CALLS_TO_NCC = 1 << 5
    ACCS_INFO_BIT_6 = 1 << 6
    REMOVE_NPA_ZP_LOCAL_NCC_CALLS = 1 << 7


class MiscFlag(IntFlag):
    IN_SERVICE_ON_CDR_LIST_FULL = 1 << 0
    TERM_RATE_DISPLAY_OPTION = 1 << 1
    INCOMING_CALL_FCA_PRECEDENCE = 1 << 2
    FCA_ON_CARD = 1 << 3
    REVERT_TO_PRIMARY_NCC_NUM = 1 << 4
    BLOCK_NO_RATE_CARRIER = 1 << 5
    RATED_CREDIT_CARD_CDR = 1 << 6
    ELEVEN_DIGIT_LOCAL_CALLS = 1 << 7


class AdvertisingFlag(IntFlag):
    ADVERT_ENABLED = 1 << 0
    REP_DIALER_ADVERTISING = 1 << 1
    CALL_ESTABLISHED_ADVERTISING = 1 << 2
    ENABLE_DATE_TIME_DISPLAY = 1 << 3
    TIME_FORMAT = 1 << 4
    ADVERTISING_FLAGS_BIT_5 = 1 << 5
    ADVERTISING_FLAGS_BIT_6 = 1 << 6
    ADVERTISING_FLAGS_BIT_7 = 1 << 7


class CallSetupFlag(IntFlag):
    DISPLAY_CALLED_NUMBER = 1 << 0
    ENABLE_SERVLEV_DISP_FLASHING = 1 << 1
    CALL_SETUP_PARAMS_BIT_2 = 1 << 2
    CALL_SETUP_PARAMS_BIT_3 = 1 << 3
    CALL_SETUP_PARAMS_BIT_4 = 1 << 4
    CALL_SETUP_PARAMS_BIT_5 = 1 << 5
    CALL_SETUP_PARAMS_BIT_6 = 1 << 6
    SUPPRESS_CALLING_PROMPT = 1 << 7


class CoinCallingFlag(IntFlag):
    COIN_CALL_OVERTIME = 1 << 0
    VOICE_FEEDBACK_ON_COIN_CALL = 1 << 1
    COIN_CALL_SECOND_WARNING = 1 << 2
    COIN_CALL_FEATURES_BIT_3 = 1 << 3
    COIN_CALL_FEATURES_BIT_4 = 1 << 4
    COIN_CALL_FEATURES_BIT_5 = 1 << 5
    COIN_CALL_FEATURES_BIT_6 = 1 << 6
    COIN_CALL_FEATURES_BIT_7 = 1 << 7


class SmartCardFlag(IntFlag):
    SMART_CARD_FLAGS_BIT_0 = 1 << 0
    SC_VALID_INTERNATIONAL_CALLS = 1 << 1
    SC_VALID_INTER_LATA_CALLS = 1 << 2
    SC_VALID_INTRA_LATA_CALLS = 1 << 3
    SC_VALID_LOCAL_CALLS = 1 << 4
    POST_PAYMENT_RATE_REQUEST = 1 << 5
    USE_TERMINAL_CARD_TABLE_DEF = 1 << 6
    RATE_INFO_NOT_DISPLAYED = 1 << 7


class CarrierRerouteFlag(IntFlag):
    BLOCK_REROUTE_COIN_CALL = 1 << 0
    BLOCK_REROUTE_CREDIT_CARD_CALL = 1 << 1
    BLOCK_REROUTE_SMART_CARD_CALL = 1 << 2
    BLOCK_REROUTE_CALL_CARD_CALL = 1 << 3
    CARRIER_BLOCK_REROUTE_BIT_4 = 1 << 4
    CARRIER_BLOCK_REROUTE_BIT_5 = 1 << 5
    CARRIER_BLOCK_REROUTE_BIT_6 = 1 << 6
    CARRIER_BLOCK_REROUTE_BIT_7 = 1 << 7


class DatajackFlag(IntFlag):
    DATAJACK_ENABLED = 1 << 0
    DATAJACK_MUTING = 1 << 1
    DATAJACK_ALLOW_FREE_LOCAL_CALL = 1 << 2
    DATAJACK_ALLOW_DA_CALLS = 1 << 3
    DJ_FLAGS_BIT_4 = 1 << 4
    DJ_FLAGS_BIT_5 = 1 << 5
    DJ_FLAGS_BIT_6 = 1 << 6
    DJ_FLAGS_BIT_7 = 1 << 7


class IncomingCallMode(IntEnum):
    NO_INCOMING = 0
    INCOMING_VOICE_ONLY = 1
    RING_DISABLED_ANSWER_DATA = 2
    RING_ENABLED_ANSWER_DATA = 3


# =============================================================================
# Table Layout
# =============================================================================


@dataclass(frozen=True)
class TableLayout:
    """Byte layout of one DLOG table.

    Attributes:
        table_id: Table identifier
        total_size: Canonical size in bytes, header byte included
        header_byte_omitted_in_file: The stored file lacks the leading header byte
        fields: Field descriptors in canonical offset order
    """

    table_id: TableId
    total_size: int
    header_byte_omitted_in_file: bool
    fields: tuple[FieldDescriptor, ...]

    @property
    def file_size(self) -> int:
        """Number of bytes in the stored/transported buffer."""
        return self.total_size - (1 if self.header_byte_omitted_in_file else 0)

    @property
    def body_offset(self) -> int:
        """Canonical offset of the first stored byte."""
        return 1 if self.header_byte_omitted_in_file else 0

    def field(self, name: str) -> FieldDescriptor:
        for descriptor in self.fields:
            if descriptor.name == name:
                return descriptor
        raise KeyError(f"{self.table_id} has no field {name!r}")

    def arrays(self) -> tuple[ArrayDescriptor, ...]:
        return tuple(f for f in self.fields if isinstance(f, ArrayDescriptor))


def _build_layout(
    table_id: TableId,
    total_size: int,
    header_byte_omitted_in_file: bool,
    *fields: FieldDescriptor,
) -> TableLayout:
    """Place ``fields`` back to back and check they cover the table exactly.

    Raises:
        ValueError: If the fields do not add up to ``total_size``
    """
    offset = 1 if header_byte_omitted_in_file else 0

    placed: list[FieldDescriptor] = []
    for descriptor in fields:
        placed.append(_with_offset(descriptor, offset))
        offset += descriptor.width

    if offset != total_size:
        raise ValueError(f"{table_id}: fields cover {offset} bytes, layout declares {total_size}")

    return TableLayout(table_id, total_size, header_byte_omitted_in_file, tuple(placed))


def _u8(name: str) -> FieldDescriptor:
    return FieldDescriptor(name=name, width=1)


def _u16(name: str) -> FieldDescriptor:
    return FieldDescriptor(name=name, width=2)


def _u32(name: str) -> FieldDescriptor:
    return FieldDescriptor(name=name, width=4)


def _bytes(name: str, width: int) -> FieldDescriptor:
    return FieldDescriptor(name=name, width=width, encoding=FieldEncoding.BYTES)


def _flags(name: str, flag_type: type[IntFlag], reserved: IntFlag | int = 0) -> FieldDescriptor:
    return FieldDescriptor(name=name, encoding=FieldEncoding.FLAGS, value_type=flag_type, reserved_mask=int(reserved))


# =============================================================================
# Table Layouts
# =============================================================================

RATE_TABLE_MAX_ENTRIES = 128
INTL_RATE_TABLE_MAX_ENTRIES = 200
COIN_TYPES_MAX = 16
RDLIST_MAX = 10


# DLOG_MT_FCONFIG_OPTS - FEATRU (Feature Configuration) pp. 2-151
FEATURE_CONFIG_LAYOUT = _build_layout(
    TableId.FEATURE_CONFIG,
    67,
    False,
    _u8("term_type"),
    _u8("display_present"),
    _u8("num_call_follows"),
    _flags(
        "card_val_info",
        CardAuthFlag,
        CardAuthFlag.CARD_AUTH_BIT_4 | CardAuthFlag.CARD_AUTH_BIT_5 | CardAuthFlag.CARD_AUTH_BIT_6,
    ),
    _flags("accs_mode_info", AccsModeFlag, AccsModeFlag.ACCS_INFO_BIT_6),
    FieldDescriptor(name="incoming_call_mode", encoding=FieldEncoding.ENUM, value_type=IncomingCallMode),
    _u8("anti_fraud_for_incoming_call"),
    _flags("OOS_POTS_flags", MiscFlag),
    _u8("datajack_display_delay"),
    _u8("lang_scroll_order"),
    _u8("lang_scroll_order2"),
    _u8("num_of_languages"),
    _u8("rating_flags"),
    _u8("dialaround_timer"),
    _u8("call_screen_list_ixl_oper_entry"),
    _u8("call_screen_list_inter_lata_aos_entry"),
    _u8("call_screen_list_ixl_aos_entry"),
    _u8("datajack_grace_period"),
    _u8("operator_collection_timer"),
    _u8("call_screen_list_intra_lata_oper_entry"),
    _u8("call_screen_list_inter_lata_oper_entry"),
    _flags(
        "advertising_flags",
        AdvertisingFlag,
        AdvertisingFlag.ADVERTISING_FLAGS_BIT_5
        | AdvertisingFlag.ADVERTISING_FLAGS_BIT_6
        | AdvertisingFlag.ADVERTISING_FLAGS_BIT_7,
    ),
    _u8("default_language"),
    _flags("call_setup_param_flags", CallSetupFlag, 0b01111100),  # Bits 2-6
    _u8("dtmf_duration"),  # 10 ms units
    _u8("interdigit_pause"),  # 10 ms units
    _u8("ppu_preauth_credit_limit"),
    _flags("coin_calling_features", CoinCallingFlag, 0b11111000),  # Bits 3-7
    _u16("coin_call_overtime_period"),  # Seconds
    _u16("coin_call_pots_time"),  # Seconds
    _u8("international_min_digits"),
    _u8("default_rate_req_payment_type"),
    _u8("next_call_revalidation_frequency"),
    _u8("cutoff_on_disc_duration"),  # 10 ms units
    _u16("cdr_upload_timer_international"),  # Seconds
    _u16("cdr_upload_timer_domestic"),  # Seconds
    _u8("num_perf_stat_dialog_fails"),
    _u8("num_co_line_check_fails"),
    _u8("num_alt_ncc_dialog_check_fails"),
    _u8("num_failed_dialogs_until_oos"),
    _u8("num_failed_dialogs_until_alarm"),
    _flags("smartcard_flags", SmartCardFlag, SmartCardFlag.SMART_CARD_FLAGS_BIT_0),
    _u8("max_num_digits_manual_card_entry"),
    _u8("call_screen_list_zp_aos_entry"),
    _flags("carrier_reroute_flags", CarrierRerouteFlag, 0b11110000),  # Bits 4-7
    _u8("min_num_digits_manual_card_entry"),
    _u8("max_num_smartcard_inserts"),
    _u8("max_num_diff_smartcard_inserts"),
    _u8("call_screen_list_zm_aos_entry"),
    _flags("datajack_flags", DatajackFlag, 0b11110000),  # Bits 4-7
    _u16("delay_on_hook_card_alarm"),
    _u16("delay_on_hook_card_alarm_after_call"),
    _u8("duration_of_card_alarm"),
    _u8("card_alarm_on_cadence"),
    _u8("card_alarm_off_cadence"),
    _u8("delay_until_card_reader_blocked_alarm"),
    _u8("settlement_time"),
    _u8("grace_period_domestic"),
    _u8("ias_timeout"),
    _u8("grace_period_international"),
    _u8("settlement_time_datajack_calls"),
)

# DLOG_MT_COIN_VAL_TABLE - COINVL (Coin Validation Parameters) pp. 2-79
COIN_VALIDATION_LAYOUT = _build_layout(
    TableId.COIN_VALIDATION,
    104,
    False,
    ArrayDescriptor(
        name="coins",
        kind=RecordKind.COIN,
        count=COIN_TYPES_MAX,
        columnar=True,
        members=(_u16("value"), _u16("volume"), _u8("param")),
    ),
    _u16("cash_box_volume"),
    _u16("escrow_volume"),
    _u16("cash_box_volume_threshold"),
    _u32("cash_box_value_threshold"),  # Cents
    _u16("escrow_volume_threshold"),
    _u32("escrow_value_threshold"),  # Cents
    _bytes("pad", 8),
)

# DLOG_MT_REP_DIAL_LIST - RDLIST (Repertory Dialer List)
REP_DIAL_LIST_LAYOUT = _build_layout(
    TableId.REP_DIAL_LIST,
    571,
    True,
    ArrayDescriptor(
        name="entries",
        kind=RecordKind.REP_DIAL,
        count=RDLIST_MAX,
        members=(
            _bytes("pad", 3),
            _bytes("phone_number", 8),
            _bytes("display_prompt", 40),
            _bytes("pad2", 6),
        ),
    ),
)

# DLOG_MT_RATE_TABLE - RATE pp. 2-205
RATE_LAYOUT = _build_layout(
    TableId.RATE,
    1192,
    True,
    _u8("telco_id"),
    _bytes("timestamp", 6),
    _bytes("spare", 32),
    ArrayDescriptor(
        name="rates",
        kind=RecordKind.RATE,
        count=RATE_TABLE_MAX_ENTRIES,
        members=(
            _u8("type"),
            _u16("initial_period"),
            _u16("initial_charge"),
            _u16("additional_period"),
            _u16("additional_charge"),
        ),
    ),
)

# DLOG_MT_INTL_SBR_TABLE - International Set-based Rating
INTL_SBR_LAYOUT = _build_layout(
    TableId.INTL_SBR,
    604,
    True,
    _u8("flags"),
    FieldDescriptor(name="default_rate_index", encoding=FieldEncoding.SELECTOR),
    _u8("spare"),
    ArrayDescriptor(
        name="entries",
        kind=RecordKind.INTL_RATE,
        count=INTL_RATE_TABLE_MAX_ENTRIES,
        members=(
            _u16("calling_code"),
            FieldDescriptor(name="selector", encoding=FieldEncoding.SELECTOR),
        ),
    ),
)


_LayoutTable: tuple[TableLayout, ...] = (
    FEATURE_CONFIG_LAYOUT,
    COIN_VALIDATION_LAYOUT,
    REP_DIAL_LIST_LAYOUT,
    RATE_LAYOUT,
    INTL_SBR_LAYOUT,
)


@cache
def get_layout(table_id: int) -> TableLayout:
    """Look up the layout of a table.

    Args:
        table_id: Table identifier (TableId member or its integer value)

    Returns:
        The table's layout

    Raises:
        ValueError: If the table id has no registered layout
    """
    for layout in _LayoutTable:
        if layout.table_id == table_id:
            return layout

    raise ValueError(f"No layout registered for table 0x{int(table_id):02X} ({int(table_id)})")
