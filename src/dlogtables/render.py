"""Human-readable reports of decoded DLOG tables.

The report layouts follow the table dumps used by Millennium terminal
operators: a field listing for configuration tables and boxed tables for
sub-record arrays. Everything here only reads through the rendering
interface of DecodedTable (``fields()`` and ``entries()``).
"""

from __future__ import annotations

from collections.abc import Callable
from enum import IntEnum, IntFlag
from typing import Any

from .table import DecodedTable, TableId
from .table.record import CoinEntry, IntlRateEntry, RateEntry, RateSelector, RepDialEntry, SelectorClass

TIMESTAMP_YEAR_BASE = 1900  # Timestamp byte 0 counts years from 1900
HEX_DUMP_WIDTH = 16  # Bytes per hex dump line
FIELD_NAME_WIDTH = 38  # Longest FEATRU field name


def format_timestamp(data: bytes) -> str:
    """Format a 6-byte table timestamp (year-1900, month, day, h, m, s).

    Returns:
        ``MM/DD/YYYY HH:MM:SS``
    """
    year, month, day, hour, minute, second = data[:6]
    return f"{month:02d}/{day:02d}/{year + TIMESTAMP_YEAR_BASE} {hour:02d}:{minute:02d}:{second:02d}"


def hex_dump(data: bytes) -> list[str]:
    lines = []
    for start in range(0, len(data), HEX_DUMP_WIDTH):
        chunk = data[start : start + HEX_DUMP_WIDTH]
        lines.append(f"{start:04x}: " + " ".join(f"{b:02x}" for b in chunk))
    return lines


def _format_charge(cents: int) -> str:
    return f"{cents / 100:6.2f}"


def _format_period(period_seconds: int | None) -> str:
    if period_seconds is None:
        return "Unlimited"
    return f"   {period_seconds:5d}s"


def _format_selector(selector: RateSelector) -> str:
    if selector.rate_index is None:
        return str(selector.kind)
    return f"{str(selector.kind)} {selector.rate_index} (0x{selector.rate_index:02x})"


def _format_value(value: Any, names: tuple[str, ...] | None) -> str:
    if isinstance(value, IntFlag):
        return f"0x{int(value):02x}\t{' '.join(names or ())}".rstrip()
    if isinstance(value, RateSelector):
        return f"0x{int(value):02x} ({int(value)}) {_format_selector(value)}"
    if isinstance(value, IntEnum):
        return f"0x{int(value):02x}\t{value.name}"
    if isinstance(value, bytes):
        return " ".join(f"{b:02x}" for b in value)
    return f"{value} (0x{value:02x})"


# =============================================================================
# Per-table Reports
# =============================================================================


def render_fields(table: DecodedTable) -> list[str]:
    """List every non-array field, flag bits by name."""
    return [
        f"{name:>{FIELD_NAME_WIDTH}}: {_format_value(value, names)}"
        for name, value, names in table.fields()
    ]


def render_rates(table: DecodedTable) -> list[str]:
    lines = [
        f"Date: {format_timestamp(table.value('timestamp'))}",
        f"Telco ID: 0x{table.value('telco_id'):02x} ({table.value('telco_id')})",
        "Spare bytes:",
        *hex_dump(table.value("spare")),
        "",
        "+------------+-------------------------+----------------+--------------+-------------------+-----------------+",
        "| Index      | Type                    | Initial Period | Initial Rate | Additional Period | Additional Rate |",
        "+------------+-------------------------+----------------+--------------+-------------------+-----------------+",
    ]

    for slot, entry in table.entries("rates"):
        assert isinstance(entry, RateEntry)
        category = entry.classification
        label = category.name.lower() if category is not None else f"?{entry.type & 0x0F:02x}?"
        lines.append(
            f"| {slot:3d} (0x{slot:02x}) | 0x{entry.type:02x} {label:<18} "
            f"|      {_format_period(entry.initial_seconds):>9} "
            f"|       {_format_charge(entry.initial_charge)} "
            f"|         {_format_period(entry.additional_seconds):>9} "
            f"|          {_format_charge(entry.additional_charge)} |"
        )

    lines.append("+" + "-" * 108 + "+")
    return lines


def render_intl_rates(table: DecodedTable) -> list[str]:
    flags = table.value("flags")
    default = table.value("default_rate_index")
    spare = table.value("spare")

    lines = [
        f"International Flags: 0x{flags:02x} ({flags})",
        f" Default Rate index: 0x{int(default):02x} ({int(default)}) {_format_selector(default)}",
        f"              Spare: 0x{spare:02x} ({spare})",
        "",
        "+------------+--------------+------------+",
        "| Index      | CCode        | RATE Entry |",
        "+------------+--------------+------------+",
    ]

    for slot, entry in table.entries("entries"):
        assert isinstance(entry, IntlRateEntry)
        kind = entry.classification
        rate_index = entry.selector.rate_index
        if kind is SelectorClass.NCC_RATED:
            target = "NCC-rated"
        elif kind is SelectorClass.BLOCKED:
            target = "BLOCKED"
        else:
            target = f"0x{rate_index:02x} ({rate_index})"
        lines.append(f"| {slot:3d} (0x{slot:02x}) | 0x{entry.calling_code:04x} {entry.calling_code:5d} | {target:<10} |")

    lines.append("+" + "-" * 40 + "+")
    return lines


def render_coins(table: DecodedTable) -> list[str]:
    lines = [
        "+---------------------------------------------+",
        "|  # | Coin Type         | Val | Vol | Params |",
        "+----+-------------------+-----+-----+--------+",
    ]

    for slot, entry in table.entries("coins"):
        assert isinstance(entry, CoinEntry)
        lines.append(
            f"| {slot + 1:2d} | {entry.coin_type.label:<17} | {entry.value:3d} | {entry.volume:3d} |     {entry.param:2d} |"
        )

    lines += [
        "+---------------------------------------------+",
        f"|           Cash Box Volume:   {table.value('cash_box_volume'):5d}          |",
        f"|             Escrow Volume:   {table.value('escrow_volume'):5d}          |",
        f"| Cash Box Volume Threshold:   {table.value('cash_box_volume_threshold'):5d}          |",
        f"|  Cash Box Value Threshold: ${table.value('cash_box_value_threshold') / 100:6.2f}          |",
        f"|   Escrow Volume Threshold:   {table.value('escrow_volume_threshold'):5d}          |",
        f"|    Escrow Value Threshold: ${table.value('escrow_value_threshold') / 100:6.2f}          |",
        "+---------------------------------------------+",
    ]
    return lines


def render_rep_dial(table: DecodedTable) -> list[str]:
    lines = [
        "+-----------------------------------------------------------------------------------------------+",
        "|  # | Pad            | Number           | Display Prompt       |  Pad2                         |",
        "+----+----------------+------------------+----------------------+-------------------------------+",
    ]

    for slot, entry in table.entries("entries"):
        assert isinstance(entry, RepDialEntry)
        first, second = entry.prompt_lines
        pad = ",".join(f"0x{b:02x}" for b in entry.pad)
        pad2 = ",".join(f"0x{b:02x}" for b in entry.pad2)
        lines.append(f"| {slot:2d} | {pad} | {entry.number:>16} | {first:<20} | {pad2} |")
        lines.append(f"|    |                |                  | {second:<20} |                               |")

    lines.append("+" + "-" * 95 + "+")
    return lines


_RENDERERS: dict[TableId, Callable[[DecodedTable], list[str]]] = {
    TableId.FEATURE_CONFIG: render_fields,
    TableId.COIN_VALIDATION: render_coins,
    TableId.REP_DIAL_LIST: render_rep_dial,
    TableId.RATE: render_rates,
    TableId.INTL_SBR: render_intl_rates,
}


def render_table(table: DecodedTable) -> str:
    """Render the full report for a decoded table, warnings last."""
    lines = [f"Nortel Millennium {table.table_id} Dump", ""]

    lines += _RENDERERS[table.table_id](table)

    if table.warnings:
        lines.append("")
        lines += [f"Warning: {warning}" for warning in table.warnings]

    return "\n".join(lines) + "\n"
