"""dlog-table command line tool."""

from __future__ import annotations

import argparse
import asyncio
import logging
import re
import sys
from pathlib import Path

from .exceptions import DLOGError
from .modem import Modem
from .render import render_table
from .table import (
    DecodedTable,
    TableId,
    apply_coin_provisioning,
    read_table,
    replace_international_rates,
    save_table,
)
from .transport import SerialTransport

_LOGGER = logging.getLogger(__name__)

TABLE_FILE_PATTERN = re.compile(r"mm_table_([0-9a-fA-F]{2})\.bin$")


def table_id_from_path(path: Path) -> TableId:
    """Infer the table id from an ``mm_table_XX.bin`` file name.

    Raises:
        ValueError: If the name does not carry a supported table id
    """
    match = TABLE_FILE_PATTERN.search(path.name)
    if match is None:
        raise ValueError(f"Cannot infer the table id from {path.name!r}, use --table")
    return TableId(int(match.group(1), 16))


def provision(table: DecodedTable) -> bool:
    """Apply the provisioning patch for the table's type, if it has one."""
    if table.table_id is TableId.COIN_VALIDATION:
        apply_coin_provisioning(table)
    elif table.table_id is TableId.INTL_SBR:
        replace_international_rates(table)
    else:
        return False
    return True


def dump(path: Path, table_id: int | None, output: Path | None, provision_table: bool) -> int:
    table_id = table_id_from_path(path) if table_id is None else TableId(table_id)

    with path.open("rb") as source:
        table = read_table(table_id, source)

    print(render_table(table), end="")

    if provision_table:
        if provision(table):
            print(f"\nProvisioned {table.table_id}:\n")
            print(render_table(table), end="")
        else:
            _LOGGER.warning("%s has no provisioning patch", table.table_id)

    if output is not None:
        print(f"\nWriting new table to {output}")
        save_table(table, output)

    return 0


async def modem_init(port: str, baudrate: int) -> int:
    async with SerialTransport(port, baudrate=baudrate) as transport:
        await Modem(transport).init()
    print("Modem initialized.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="dlog-table", description="Nortel Millennium DLOG table tool")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG")

    sub = ap.add_subparsers(dest="cmd", required=True)

    p_dump = sub.add_parser("dump", help="Print a table file, optionally provision and rewrite it")
    p_dump.add_argument("file", type=Path)
    p_dump.add_argument("--table", type=lambda x: int(x, 0), default=None, help="Table id (default: from file name)")
    p_dump.add_argument("--output", type=Path, default=None, help="Write the (patched) table here")
    p_dump.add_argument("--provision", action="store_true", help="Apply the table's provisioning patch")

    p_modem = sub.add_parser("modem-init", help="Reset the host modem and enable auto-answer")
    p_modem.add_argument("port")
    p_modem.add_argument("--baud", type=int, default=19200)

    return ap


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.cmd == "dump":
            return dump(args.file, args.table, args.output, args.provision)
        if args.cmd == "modem-init":
            return asyncio.run(modem_init(args.port, args.baud))
    except (DLOGError, ValueError, OSError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
