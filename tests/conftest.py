"""Shared test fixtures for pyDLOGTables tests."""

from __future__ import annotations

import asyncio
import struct
from collections.abc import Callable, Iterable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# =============================================================================
# Table Buffer Builders
# =============================================================================
# Built with struct, independent of the codec under test

RATE_FILE_SIZE = 1191
INTL_SBR_FILE_SIZE = 603
COINVL_FILE_SIZE = 104
RDLIST_FILE_SIZE = 570
FEATRU_FILE_SIZE = 67

RATE_ENTRY = struct.Struct("<BHHHH")
INTL_ENTRY = struct.Struct("<HB")


def build_rate_table(
    entries: dict[int, tuple[int, int, int, int, int]],
    telco_id: int = 0x01,
    timestamp: bytes = bytes([120, 10, 18, 13, 5, 9]),
) -> bytes:
    """RATE file image: telco id, timestamp, 32 spare bytes, 128 x 9-byte entries."""
    data = bytearray(RATE_FILE_SIZE)
    data[0] = telco_id
    data[1:7] = timestamp
    data[7:39] = bytes(range(32))
    for slot, entry in entries.items():
        RATE_ENTRY.pack_into(data, 39 + slot * RATE_ENTRY.size, *entry)
    return bytes(data)


def build_intl_table(entries: Iterable[tuple[int, int]], flags: int = 0, default: int = 0) -> bytes:
    """INTL_SBR file image: flags, default selector, spare, 200 x 3-byte entries."""
    data = bytearray(INTL_SBR_FILE_SIZE)
    data[0] = flags
    data[1] = default
    for slot, entry in enumerate(entries):
        INTL_ENTRY.pack_into(data, 3 + slot * INTL_ENTRY.size, *entry)
    return bytes(data)


def build_coin_table(coins: dict[int, tuple[int, int, int]], cash_box_volume: int = 0) -> bytes:
    """COINVL image: 16 values, 16 volumes, 16 params, then thresholds and pad."""
    data = bytearray(COINVL_FILE_SIZE)
    for slot, (value, volume, param) in coins.items():
        struct.pack_into("<H", data, slot * 2, value)
        struct.pack_into("<H", data, 32 + slot * 2, volume)
        data[64 + slot] = param
    struct.pack_into("<HHHIHI", data, 80, cash_box_volume, 0, 0, 12345, 0, 0)
    return bytes(data)


def build_rdlist_table(entries: dict[int, tuple[bytes, bytes]]) -> bytes:
    """RDLIST file image: 10 x {pad 3, phone 8, prompt 40, pad2 6}."""
    data = bytearray(RDLIST_FILE_SIZE)
    for slot, (phone, prompt) in entries.items():
        base = slot * 57
        data[base + 3 : base + 11] = phone.ljust(8, b"\x00")
        data[base + 11 : base + 51] = prompt.ljust(40, b"\x00")
    return bytes(data)


@pytest.fixture
def rate_table_builder() -> Callable[..., bytes]:
    return build_rate_table


@pytest.fixture
def intl_table_builder() -> Callable[..., bytes]:
    return build_intl_table


@pytest.fixture
def rate_table_bytes() -> bytes:
    """RATE table with three present entries around unused slots."""
    return build_rate_table(
        {
            0: (0x08, 60, 25, 60, 10),  # mm_local
            3: (0x09, 0x8000 | 180, 150, 0x8000, 75),  # international, both unlimited
            127: (0x05, 30, 35, 30, 35),  # toll_intra_lata
        }
    )


@pytest.fixture
def intl_table_bytes() -> bytes:
    return build_intl_table([(1, 3), (33, 1), (49, 0), (61, 2)], flags=0x01, default=2)


@pytest.fixture
def coin_table_bytes() -> bytes:
    return build_coin_table({0: (5, 20, 1), 3: (25, 25, 1), 8: (100, 30, 0)}, cash_box_volume=400)


@pytest.fixture
def rdlist_table_bytes() -> bytes:
    return build_rdlist_table(
        {
            0: (bytes([0x18, 0xAA, 0x55, 0x51, 0x21, 0x20]), b"Directory Assistance" + b"Free call           "),
            1: (bytes([0x61, 0x1B, 0xC0]), b"\x00" * 40),
        }
    )


@pytest.fixture
def featru_table_bytes() -> bytes:
    data = bytearray(FEATRU_FILE_SIZE)
    data[3] = 0x81  # card_val_info
    data[5] = 0x02  # incoming_call_mode
    data[7] = 0x80  # OOS_POTS_flags: eleven digit local calls
    struct.pack_into("<H", data, 28, 300)  # coin_call_overtime_period
    return bytes(data)


# =============================================================================
# Serial Fixtures
# =============================================================================


@pytest.fixture
def mock_serial_connection() -> tuple[AsyncMock, AsyncMock]:
    """Create mock reader and writer for serial connections."""
    mock_reader = AsyncMock()
    mock_writer = AsyncMock()

    mock_writer.write = MagicMock()
    mock_writer.drain = AsyncMock()
    mock_writer.close = MagicMock()
    mock_writer.wait_closed = AsyncMock()

    mock_reader.readexactly = AsyncMock()

    return mock_reader, mock_writer


@pytest.fixture
def mock_open_serial_connection(mock_serial_connection: tuple[AsyncMock, AsyncMock]) -> Any:
    """Mock serial_asyncio_fast.open_serial_connection."""
    mock_reader, mock_writer = mock_serial_connection

    async def mock_open(*_args: Any, **_kwargs: Any) -> tuple[AsyncMock, AsyncMock]:
        return mock_reader, mock_writer

    return mock_open


class FakeModem:
    """Scripted modem acting as both stream reader and writer.

    Every command terminated by CR (and the bare ``+++`` escape) queues a
    response: the next scripted one for that command, otherwise ``default``.
    Reading with nothing queued raises TimeoutError, like a silent line.
    """

    def __init__(self, responses: dict[str, list[bytes]] | None = None, default: bytes = b"\r\nOK\r\n") -> None:
        self.responses = {command: list(replies) for command, replies in (responses or {}).items()}
        self.default = default
        self.written: list[bytes] = []
        self.commands: list[str] = []
        self.closed = False
        self._pending = bytearray()
        self._rx = bytearray()

    def queue(self, data: bytes) -> None:
        self._rx += data

    def _respond(self, command: str) -> None:
        self.commands.append(command)
        replies = self.responses.get(command)
        self._rx += replies.pop(0) if replies else self.default

    # Writer side
    def write(self, data: bytes) -> None:
        self.written.append(data)
        self._pending += data

        if b"\r" in self._pending:
            command, _, rest = bytes(self._pending).partition(b"\r")
            self._pending = bytearray(rest)
            self._respond(command.decode("ascii"))
        elif self._pending == b"+++":
            self._pending.clear()
            self._respond("+++")

    async def drain(self) -> None:
        return None

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        return None

    # Reader side
    async def readexactly(self, n: int) -> bytes:
        if len(self._rx) < n:
            raise TimeoutError
        data = bytes(self._rx[:n])
        del self._rx[:n]
        return data


@pytest.fixture
def fake_modem() -> FakeModem:
    return FakeModem()


@pytest.fixture
def fake_open_serial_connection(fake_modem: FakeModem) -> Any:
    """open_serial_connection replacement wired to the fake_modem fixture."""

    async def fake_open(*_args: Any, **_kwargs: Any) -> tuple[FakeModem, FakeModem]:
        return fake_modem, fake_modem

    return fake_open


@pytest.fixture
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> AsyncMock:
    """Skip the modem's command and escape delays."""
    sleep = AsyncMock()
    monkeypatch.setattr(asyncio, "sleep", sleep)
    return sleep


def pytest_configure(config: Any) -> None:
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test (fast, uses mocks)")
    config.addinivalue_line("markers", "integration: mark test as an integration test (slower, uses real I/O)")
