"""Serial transport for talking to the terminal's modem."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import serial_asyncio_fast

from .exceptions import DLOGConnectionError, DLOGTimeoutError

_LOGGER = logging.getLogger(__name__)

MAX_LINE_LENGTH = 254  # Longest modem response line kept
FLUSH_TIMEOUT = 0.05  # Quiet time that ends an input flush


class SerialTransport:
    """Handles connection and raw byte I/O with a modem.

    Supports every connection type pyserial-asyncio-fast understands:
    - Serial ports: /dev/ttyUSB0, COM3
    - TCP sockets: socket://192.168.1.100:10001
    - RFC2217: rfc2217://192.168.1.100:10001

    Default serial parameters match the host modems used with Millennium
    terminals: 19200 baud, 8 data bits, no parity, 1 stop bit (8N1).
    """

    # Public attributes
    url: str
    serial_kwargs: dict[str, Any]

    # Private attributes
    _reader: asyncio.StreamReader | None
    _writer: asyncio.StreamWriter | None
    _connected: bool

    def __init__(
        self,
        url: str,
        baudrate: int = 19200,
        bytesize: int = 8,
        parity: str = "N",
        stopbits: float = 1,
        **kwargs: Any,
    ) -> None:
        """Initialize transport (does not open connection).

        Args:
            url: Connection URL (serial port or socket://host:port or rfc2217://host:port)
            baudrate: Baud rate for serial connections (default 19200 bps)
            bytesize: Number of data bits (default 8)
            parity: Parity checking - 'N'=None, 'E'=Even, 'O'=Odd (default 'N')
            stopbits: Number of stop bits - 1, 1.5, or 2 (default 1)
            **kwargs: Additional serial parameters (xonxoff, rtscts, dsrdtr, etc.)
        """
        self.url = url

        self.serial_kwargs = {
            "baudrate": baudrate,
            "bytesize": bytesize,
            "parity": parity,
            "stopbits": stopbits,
            **kwargs,
        }

        self._reader = None
        self._writer = None
        self._connected = False

    async def open(self) -> None:
        """Open connection to the modem.

        Raises:
            DLOGConnectionError: If connection fails
        """
        if self._connected:
            return

        try:
            (
                self._reader,
                self._writer,
            ) = await serial_asyncio_fast.open_serial_connection(url=self.url, **self.serial_kwargs)
            self._connected = True
        except Exception as e:
            raise DLOGConnectionError(f"Failed to open connection to {self.url}: {e}") from e

        _LOGGER.debug("Opened %s (%s)", self.url, self.serial_kwargs)

    async def close(self) -> None:
        """Close connection (idempotent - safe to call multiple times)."""
        if not self._connected:
            return

        if self._writer:
            try:
                self._writer.close()
                await self._writer.wait_closed()
            except Exception as e:
                _LOGGER.debug("Ignoring error while closing %s: %s", self.url, e)

        self._reader = None
        self._writer = None
        self._connected = False

    def is_connected(self) -> bool:
        return self._connected

    async def write(self, data: bytes) -> None:
        """Write raw bytes to transport.

        Raises:
            DLOGConnectionError: If not connected or the write fails
        """
        if not self._connected or not self._writer:
            raise DLOGConnectionError("Transport is not connected")

        try:
            self._writer.write(data)
            await self._writer.drain()
        except Exception as e:
            self._connected = False
            raise DLOGConnectionError(f"Failed to write data: {e}") from e

    async def read(self, size: int, timeout: float) -> bytes:
        """Read exactly size bytes.

        Returns:
            Exactly size bytes, empty bytes on timeout, or the partial data
            if the connection was closed

        Raises:
            DLOGConnectionError: If not connected or the read fails
        """
        if not self._connected or not self._reader:
            raise DLOGConnectionError("Transport is not connected")

        try:
            return await asyncio.wait_for(self._reader.readexactly(size), timeout=timeout)
        except TimeoutError:
            return b""
        except asyncio.IncompleteReadError as e:
            self._connected = False  # Peer closed the connection
            return e.partial
        except Exception as e:
            self._connected = False
            raise DLOGConnectionError(f"Failed to read data: {e}") from e

    async def readline(self, timeout: float) -> str:
        """Read one response line terminated by CR or LF.

        Bytes are read one at a time so no data past the terminator is
        consumed. The terminator is not included; lines longer than
        MAX_LINE_LENGTH are cut at that length.

        Args:
            timeout: Seconds to wait for each byte

        Returns:
            Decoded line (may be empty for a bare terminator)

        Raises:
            DLOGTimeoutError: If no byte arrives within ``timeout``
            DLOGConnectionError: If not connected or the connection closed
        """
        line = bytearray()

        while len(line) < MAX_LINE_LENGTH:
            byte = await self.read(1, timeout)

            if not byte:
                if not self._connected:
                    raise DLOGConnectionError("Connection closed while reading a line")
                raise DLOGTimeoutError(f"No response within {timeout}s (got {bytes(line)!r})")

            if byte in (b"\r", b"\n"):
                break

            line += byte

        return line.decode("ascii", errors="replace")

    async def flush_input(self, timeout: float = FLUSH_TIMEOUT) -> int:
        """Discard any bytes the device already sent.

        Reads until the line stays quiet for ``timeout`` seconds.

        Returns:
            Number of bytes discarded
        """
        discarded = 0

        while await self.read(1, timeout):
            discarded += 1

        if discarded:
            _LOGGER.debug("Flushed %d pending bytes", discarded)

        return discarded

    async def __aenter__(self) -> SerialTransport:
        await self.open()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
