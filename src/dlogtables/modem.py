"""AT-command handshake with the host modem.

The terminal dials in over a Bell 212A (1200 bps) line, so the host modem
has to be reset, forced to that modulation and put in auto-answer before
any table can be exchanged.
"""

from __future__ import annotations

import asyncio
import logging

from .exceptions import DLOGModemError, DLOGTimeoutError
from .transport import SerialTransport

_LOGGER = logging.getLogger(__name__)

RESPONSE_OK = "OK"
ESCAPE_CHARACTER = b"+"
ESCAPE_REPEAT = 3
ESCAPE_SPACING = 0.1  # Seconds between escape characters
ESCAPE_GUARD_TIME = 1.0  # Seconds of silence after the escape sequence
HANGUP_RETRIES = 3


class Modem:
    """Host modem driven through AT commands.

    Attributes:
        transport: Open serial transport to the modem
        modulation_command: AT command forcing Bell 212A modulation (modem specific)
        carrier_wait: Seconds to wait for carrier (S7 register)
        command_retries: Times each AT command is sent before giving up
        response_tries: Response lines examined per attempt
        command_delay: Seconds the modem gets to process a command
        response_timeout: Seconds to wait for each response byte

    Usage:
        async with SerialTransport("/dev/ttyUSB0") as transport:
            modem = Modem(transport)
            await modem.init()
    """

    transport: SerialTransport
    modulation_command: str
    carrier_wait: int
    command_retries: int
    response_tries: int
    command_delay: float
    response_timeout: float

    def __init__(
        self,
        transport: SerialTransport,
        modulation_command: str = "AT+MS=B212",
        carrier_wait: int = 3,
        command_retries: int = 3,
        response_tries: int = 5,
        command_delay: float = 0.1,
        response_timeout: float = 1.0,
    ) -> None:
        self.transport = transport
        self.modulation_command = modulation_command
        self.carrier_wait = carrier_wait
        self.command_retries = command_retries
        self.response_tries = response_tries
        self.command_delay = command_delay
        self.response_timeout = response_timeout

    def init_sequence(self) -> list[tuple[str, str]]:
        """AT commands sent by ``init`` as (description, command) pairs."""
        return [
            ("Reset modem", "ATZ"),
            ("Disable modem command echo", "ATE=1"),
            ("Set modulation to Bell 212A", self.modulation_command),
            (f"Set carrier wait timeout to {self.carrier_wait} seconds", f"ATS7={self.carrier_wait}"),
            ("Set modem autoanswer", "ATS0=1"),
        ]

    async def wait_for_response(self, match: str = RESPONSE_OK, max_tries: int | None = None) -> bool:
        """Read response lines until one contains ``match``.

        A line that times out counts as one try. Blank lines (the CR LF
        framing around every modem response) do not.

        Args:
            match: Substring expected in the response
            max_tries: Lines to examine (default ``response_tries``)

        Returns:
            True if a matching line arrived, False otherwise
        """
        tries_left = self.response_tries if max_tries is None else max_tries

        while tries_left > 0:
            try:
                line = await self.transport.readline(self.response_timeout)
            except DLOGTimeoutError:
                tries_left -= 1
                continue

            if not line:
                continue

            if match in line:
                return True

            _LOGGER.debug("Modem replied %r while waiting for %r", line, match)
            tries_left -= 1

        return False

    async def send_at_command(self, command: str) -> None:
        """Send one AT command and wait for OK, retrying as configured.

        Raises:
            DLOGModemError: If no attempt was acknowledged
            DLOGConnectionError: If the transport fails
        """
        for attempt in range(1, self.command_retries + 1):
            await self.transport.flush_input()
            await self.transport.write(f"{command}\r".encode("ascii"))

            await asyncio.sleep(self.command_delay)

            if await self.wait_for_response(RESPONSE_OK):
                return

            _LOGGER.debug("No OK for %s (attempt %d/%d)", command, attempt, self.command_retries)

        raise DLOGModemError(f"Modem did not acknowledge {command} after {self.command_retries} attempts")

    async def init(self) -> None:
        """Reset the modem and prepare it to answer the terminal.

        Raises:
            DLOGModemError: If a command of the sequence is not acknowledged
        """
        for description, command in self.init_sequence():
            _LOGGER.info("%s.", description)
            await self.send_at_command(command)

    async def hangup(self) -> None:
        """Return to command mode with the escape sequence and hang up.

        Raises:
            DLOGModemError: If the modem never returned to command mode or
                            did not acknowledge ATH0
        """
        for _ in range(HANGUP_RETRIES):
            await self.transport.flush_input()

            for _ in range(ESCAPE_REPEAT):
                await self.transport.write(ESCAPE_CHARACTER)
                await asyncio.sleep(ESCAPE_SPACING)

            await asyncio.sleep(ESCAPE_GUARD_TIME)

            if await self.wait_for_response(RESPONSE_OK, max_tries=1):
                _LOGGER.info("Hanging up.")
                await self.send_at_command("ATH0")
                return

        raise DLOGModemError("Modem did not return to command mode")
