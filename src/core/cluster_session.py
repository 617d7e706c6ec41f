"""DX cluster telnet session manager.

Keeps one telnet session to the cluster going for the lifetime of the
process:

1) Pick a jittered reconnect delay for this cycle
2) Connect (any OSError: sleep the delay, start over)
3) Log in: the first bytes up to a space must read ``login:``
4) Relay lines both ways until the connection drops
5) Sleep the same delay and reconnect

Connection problems are retried forever. A login protocol violation or a
channel that can no longer be used ends ``run()`` with an exception, which the
supervisor turns into process exit.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random
from enum import Enum
from typing import Awaitable, Callable, Optional

from core.channels import ChannelClosed, LineChannel
from core.config import ClusterConfig
from core.line_filter import is_relevant
from core.ports import Connector, LineReader, LineWriter

LOGGER = logging.getLogger(__name__)

RECONNECT_DELAY_SECONDS = 17.0
LOGIN_PROMPT = "login:"


class SessionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    ACTIVE = "active"


class ClusterSessionError(RuntimeError):
    """Unrecoverable session failure; the manager does not retry these."""


class LoginError(ClusterSessionError):
    """The cluster did not greet us with a login prompt."""


class ChannelExhaustedError(ClusterSessionError):
    """One of the line channels was closed by its other end."""


def jittered_delay(rng: Optional[random.Random] = None) -> float:
    """Return a reconnect delay between 17 and 34 seconds (inclusive)."""

    source = rng if rng is not None else random
    return RECONNECT_DELAY_SECONDS + source.uniform(0.0, RECONNECT_DELAY_SECONDS)


def clean_line(line: str) -> str:
    """Strip trailing whitespace, then trailing bell characters."""

    return line.rstrip().rstrip("\x07")


class ClusterSession:
    """Reconnecting, bidirectional telnet relay for one cluster."""

    def __init__(
        self,
        config: ClusterConfig,
        spots: LineChannel,
        commands: LineChannel,
        connector: Connector,
        *,
        line_filter: Callable[[str], bool] = is_relevant,
        delay_factory: Callable[[], float] = jittered_delay,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._spots = spots
        self._commands = commands
        self._connector = connector
        self._line_filter = line_filter
        self._delay_factory = delay_factory
        self._sleep = sleep
        self._command_task: Optional[asyncio.Future] = None
        self.state = SessionState.DISCONNECTED

    async def run(self) -> None:
        """Keep the telnet connection going until a fatal error occurs."""

        try:
            while True:
                await self._run_cycle()
        finally:
            self.state = SessionState.DISCONNECTED
            if self._command_task is not None:
                self._command_task.cancel()
                self._command_task = None

    async def _run_cycle(self) -> None:
        self.state = SessionState.DISCONNECTED
        # Used for both a failed connect and a dropped session.
        delay = self._delay_factory()

        self.state = SessionState.CONNECTING
        try:
            reader, writer = await self._connector(self._config.host)
        except OSError as err:
            LOGGER.error(
                "Telnet connection failed: %s. Will retry in %d seconds.",
                err,
                delay,
            )
            self.state = SessionState.DISCONNECTED
            await self._sleep(delay)
            return

        try:
            self.state = SessionState.AUTHENTICATING
            await self._login(reader, writer)
            self.state = SessionState.ACTIVE
            LOGGER.info("Logged in to %s as %s", self._config.host, self._config.username)
            await self._relay(reader, writer)
        finally:
            writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()

        self.state = SessionState.DISCONNECTED
        LOGGER.error(
            "Probably lost telnet connection. Going to reconnect in %d seconds...",
            delay,
        )
        await self._sleep(delay)

    async def _login(self, reader: LineReader, writer: LineWriter) -> None:
        try:
            greeting = await reader.readuntil(b" ")
        except (asyncio.IncompleteReadError, asyncio.LimitOverrunError, OSError) as err:
            LOGGER.error("Telnet login failed: %s", err)
            raise LoginError("couldn't read the login prompt") from err

        try:
            text: Optional[str] = greeting.decode("utf-8")
        except UnicodeDecodeError:
            text = None

        if text is None or not text.startswith(LOGIN_PROMPT):
            LOGGER.error("Received line: %s", greeting.decode("utf-8", errors="replace"))
            raise LoginError("received unexpected data from cluster telnet")

        LOGGER.debug("First line received: %s", text)
        try:
            writer.write(f"{self._config.username}\n".encode("utf-8"))
            await writer.drain()
        except OSError as err:
            LOGGER.error("Telnet login failed: %s", err)
            raise LoginError("couldn't send the username") from err

    async def _relay(self, reader: LineReader, writer: LineWriter) -> None:
        """Multiplex socket lines and queued commands until the link drops."""

        read_task: Optional[asyncio.Future] = None
        try:
            while True:
                if read_task is None:
                    read_task = asyncio.ensure_future(reader.readline())
                if self._command_task is None:
                    # Survives reconnects so a received command is never dropped.
                    self._command_task = asyncio.ensure_future(self._commands.recv())

                done, _ = await asyncio.wait(
                    {read_task, self._command_task},
                    return_when=asyncio.FIRST_COMPLETED,
                )

                if read_task in done:
                    finished, read_task = read_task, None
                    if not self._handle_inbound(finished):
                        return

                if self._command_task in done:
                    finished, self._command_task = self._command_task, None
                    if not await self._handle_outbound(finished.result(), writer):
                        return
        finally:
            if read_task is not None:
                read_task.cancel()

    def _handle_inbound(self, finished: asyncio.Future) -> bool:
        """Process one socket read; False means the connection is gone."""

        try:
            raw = finished.result()
        except OSError as err:
            LOGGER.error("Error when reading from telnet: %s", err)
            return False
        except ValueError as err:
            # StreamReader.readline reports over-long lines as ValueError.
            LOGGER.warning("Invalid line from telnet: %s", err)
            return True

        if not raw:
            LOGGER.error("No more lines to read from telnet. Connection dead?")
            return False

        try:
            line = clean_line(raw.decode("utf-8"))
        except UnicodeDecodeError as err:
            LOGGER.warning("Invalid line from telnet: %s", err)
            return True

        LOGGER.debug("telnet rx: ^%s$", line)
        if self._line_filter(line):
            try:
                self._spots.send(line)
            except ChannelClosed as err:
                LOGGER.error("Error when trying to send to channel: %s", err)
                raise ChannelExhaustedError("telnet channel (rx) closed") from err
        return True

    async def _handle_outbound(self, line: Optional[str], writer: LineWriter) -> bool:
        """Write one command; False means the connection is gone."""

        if line is None:
            LOGGER.error("Telnet TX channel closed. Going to close the telnet connection.")
            raise ChannelExhaustedError("telnet channel (tx) closed")

        LOGGER.debug("telnet tx: ^%s$", line)
        try:
            writer.write(f"{line}\n".encode("utf-8"))
            await writer.drain()
        except OSError as err:
            LOGGER.error("Error when trying to send to telnet: %s", err)
            return False
        return True
