# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Firefly Provisioning Authors

"""
REPL session with a Firefly device.

A session owns one transport for its lifetime and moves through

    DISCONNECTED -> CONNECTED -> AWAITING_READY -> READY

Commands are only accepted once READY. Each command is written, then lines
are read and classified until <OK or <ERROR; key/value lines fill a
CommandResult, `!` lines are collected as error reasons, everything else
is logged.

One command is in flight at a time; callers serialize their own commands.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..errors import (
    DeviceError,
    NotReady,
    TransportNotConnected,
    TransportTimeout,
    UnexpectedResponse,
)
from .classifier import (
    DeviceErrorLine,
    EspLog,
    HexBytesValue,
    Info,
    IntegerValue,
    KeyValue,
    ResultValue,
    Terminator,
    TextValue,
    Unknown,
    classify_line,
)
from .codec import encode_command
from .transport import LineTransport


logger = logging.getLogger(__name__)

READY_LINE = "<READY"


class SessionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    AWAITING_READY = "awaiting_ready"
    READY = "ready"


@dataclass
class CommandResult:
    """Key/value output of one command plus any device error reasons."""

    values: Dict[str, ResultValue] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    def __getitem__(self, key: str) -> ResultValue:
        return self.values[key]

    def __contains__(self, key: str) -> bool:
        return key in self.values

    def get(self, key: str, default: Optional[ResultValue] = None) -> Optional[ResultValue]:
        return self.values.get(key, default)

    def integer(self, key: str) -> int:
        return self._require(key, IntegerValue).value

    def data(self, key: str) -> bytes:
        return self._require(key, HexBytesValue).value

    def text(self, key: str) -> str:
        return self._require(key, TextValue).value

    def _require(self, key: str, kind: type):
        value = self.values.get(key)
        if value is None:
            raise UnexpectedResponse(f"missing response key: {key}")
        if not isinstance(value, kind):
            raise UnexpectedResponse(f"response key {key} is {type(value).__name__}, expected {kind.__name__}")
        return value

    def as_dict(self) -> Dict[str, Any]:
        """Plain values for logging; hex bytes render as 0x strings."""
        result: Dict[str, Any] = {}
        for key, value in self.values.items():
            result[key] = value.hex() if isinstance(value, HexBytesValue) else value.value
        if self.errors:
            result["errors"] = list(self.errors)
        return result


class ReplSession:
    """
    Command session over a LineTransport.

    Example:
        >>> session = ReplSession()
        >>> session.connect(SerialLineTransport("/dev/ttyACM0").open())  # doctest: +SKIP
        >>> await session.wait_ready()  # doctest: +SKIP
        >>> (await session.send_command("VERSION")).integer("version")  # doctest: +SKIP
        1
    """

    def __init__(
        self,
        transport: Optional[LineTransport] = None,
        *,
        poll_interval: float = 0.1,
        settle_delay: float = 0.5,
        stall_limit: int = 10,
        ready_timeout: Optional[float] = None,
        response_timeout: Optional[float] = None,
        log: Optional[logging.Logger] = None,
    ):
        """
        Args:
            transport: Already-open transport; may be attached later with connect()
            poll_interval: Delay between reads, and after the ready handshake
            settle_delay: Delay after <READY before the first command
            stall_limit: Non-ready lines tolerated before nudging with PING
            ready_timeout: Limit for the whole handshake (None waits forever)
            response_timeout: Limit for each line read (None waits forever)
            log: Logger receiving device output (defaults to this module's)
        """
        self.poll_interval = poll_interval
        self.settle_delay = settle_delay
        self.stall_limit = stall_limit
        self.ready_timeout = ready_timeout
        self.response_timeout = response_timeout
        self.log = log or logger

        self._transport: Optional[LineTransport] = None
        self._state = SessionState.DISCONNECTED
        if transport is not None:
            self.connect(transport)

    @classmethod
    def from_settings(cls, transport: Optional[LineTransport], settings, log: Optional[logging.Logger] = None) -> "ReplSession":
        """Build a session using the timing values from Settings."""
        return cls(
            transport,
            poll_interval=settings.poll_interval,
            settle_delay=settings.settle_delay,
            stall_limit=settings.stall_limit,
            ready_timeout=settings.ready_timeout,
            response_timeout=settings.response_timeout,
            log=log,
        )

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state is SessionState.READY

    def connect(self, transport: LineTransport) -> None:
        """Attach the transport for this physical connection."""
        if self._state is not SessionState.DISCONNECTED:
            raise RuntimeError(f"session already {self._state.value}; one session per connection")
        self._transport = transport
        self._state = SessionState.CONNECTED

    def close(self) -> None:
        """Detach and close the transport."""
        transport, self._transport = self._transport, None
        self._state = SessionState.DISCONNECTED
        close = getattr(transport, "close", None)
        if callable(close):
            close()

    async def wait_ready(self) -> None:
        """
        Perform the ready handshake.

        Waits for <READY, sending PING whenever the device has stalled for
        more than `stall_limit` lines, then lets the device settle and
        sends NOP.

        Raises:
            TransportNotConnected: If no transport is attached
            TransportTimeout: If ready_timeout elapses
        """
        if self._transport is None:
            raise TransportNotConnected()
        if self._state is SessionState.READY:
            return

        self._state = SessionState.AWAITING_READY
        try:
            if self.ready_timeout is None:
                await self._handshake()
            else:
                await asyncio.wait_for(self._handshake(), self.ready_timeout)
        except TransportTimeout:
            self._state = SessionState.CONNECTED
            raise
        except asyncio.TimeoutError:
            self._state = SessionState.CONNECTED
            raise TransportTimeout(f"device not ready after {self.ready_timeout}s")
        except BaseException:
            self._state = SessionState.CONNECTED
            raise

        self._state = SessionState.READY
        self.log.info("Device ready")

    async def _handshake(self) -> None:
        count = 0
        while True:
            line = await self._read_line()
            if line == READY_LINE:
                break
            await asyncio.sleep(self.poll_interval)

            stalled = count > self.stall_limit
            count += 1
            if stalled:
                self.log.debug("Device stalled; sending PING")
                await self._send_command("PING", ignore_error=True)
                count = 0

        await asyncio.sleep(self.settle_delay)
        await self._send_command("NOP", ignore_error=True)
        await asyncio.sleep(self.poll_interval)

    async def send_command(self, command: str, ignore_error: bool = False) -> CommandResult:
        """
        Send a command and collect its output.

        Args:
            command: `NAME` or `NAME=VALUE`
            ignore_error: Return the partial result on <ERROR instead of raising

        Returns:
            Collected key/values and device error reasons

        Raises:
            NotReady: If the handshake has not completed
            MalformedCommand: If the command value cannot be normalized
            DeviceError: If the device answered <ERROR (unless ignore_error)
            TransportTimeout: If response_timeout elapses on a read
        """
        if self._state is not SessionState.READY:
            raise NotReady()
        return await self._send_command(command, ignore_error)

    async def _send_command(self, command: str, ignore_error: bool = False) -> CommandResult:
        line = encode_command(command)
        transport = self._require_transport()

        result = CommandResult()
        self.log.debug(f">>> {line}")
        transport.write_line(line)

        while True:
            outcome = classify_line(await self._read_line())

            if isinstance(outcome, Terminator):
                if outcome.ok:
                    break
                if ignore_error:
                    break
                raise DeviceError(result.errors)

            if isinstance(outcome, KeyValue):
                result.values[outcome.key] = outcome.value
            elif isinstance(outcome, Info):
                self.log.info(f"[ INFO ] {outcome.text}")
            elif isinstance(outcome, DeviceErrorLine):
                self.log.error(f"[ ERROR ] {outcome.text}")
                result.errors.append(outcome.text)
            elif isinstance(outcome, EspLog):
                self.log.info(f"[ INFO ] {outcome.text}")
            elif isinstance(outcome, Unknown):
                self.log.warning(f"[ WARNING ] Unknown: {outcome.text}")

            await asyncio.sleep(self.poll_interval)

        return result

    async def _read_line(self) -> str:
        transport = self._require_transport()
        if self.response_timeout is None:
            return await transport.read_line()
        try:
            return await asyncio.wait_for(transport.read_line(), self.response_timeout)
        except asyncio.TimeoutError:
            raise TransportTimeout(f"no response from device after {self.response_timeout}s")

    def _require_transport(self) -> LineTransport:
        if self._transport is None:
            raise TransportNotConnected()
        return self._transport
