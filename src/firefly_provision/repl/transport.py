# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Firefly Provisioning Authors

"""
Line transports for the device REPL.

The session only needs `write_line(text)` and an awaitable `read_line()`.
SerialLineTransport provides both over a USB serial port with pyserial.
"""

import asyncio
import logging
import time
from typing import Optional, Protocol

import serial

from ..errors import TransportNotConnected


logger = logging.getLogger(__name__)


class LineTransport(Protocol):
    """Bidirectional newline-delimited text stream."""

    def write_line(self, text: str) -> None:
        ...

    async def read_line(self) -> str:
        ...


class SerialLineTransport:
    """
    LineTransport over a serial port.

    Reads block in a worker thread so the event loop stays responsive;
    a line is returned once its newline arrives, without the `\\r\\n`.
    A read interrupted by a caller timeout keeps running and is collected
    by the next read_line(), so no bytes are dropped.
    """

    def __init__(self, port: str, baud_rate: int = 115200, timeout: float = 0.5):
        """
        Args:
            port: Serial device (e.g. /dev/ttyACM0)
            baud_rate: Line speed
            timeout: Per-read pyserial timeout in seconds
        """
        self.port = port
        self.baud_rate = baud_rate
        self.timeout = timeout
        self._serial: Optional[serial.Serial] = None
        self._pending = b""
        self._read_task: Optional[asyncio.Future] = None

    @property
    def is_open(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def open(self) -> "SerialLineTransport":
        """Open the port with DTR/RTS released so the device is not held in reset."""
        if not self.port:
            raise TransportNotConnected("serial port not configured")
        try:
            ser = serial.Serial(
                self.port,
                baudrate=self.baud_rate,
                timeout=self.timeout,
                write_timeout=1,
                rtscts=False,
                dsrdtr=False,
            )
        except serial.SerialException as e:
            raise TransportNotConnected(f"open failed: {self.port}: {e}") from e

        ser.dtr = False
        ser.rts = False
        time.sleep(0.1)
        ser.reset_input_buffer()

        self._serial = ser
        self._pending = b""
        self._read_task = None
        logger.info(f"Serial port opened: {self.port} @ {self.baud_rate}")
        return self

    def close(self) -> None:
        if self._serial is not None:
            self._serial.close()
            logger.info(f"Serial port closed: {self.port}")
        self._serial = None
        self._read_task = None

    def write_line(self, text: str) -> None:
        ser = self._require_open()
        ser.write((text + "\n").encode("ascii"))
        ser.flush()

    async def read_line(self) -> str:
        ser = self._require_open()
        while b"\n" not in self._pending:
            # readline() returns a partial chunk (or nothing) on timeout
            self._pending += await self._read_chunk(ser)

        line, _, self._pending = self._pending.partition(b"\n")
        return line.decode("ascii", errors="replace").rstrip("\r")

    async def _read_chunk(self, ser: serial.Serial) -> bytes:
        if self._read_task is None:
            self._read_task = asyncio.ensure_future(asyncio.to_thread(ser.readline))
        task = self._read_task
        try:
            # cancelling the caller leaves the thread read pending
            chunk = await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                self._read_task = None
            raise
        except Exception:
            self._read_task = None
            raise
        self._read_task = None
        return chunk

    def _require_open(self) -> serial.Serial:
        if self._serial is None:
            raise TransportNotConnected(f"serial port not open: {self.port}")
        return self._serial

    def __enter__(self) -> "SerialLineTransport":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
