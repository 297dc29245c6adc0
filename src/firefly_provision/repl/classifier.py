# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Firefly Provisioning Authors

"""
Classification of lines emitted by the device REPL.

Every non-empty line maps to exactly one outcome:

    <OK / <ERROR      Terminator
    <key=value        KeyValue (value typed as text, integer or hex bytes)
    ?text             Info
    !text             DeviceErrorLine
    I (1234) ...      EspLog (ESP-IDF log output)
    anything else     Unknown

Empty lines produce no outcome. `<READY` is not a terminator; the session
handshake looks for it directly.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


KEY_VALUE_PATTERN = re.compile(r"^<([a-zA-Z0-9._-]*)=(.*)$")
HEX_BYTES_PATTERN = re.compile(r"^((?:[0-9a-f][0-9a-f])*) +\([0-9]+ bytes\)$", re.IGNORECASE)
INTEGER_PATTERN = re.compile(r"^[0-9]+$")
ESP_LOG_PATTERN = re.compile(r"^ *I \([0-9]+\)")


# Result values

@dataclass(frozen=True)
class TextValue:
    value: str


@dataclass(frozen=True)
class IntegerValue:
    value: int


@dataclass(frozen=True)
class HexBytesValue:
    value: bytes

    def hex(self) -> str:
        """Hex string with a 0x prefix."""
        return "0x" + self.value.hex()


ResultValue = Union[TextValue, IntegerValue, HexBytesValue]


def parse_value(raw: str) -> ResultValue:
    """
    Type a raw key/value payload.

    `<hexpairs> (<N> bytes)` becomes HexBytesValue, all-digit payloads
    become IntegerValue, everything else stays TextValue.
    """
    match = HEX_BYTES_PATTERN.match(raw)
    if match:
        return HexBytesValue(bytes.fromhex(match.group(1)))
    if INTEGER_PATTERN.match(raw):
        return IntegerValue(int(raw))
    return TextValue(raw)


# Outcomes

class TerminatorKind(Enum):
    OK = "<OK"
    ERROR = "<ERROR"


@dataclass(frozen=True)
class Terminator:
    kind: TerminatorKind

    @property
    def ok(self) -> bool:
        return self.kind is TerminatorKind.OK


@dataclass(frozen=True)
class KeyValue:
    key: str
    raw_value: str
    value: ResultValue


@dataclass(frozen=True)
class Info:
    text: str


@dataclass(frozen=True)
class DeviceErrorLine:
    text: str


@dataclass(frozen=True)
class EspLog:
    text: str


@dataclass(frozen=True)
class Unknown:
    text: str


Outcome = Union[Terminator, KeyValue, Info, DeviceErrorLine, EspLog, Unknown]


def classify_line(line: str) -> Optional[Outcome]:
    """
    Classify a single line from the device.

    Never raises.

    Args:
        line: Line text without its line terminator

    Returns:
        The outcome, or None for an empty line

    Example:
        >>> classify_line("<version=1")
        KeyValue(key='version', raw_value='1', value=IntegerValue(value=1))
        >>> classify_line("<OK")
        Terminator(kind=<TerminatorKind.OK: '<OK'>)
    """
    if line == TerminatorKind.OK.value:
        return Terminator(TerminatorKind.OK)
    if line == TerminatorKind.ERROR.value:
        return Terminator(TerminatorKind.ERROR)

    match = KEY_VALUE_PATTERN.match(line)
    if match:
        key, raw_value = match.group(1), match.group(2)
        return KeyValue(key=key, raw_value=raw_value, value=parse_value(raw_value))

    if line.startswith("?"):
        return Info(line[1:].strip())

    if line.startswith("!"):
        return DeviceErrorLine(line[1:].strip())

    if ESP_LOG_PATTERN.match(line):
        return EspLog(line.strip())

    if line:
        return Unknown(line)

    return None
