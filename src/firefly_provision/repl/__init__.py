# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Firefly Provisioning Authors

"""
Firefly device REPL protocol.

Line-oriented request/response protocol spoken by the device firmware:
command encoding, response classification and the session state machine.
"""

from .codec import (
    DATA_COMMANDS,
    NUMERIC_COMMANDS,
    encode_command,
)

from .classifier import (
    DeviceErrorLine,
    EspLog,
    HexBytesValue,
    Info,
    IntegerValue,
    KeyValue,
    Outcome,
    ResultValue,
    Terminator,
    TerminatorKind,
    TextValue,
    Unknown,
    classify_line,
    parse_value,
)

from .session import (
    CommandResult,
    ReplSession,
    SessionState,
)

from .transport import (
    LineTransport,
    SerialLineTransport,
)

__all__ = [
    # Codec
    "DATA_COMMANDS",
    "NUMERIC_COMMANDS",
    "encode_command",
    # Classifier
    "DeviceErrorLine",
    "EspLog",
    "HexBytesValue",
    "Info",
    "IntegerValue",
    "KeyValue",
    "Outcome",
    "ResultValue",
    "Terminator",
    "TerminatorKind",
    "TextValue",
    "Unknown",
    "classify_line",
    "parse_value",
    # Session
    "CommandResult",
    "ReplSession",
    "SessionState",
    # Transport
    "LineTransport",
    "SerialLineTransport",
]
