# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Firefly Provisioning Authors

"""
Outgoing command encoding.

Commands are `NAME` or `NAME=VALUE`. Values are normalized by command
class so callers may pass integers with leading zeros and hex data with
or without a `0x` prefix.
"""

import re

from ..errors import MalformedCommand


# ASCII digits only (int() is more lenient)
DECIMAL_PATTERN = re.compile(r"[0-9]+")

NUMERIC_COMMANDS = frozenset([
    "SET-MODEL",
    "SET-SERIAL",
])

DATA_COMMANDS = frozenset([
    "SET-ATTEST",
    "SET-CIPHERDATA",
    "SET-PUBKEYN",
    "STIR-ENTROPY",
    "STIR-IV",
    "STIR-KEY",
])


def encode_command(command: str) -> str:
    """
    Normalize a command line for the device.

    Args:
        command: `NAME` or `NAME=VALUE`

    Returns:
        The line to send (without a newline)

    Raises:
        MalformedCommand: If a numeric command has a non-decimal value

    Example:
        >>> encode_command("SET-MODEL=007")
        'SET-MODEL=7'
        >>> encode_command("SET-ATTEST=0xAB12")
        'SET-ATTEST=AB12'
        >>> encode_command("DUMP")
        'DUMP'
    """
    comps = command.split("=")
    if len(comps) != 2:
        return command

    name, value = comps
    if name in NUMERIC_COMMANDS:
        if not DECIMAL_PATTERN.fullmatch(value):
            raise MalformedCommand(f"{name} requires a decimal integer: {value!r}")
        value = str(int(value, 10))
    elif name in DATA_COMMANDS:
        if value.startswith("0x"):
            value = value[2:]

    return f"{name}={value}"
