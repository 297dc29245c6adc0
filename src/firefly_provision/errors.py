# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Firefly Provisioning Authors

"""
Exception hierarchy for Firefly provisioning.

Protocol errors (ReplError) abort the current command but leave the
session usable. Attestation errors are final: a record that fails
verification is rejected, never downgraded.
"""

from typing import Optional, Sequence


class FireflyError(Exception):
    """Base class for all Firefly provisioning errors."""


# REPL protocol errors

class ReplError(FireflyError):
    """Error talking to the device REPL."""


class TransportNotConnected(ReplError):
    """No transport is attached to the session."""

    def __init__(self, message: str = "not connected; use `session.connect(...)`"):
        super().__init__(message)


class NotReady(ReplError):
    """A command was issued before the ready handshake completed."""

    def __init__(self, message: str = "not ready; use `await session.wait_ready()`"):
        super().__init__(message)


class MalformedCommand(ReplError, ValueError):
    """A command parameter could not be normalized."""


class DeviceError(ReplError):
    """
    The device terminated a command with <ERROR.

    Attributes:
        messages: Reasons reported by the device on `!` lines, in order
    """

    def __init__(self, messages: Optional[Sequence[str]] = None):
        self.messages = list(messages or [])
        super().__init__("; ".join(self.messages) if self.messages else "error encountered")


class TransportTimeout(ReplError, TimeoutError):
    """The device did not answer within the configured timeout."""


class UnexpectedResponse(ReplError):
    """The device answered, but not with what the caller required."""


# Attestation errors

class AttestationError(FireflyError):
    """An attestation record was rejected."""


class TruncatedRecord(AttestationError, ValueError):
    """Fewer bytes than a full attestation record were supplied."""

    def __init__(self, length: int, expected: int):
        self.length = length
        self.expected = expected
        super().__init__(f"invalid attestation; truncated record ({length} < {expected} bytes)")


class UnsupportedVersion(AttestationError):
    """The record format version is not understood."""

    def __init__(self, version: int):
        self.version = version
        super().__init__(f"invalid attestation; unknown version 0x{version:02x}")


class AuthorityMismatch(AttestationError):
    """The attestation signature was not made by the signing authority."""

    def __init__(self, recovered: Optional[str], expected: str):
        self.recovered = recovered
        self.expected = expected
        super().__init__(
            f"invalid attestation; address not signing authority ({recovered} != {expected})"
        )


class SignatureMismatch(AttestationError):
    """The RSA challenge signature does not match the record."""

    def __init__(self, message: str = "invalid attestation; signature did not match"):
        super().__init__(message)


# Provisioning errors

class ProvisioningError(FireflyError):
    """A provisioning workflow could not complete."""


class ProvisioningLogNotFound(ProvisioningError):
    """No provisioning log exists for a device."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"no log found: {path}")
