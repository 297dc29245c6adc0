# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Firefly Provisioning Authors

"""
Firefly Provisioning

Host-side tooling for Firefly hardware: the serial REPL protocol used to
provision devices, and verification of the attestation records they emit.

Example:
    >>> from firefly_provision import AttestationVerifier
    >>> result = AttestationVerifier().verify_bytes(blob)  # doctest: +SKIP
    >>> result.model_name  # doctest: +SKIP
    'Firefly Pixie (DevKit; rev.5)'
"""

__version__ = "0.1.0"

from .errors import (
    AttestationError,
    AuthorityMismatch,
    DeviceError,
    FireflyError,
    MalformedCommand,
    NotReady,
    ProvisioningError,
    ProvisioningLogNotFound,
    ReplError,
    SignatureMismatch,
    TransportNotConnected,
    TransportTimeout,
    TruncatedRecord,
    UnexpectedResponse,
    UnsupportedVersion,
)

from .repl import (
    CommandResult,
    ReplSession,
    SerialLineTransport,
    SessionState,
    classify_line,
    encode_command,
)

from .attestation import (
    AUTHORITY_ADDRESS,
    AttestationRecord,
    AttestationResult,
    AttestationVerifier,
    AuthoritySigner,
    decode_attestation,
)

__all__ = [
    "__version__",
    # Errors
    "AttestationError",
    "AuthorityMismatch",
    "DeviceError",
    "FireflyError",
    "MalformedCommand",
    "NotReady",
    "ProvisioningError",
    "ProvisioningLogNotFound",
    "ReplError",
    "SignatureMismatch",
    "TransportNotConnected",
    "TransportTimeout",
    "TruncatedRecord",
    "UnexpectedResponse",
    "UnsupportedVersion",
    # REPL
    "CommandResult",
    "ReplSession",
    "SerialLineTransport",
    "SessionState",
    "classify_line",
    "encode_command",
    # Attestation
    "AUTHORITY_ADDRESS",
    "AttestationRecord",
    "AttestationResult",
    "AttestationVerifier",
    "AuthoritySigner",
    "decode_attestation",
]
