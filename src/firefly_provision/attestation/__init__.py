# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Firefly Provisioning Authors

"""
Firefly attestation records.

Decoding of the fixed-layout record a device returns for `ATTEST=<nonce>`,
its two-stage verification, and the authority signer used at provisioning.
"""

from .record import (
    CHALLENGE_LENGTH,
    FIELD_WIDTHS,
    RECORD_LENGTH,
    RSA_PUBLIC_EXPONENT,
    AttestationRecord,
    decode_attestation,
    field_span,
)

from .verifier import (
    AUTHORITY_ADDRESS,
    AttestationResult,
    AttestationVerifier,
    authority_message,
    expand_compact_signature,
    model_name,
    recover_authority,
)

from .signer import AuthoritySigner, compact_signature

__all__ = [
    # Record
    "CHALLENGE_LENGTH",
    "FIELD_WIDTHS",
    "RECORD_LENGTH",
    "RSA_PUBLIC_EXPONENT",
    "AttestationRecord",
    "decode_attestation",
    "field_span",
    # Verifier
    "AUTHORITY_ADDRESS",
    "AttestationResult",
    "AttestationVerifier",
    "authority_message",
    "expand_compact_signature",
    "model_name",
    "recover_authority",
    # Signer
    "AuthoritySigner",
    "compact_signature",
]
