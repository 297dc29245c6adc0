# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Firefly Provisioning Authors

"""
Attestation record parsing.

The device answers `ATTEST=<nonce>` with a fixed 856-byte record:

    version          1   format version (1)
    nonce_rand       7   random padding
    nonce            8   challenge nonce echoed back
    model            4   big-endian model id
    serial           4   big-endian serial id
    pubkey_modulus 384   RSA-3072 public modulus N
    attestation_sig 64   authority signature (EIP-2098 compact)
    challenge_sig  384   RSA signature over SHA-256 of the preceding 472 bytes

Decoding never checks cryptographic content; see AttestationVerifier.
"""

from dataclasses import dataclass

from cryptography.hazmat.primitives.asymmetric import rsa

from ..errors import TruncatedRecord


RSA_PUBLIC_EXPONENT = 65537

FIELD_WIDTHS = (
    ("version", 1),
    ("nonce_rand", 7),
    ("nonce", 8),
    ("model", 4),
    ("serial", 4),
    ("pubkey_modulus", 384),
    ("attestation_sig", 64),
    ("challenge_sig", 384),
)

RECORD_LENGTH = sum(width for _, width in FIELD_WIDTHS)  # 856
CHALLENGE_LENGTH = RECORD_LENGTH - 384  # 472

_INTEGER_FIELDS = ("version", "model", "serial")


@dataclass(frozen=True)
class AttestationRecord:
    """Decoded attestation record."""

    version: int
    nonce_rand: bytes
    nonce: bytes
    model: int
    serial: int
    pubkey_modulus: bytes
    attestation_sig: bytes
    challenge_sig: bytes

    def __post_init__(self) -> None:
        """Validate field widths."""
        for name, width in FIELD_WIDTHS:
            value = getattr(self, name)
            if name in _INTEGER_FIELDS:
                if not (0 <= value < 1 << (8 * width)):
                    raise ValueError(f"{name} out of range for {width} bytes: {value}")
            elif len(value) != width:
                raise ValueError(f"{name} must be {width} bytes, got {len(value)}")

    @classmethod
    def from_bytes(cls, data: bytes) -> "AttestationRecord":
        """
        Decode a record.

        Bytes beyond the record length are ignored.

        Raises:
            TruncatedRecord: If fewer than 856 bytes are supplied
        """
        if len(data) < RECORD_LENGTH:
            raise TruncatedRecord(len(data), RECORD_LENGTH)

        fields = {}
        offset = 0
        for name, width in FIELD_WIDTHS:
            chunk = bytes(data[offset:offset + width])
            offset += width
            fields[name] = int.from_bytes(chunk, "big") if name in _INTEGER_FIELDS else chunk

        return cls(**fields)

    def to_bytes(self) -> bytes:
        """Encode the record in wire layout."""
        parts = []
        for name, width in FIELD_WIDTHS:
            value = getattr(self, name)
            if name in _INTEGER_FIELDS:
                value = value.to_bytes(width, "big")
            parts.append(value)
        return b"".join(parts)

    @property
    def challenge(self) -> bytes:
        """The bytes covered by challenge_sig (everything before it)."""
        return self.to_bytes()[:CHALLENGE_LENGTH]

    @property
    def modulus(self) -> int:
        return int.from_bytes(self.pubkey_modulus, "big")

    def public_key(self) -> rsa.RSAPublicKey:
        """
        Device RSA public key.

        Raises:
            ValueError: If the modulus is not a usable RSA modulus
        """
        return rsa.RSAPublicNumbers(RSA_PUBLIC_EXPONENT, self.modulus).public_key()


def decode_attestation(data: bytes) -> AttestationRecord:
    """Decode an 856-byte attestation record (trailing bytes ignored)."""
    return AttestationRecord.from_bytes(data)


def field_span(name: str) -> tuple[int, int]:
    """Byte range (start, end) of a field within the record."""
    offset = 0
    for field_name, width in FIELD_WIDTHS:
        if field_name == name:
            return offset, offset + width
        offset += width
    raise KeyError(name)
