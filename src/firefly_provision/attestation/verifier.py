# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Firefly Provisioning Authors

"""
Attestation verification.

A record is accepted only if all of the following hold, checked in order:

1. The format version is 1.
2. attestation_sig is a personal-message signature by the signing
   authority over `model=<hex4> serial=<hex4> pubkey=<hex384>`.
3. challenge_sig ^ 65537 mod N equals SHA-256 of the first 472 bytes,
   proving the device holds the RSA private key for N.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Union

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import to_checksum_address

from ..errors import AuthorityMismatch, SignatureMismatch, UnsupportedVersion
from .record import RSA_PUBLIC_EXPONENT, AttestationRecord


logger = logging.getLogger(__name__)

AUTHORITY_ADDRESS = "0x70CD34d96E58876a25445dd75f54630D99258182"

SUPPORTED_VERSION = 1

_S_MASK = (1 << 255) - 1


@dataclass(frozen=True)
class AttestationResult:
    """Identity established by a successfully verified record."""

    authority: str
    model: int
    model_name: str
    serial: int
    nonce: bytes


def model_name(model: int) -> str:
    """
    Human-readable model name.

    Example:
        >>> model_name(0x0105)
        'Firefly Pixie (DevKit; rev.5)'
        >>> model_name(0x0203)
        'unknown model 0x203'
    """
    if (model >> 8) == 1:
        return f"Firefly Pixie (DevKit; rev.{model & 0xff})"
    return f"unknown model 0x{model:x}"


def _hex_padded(value: Union[int, bytes], length: int) -> str:
    if isinstance(value, int):
        value = value.to_bytes(length, "big")
    if len(value) > length:
        raise ValueError(f"value too long for {length} bytes")
    return value.rjust(length, b"\x00").hex()


def authority_message(model: int, serial: int, pubkey: bytes) -> str:
    """The message the signing authority signs for a device."""
    return (
        f"model={_hex_padded(model, 4)} "
        f"serial={_hex_padded(serial, 4)} "
        f"pubkey={_hex_padded(pubkey, 384)}"
    )


def expand_compact_signature(signature: bytes) -> bytes:
    """
    Expand a 64-byte EIP-2098 signature (r, yParity|s) to 65-byte r|s|v.
    """
    if len(signature) != 64:
        raise ValueError(f"compact signature must be 64 bytes, got {len(signature)}")
    r = signature[:32]
    y_parity_and_s = int.from_bytes(signature[32:], "big")
    v = 27 + (y_parity_and_s >> 255)
    s = y_parity_and_s & _S_MASK
    return r + s.to_bytes(32, "big") + bytes([v])


def recover_authority(message: str, signature: bytes) -> str:
    """Recover the address that signed `message` (personal-message digest)."""
    if len(signature) == 64:
        signature = expand_compact_signature(signature)
    return Account.recover_message(encode_defunct(text=message), signature=signature)


class AttestationVerifier:
    """Verify attestation records against a signing authority."""

    def __init__(self, authority: str = AUTHORITY_ADDRESS, public_exponent: int = RSA_PUBLIC_EXPONENT):
        """
        Args:
            authority: Address of the signing authority
            public_exponent: RSA public exponent used by devices
        """
        self.authority = to_checksum_address(authority)
        self.public_exponent = public_exponent

    def verify(self, record: AttestationRecord) -> AttestationResult:
        """
        Verify a decoded record.

        Raises:
            UnsupportedVersion: If record.version != 1
            AuthorityMismatch: If attestation_sig was not made by the authority
            SignatureMismatch: If the RSA challenge relation does not hold
        """
        if record.version != SUPPORTED_VERSION:
            raise UnsupportedVersion(record.version)

        message = authority_message(record.model, record.serial, record.pubkey_modulus)
        logger.debug(f"Authority message: {message}")

        try:
            recovered = recover_authority(message, record.attestation_sig)
        except Exception as e:
            # Malformed signatures cannot have come from the authority
            logger.debug(f"Signature recovery failed: {e}")
            raise AuthorityMismatch(None, self.authority) from e

        if recovered.lower() != self.authority.lower():
            raise AuthorityMismatch(recovered, self.authority)

        digest = int.from_bytes(hashlib.sha256(record.challenge).digest(), "big")

        modulus = record.modulus
        if modulus <= 1:
            raise SignatureMismatch("invalid attestation; degenerate RSA modulus")

        check = pow(int.from_bytes(record.challenge_sig, "big"), self.public_exponent, modulus)
        if check != digest:
            raise SignatureMismatch()

        result = AttestationResult(
            authority=self.authority,
            model=record.model,
            model_name=model_name(record.model),
            serial=record.serial,
            nonce=record.nonce,
        )
        logger.info(f"Attestation verified: {result.model_name} serial={result.serial}")
        return result

    def verify_bytes(self, data: bytes) -> AttestationResult:
        """Decode and verify a raw attestation record."""
        return self.verify(AttestationRecord.from_bytes(data))
