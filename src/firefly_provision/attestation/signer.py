# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Firefly Provisioning Authors

"""
Signing authority for device attestations.

The authority signs `model=... serial=... pubkey=...` for every device it
provisions; the device stores the compact signature and embeds it in each
attestation record.
"""

from typing import Optional

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount

from ..errors import ProvisioningError
from .verifier import authority_message


class AuthoritySigner:
    """Authority key held by the provisioning station."""

    def __init__(self, account: LocalAccount):
        self.account = account

    @property
    def address(self) -> str:
        return self.account.address

    @classmethod
    def from_key(cls, private_key) -> "AuthoritySigner":
        return cls(Account.from_key(private_key))

    @classmethod
    def from_mnemonic(cls, phrase: str, passphrase: str = "", expected_address: Optional[str] = None) -> "AuthoritySigner":
        """
        Derive the authority from its mnemonic (default derivation path).

        Args:
            phrase: BIP-39 mnemonic
            passphrase: Mnemonic password
            expected_address: If given, the derived address must match

        Raises:
            ProvisioningError: If the derived address does not match
        """
        Account.enable_unaudited_hdwallet_features()
        account = Account.from_mnemonic(phrase, passphrase=passphrase)

        if expected_address and account.address.lower() != expected_address.lower():
            raise ProvisioningError(
                f"incorrect password: {expected_address} (derived {account.address})"
            )
        return cls(account)

    def sign(self, model: int, serial: int, pubkey: bytes) -> bytes:
        """65-byte r|s|v signature over the authority message."""
        message = authority_message(model, serial, pubkey)
        signed = self.account.sign_message(encode_defunct(text=message))
        return bytes(signed.signature)

    def sign_compact(self, model: int, serial: int, pubkey: bytes) -> bytes:
        """64-byte EIP-2098 signature, the form stored on the device."""
        return compact_signature(self.sign(model, serial, pubkey))


def compact_signature(signature: bytes) -> bytes:
    """
    Convert a 65-byte r|s|v signature to its 64-byte EIP-2098 form.

    The y-parity is folded into the top bit of s.
    """
    if len(signature) != 65:
        raise ValueError(f"signature must be 65 bytes, got {len(signature)}")
    r, s, v = signature[:32], int.from_bytes(signature[32:64], "big"), signature[64]
    y_parity = v - 27 if v >= 27 else v
    return r + (s | (y_parity << 255)).to_bytes(32, "big")
