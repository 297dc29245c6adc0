# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Firefly Provisioning Authors

"""
Unit tests for the authority signer.

Tests:
- Signing and address recovery
- Compact (EIP-2098) signature conversion
- Mnemonic derivation and password check
"""

import pytest

from firefly_provision.attestation import (
    AuthoritySigner,
    authority_message,
    compact_signature,
    expand_compact_signature,
    recover_authority,
)
from firefly_provision.errors import ProvisioningError


PUBKEY = bytes(range(256)) + bytes(range(128))

# Well-known development mnemonic; first account of the default path
DEV_MNEMONIC = "test test test test test test test test test test test junk"
DEV_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"


class TestSigning:
    """Test authority signatures."""

    def test_signature_length(self, signer):
        """Test full and compact signature sizes."""
        assert len(signer.sign(0x0105, 1, PUBKEY)) == 65
        assert len(signer.sign_compact(0x0105, 1, PUBKEY)) == 64

    def test_recover_full(self, signer):
        """Test the signer is recovered from a 65-byte signature."""
        signature = signer.sign(0x0105, 1, PUBKEY)
        message = authority_message(0x0105, 1, PUBKEY)

        assert recover_authority(message, signature) == signer.address

    def test_recover_compact(self, signer):
        """Test the signer is recovered from a 64-byte signature."""
        signature = signer.sign_compact(0x0105, 1, PUBKEY)
        message = authority_message(0x0105, 1, PUBKEY)

        assert recover_authority(message, signature) == signer.address

    def test_message_binds_identity(self, signer):
        """Test a signature does not carry over to another serial."""
        signature = signer.sign_compact(0x0105, 1, PUBKEY)
        message = authority_message(0x0105, 2, PUBKEY)

        assert recover_authority(message, signature) != signer.address


class TestCompactSignature:
    """Test EIP-2098 conversion."""

    def test_round_trip(self, signer):
        """Test compact then expand restores the original signature."""
        for serial in range(1, 9):
            signature = signer.sign(0x0105, serial, PUBKEY)
            assert expand_compact_signature(compact_signature(signature)) == signature

    def test_parity_bit(self):
        """Test v=28 sets the top bit of s."""
        r, s = b"\x01" * 32, b"\x02" * 32

        assert compact_signature(r + s + bytes([27])) == r + s
        assert compact_signature(r + s + bytes([28])) == r + bytes([0x82]) + s[1:]

    def test_expand_parity(self):
        """Test the top bit of s becomes v."""
        r, s = b"\x01" * 32, b"\x02" * 32

        assert expand_compact_signature(r + s)[64] == 27
        assert expand_compact_signature(r + bytes([0x82]) + s[1:]) == r + s + bytes([28])

    def test_raw_recovery_id(self):
        """Test v given as 0/1 is accepted."""
        r, s = b"\x01" * 32, b"\x02" * 32
        assert compact_signature(r + s + bytes([1])) == compact_signature(r + s + bytes([28]))

    def test_lengths_checked(self):
        """Test wrong signature lengths are rejected."""
        with pytest.raises(ValueError):
            compact_signature(bytes(64))
        with pytest.raises(ValueError):
            expand_compact_signature(bytes(65))


class TestMnemonic:
    """Test deriving the authority from its mnemonic."""

    def test_from_mnemonic(self):
        """Test the default derivation path."""
        signer = AuthoritySigner.from_mnemonic(DEV_MNEMONIC)
        assert signer.address == DEV_ADDRESS

    def test_expected_address(self):
        """Test a matching expected address is accepted in any case."""
        signer = AuthoritySigner.from_mnemonic(DEV_MNEMONIC, expected_address=DEV_ADDRESS.lower())
        assert signer.address == DEV_ADDRESS

    def test_wrong_password(self):
        """Test a wrong password derives another address and is refused."""
        with pytest.raises(ProvisioningError) as exc_info:
            AuthoritySigner.from_mnemonic(DEV_MNEMONIC, "wrong", expected_address=DEV_ADDRESS)

        assert "incorrect password" in str(exc_info.value)
