# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Firefly Provisioning Authors

"""Pytest configuration and fixtures."""

import asyncio
import hashlib
from collections import deque
from pathlib import Path

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from firefly_provision.attestation import AuthoritySigner
from firefly_provision.repl import ReplSession


DATA_DIR = Path(__file__).parent / "data"

# Fixed test authority (not the production key)
AUTHORITY_KEY = "0x" + "4c" * 32

TEST_MODEL = 0x0105
TEST_SERIAL = 42
TEST_NONCE = bytes.fromhex("0123456789abcdef")
TEST_NONCE_RAND = bytes.fromhex("1d41bd87370bef")


class FakeTransport:
    """
    Scripted LineTransport.

    `lines` are emitted in order. Writing a command pushes its reply
    lines to the front of the queue, as the device answers a command
    before any further unsolicited output. Unlisted commands answer <OK.
    """

    def __init__(self, lines=(), replies=None):
        self.incoming = deque(lines)
        self.replies = dict(replies or {})
        self.written = []
        self.closed = False

    def respond(self, command: str) -> list:
        name = command.split("=")[0]
        return list(self.replies.get(command, self.replies.get(name, ["<OK"])))

    def write_line(self, text: str) -> None:
        self.written.append(text)
        self.incoming.extendleft(reversed(self.respond(text)))

    async def read_line(self) -> str:
        # An empty queue behaves like a silent device
        while not self.incoming:
            await asyncio.sleep(0.001)
        return self.incoming.popleft()

    def close(self) -> None:
        self.closed = True


def build_attestation(
    signer: AuthoritySigner,
    key: rsa.RSAPrivateKey,
    model: int = TEST_MODEL,
    serial: int = TEST_SERIAL,
    nonce: bytes = TEST_NONCE,
    version: int = 1,
    nonce_rand: bytes = TEST_NONCE_RAND,
    attestation_sig: bytes = None,
) -> bytes:
    """Produce a record exactly as genuine firmware would."""
    numbers = key.private_numbers()
    n = numbers.public_numbers.n
    pubkey = n.to_bytes(384, "big")

    if attestation_sig is None:
        attestation_sig = signer.sign_compact(model, serial, pubkey)

    challenge = (
        bytes([version])
        + nonce_rand
        + nonce
        + model.to_bytes(4, "big")
        + serial.to_bytes(4, "big")
        + pubkey
        + attestation_sig
    )
    digest = int.from_bytes(hashlib.sha256(challenge).digest(), "big")
    challenge_sig = pow(digest, numbers.d, n).to_bytes(384, "big")
    return challenge + challenge_sig


class FirmwareSimulator(FakeTransport):
    """FakeTransport that answers like the device firmware."""

    def __init__(self, key: rsa.RSAPrivateKey, signer: AuthoritySigner, lines=("<READY",)):
        super().__init__(lines)
        self.key = key
        self.signer = signer

        self.model = 0
        self.serial = 0
        self.pubkey_n = None
        self.cipherdata = None
        self.attest = None

        self.efuse = None
        self.nvs = {}

    def respond(self, command: str) -> list:
        if command in self.replies:
            return list(self.replies[command])

        name, _, value = command.partition("=")

        if name in ("NOP", "PING", "RESET", "STIR-ENTROPY", "STIR-IV", "STIR-KEY"):
            return ["<OK"]

        if name == "VERSION":
            return ["<version=1", "<OK"]

        if name == "SET-MODEL":
            self.model = int(value)
            return ["<OK"]

        if name == "SET-SERIAL":
            self.serial = int(value)
            return ["<OK"]

        if name == "GEN-KEY":
            n = self.key.public_key().public_numbers().n
            self.pubkey_n = n.to_bytes(384, "big")
            self.cipherdata = bytes(range(64))
            return [
                "? starting key generation (3072-bit)",
                "I (4021) esp_ds: key ready",
                f"<pubkey.N={n:X} (length=3072 bits)",
                "<pubkey.E=65537",
                f"<cipherdata={self.cipherdata.hex()}  ({len(self.cipherdata)} bytes)",
                "<OK",
            ]

        if name == "SET-ATTEST":
            if len(value) != 128:
                return [f"! SET-ATTEST invalid length {len(value)} != 128", "<ERROR"]
            self.attest = bytes.fromhex(value)
            return ["<OK"]

        if name == "SET-PUBKEYN":
            self.pubkey_n = bytes.fromhex(value)
            return ["<OK"]

        if name == "SET-CIPHERDATA":
            self.cipherdata = bytes.fromhex(value)
            return ["<OK"]

        if name == "WRITE":
            errors = []
            if self.attest is None:
                errors.append("! WRITE missing attest (use LOAD-NVS or SET-ATTEST)")
            if self.cipherdata is None:
                errors.append("! WRITE missing cipherdata (use LOAD-NVS or SET-CIPHERDATA)")
            if self.pubkey_n is None:
                errors.append("! WRITE missing key (use GEN-KEY or SET-PUBKEYN)")
            if errors:
                return errors + ["<ERROR"]
            self.nvs = {"attest": self.attest, "pubkey_n": self.pubkey_n, "cipherdata": self.cipherdata}
            return ["<OK"]

        if name == "BURN":
            self.efuse = (self.model, self.serial)
            return ["<OK"]

        if name == "LOAD-EFUSE":
            self.model, self.serial = self.efuse
            return ["<OK"]

        if name == "LOAD-NVS":
            self.attest = self.nvs["attest"]
            self.pubkey_n = self.nvs["pubkey_n"]
            self.cipherdata = self.nvs["cipherdata"]
            return ["<OK"]

        if name == "DUMP":
            lines = [f"<efuse.key.burned={int(self.efuse is not None)}"]
            if self.efuse is not None:
                lines += [f"<efuse.model={self.efuse[0]}", f"<efuse.serial={self.efuse[1]}"]
            lines += [f"<ready={int(self.efuse is not None)}", "<OK"]
            return lines

        if name == "ATTEST":
            if self.attest is None:
                return ["! ATTEST no attest present (use SET-ATTEST or LOAD-NVS)", "<ERROR"]
            record = build_attestation(
                self.signer,
                self.key,
                self.model,
                self.serial,
                bytes.fromhex(value),
                attestation_sig=self.attest,
            )
            return [f"<attest={record.hex()}  ({len(record)} bytes)", "<OK"]

        return [f"! unknown command: {command}", "<ERROR"]


def make_session(transport, **kwargs) -> ReplSession:
    """Session with no delays."""
    kwargs.setdefault("poll_interval", 0)
    kwargs.setdefault("settle_delay", 0)
    return ReplSession(transport, **kwargs)


async def ready_session(transport, **kwargs) -> ReplSession:
    """Session that has completed the handshake."""
    if not transport.incoming:
        transport.incoming.append("<READY")
    session = make_session(transport, **kwargs)
    await session.wait_ready()
    return session


@pytest.fixture(scope="session")
def rsa_key():
    """Device RSA-3072 key (slow to generate; shared)."""
    return rsa.generate_private_key(public_exponent=65537, key_size=3072)


@pytest.fixture(scope="session")
def signer():
    """Test signing authority."""
    return AuthoritySigner.from_key(AUTHORITY_KEY)


@pytest.fixture(scope="session")
def golden_attestation(signer, rsa_key):
    """A valid 856-byte attestation for TEST_MODEL / TEST_SERIAL / TEST_NONCE."""
    return build_attestation(signer, rsa_key)


@pytest.fixture
def captured_attestations():
    """Records captured from development hardware, signed by the production authority."""
    return [
        bytes.fromhex((DATA_DIR / name).read_text().strip())
        for name in ("captured_attest_1.hex", "captured_attest_2.hex")
    ]
