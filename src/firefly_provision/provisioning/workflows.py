# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Firefly Provisioning Authors

"""
Provisioning workflows.

Each workflow drives a Ready ReplSession through one station task:

1. provision_device: burn model/serial, generate the device RSA key and
   store the authority attestation
2. restore_device: re-load key material from the provisioning log onto a
   device whose NVS was wiped, then prove it attests correctly
3. attest_device: challenge a provisioned device and verify its answer
"""

import logging
import secrets
from pathlib import Path
from typing import Callable, Optional

from cryptography.hazmat.primitives.asymmetric import rsa

from ..attestation import (
    RSA_PUBLIC_EXPONENT,
    AttestationRecord,
    AttestationResult,
    AttestationVerifier,
    AuthoritySigner,
    compact_signature,
)
from ..errors import ProvisioningError, UnexpectedResponse
from ..repl import CommandResult, HexBytesValue, IntegerValue, ReplSession, TextValue
from .log import ProvisioningLog


logger = logging.getLogger(__name__)

FIRMWARE_VERSION = 1
RSA_KEY_SIZE = 3072
NONCE_LENGTH = 8
STIR_LENGTH = 32


def random_nonce() -> bytes:
    """Fresh 8-byte challenge nonce."""
    return secrets.token_bytes(NONCE_LENGTH)


def response_bytes(result: CommandResult, key: str) -> bytes:
    """
    Binary value of a response key.

    Accepts `hex (N bytes)` values and the `HEX (length=N bits)` text the
    firmware prints for big numbers.
    """
    value = result.get(key)
    if isinstance(value, HexBytesValue):
        return value.value
    if isinstance(value, TextValue):
        digits = value.value.split(" ")[0]
        if len(digits) % 2:
            digits = "0" + digits
        try:
            return bytes.fromhex(digits)
        except ValueError:
            pass
    raise UnexpectedResponse(f"response key {key} is not binary data: {value!r}")


def check_device_public_key(modulus: bytes, exponent: int = RSA_PUBLIC_EXPONENT) -> rsa.RSAPublicKey:
    """
    Ensure a device-generated modulus is a 3072-bit RSA key.

    Raises:
        ProvisioningError: If the key is unusable
    """
    try:
        public_key = rsa.RSAPublicNumbers(exponent, int.from_bytes(modulus, "big")).public_key()
    except ValueError as e:
        raise ProvisioningError(f"device generated an invalid RSA key: {e}") from e

    if public_key.key_size != RSA_KEY_SIZE:
        raise ProvisioningError(f"device generated a {public_key.key_size}-bit key (expected {RSA_KEY_SIZE})")
    return public_key


async def check_firmware_version(session: ReplSession) -> None:
    """Raises UnexpectedResponse unless the firmware speaks version 1."""
    result = await session.send_command("VERSION")
    version = result.get("version")
    if version != IntegerValue(FIRMWARE_VERSION):
        raise UnexpectedResponse(f"unsupported version: {version}")


async def read_provisioned_identity(session: ReplSession) -> tuple[int, int]:
    """DUMP the device and return its burned (model, serial)."""
    dump = await session.send_command("DUMP")
    logger.info(f"dump: {dump.as_dict()}")
    if dump.get("ready") != IntegerValue(1):
        raise ProvisioningError("device not provisioned")
    return dump.integer("efuse.model"), dump.integer("efuse.serial")


async def provision_device(
    session: ReplSession,
    log: ProvisioningLog,
    signer: AuthoritySigner,
    random_bytes: Callable[[int], bytes] = secrets.token_bytes,
) -> CommandResult:
    """
    Provision a blank device with the model/serial of `log`.

    Records pubkeyN, cipherData and attest in the log; the caller saves it.

    Returns:
        The final DUMP of the device
    """
    model, serial = log.model, log.serial
    logger.info(f"READY; beginning serial={serial} filename={log.path}")

    await check_firmware_version(session)

    await session.send_command(f"SET-MODEL={model}")
    await session.send_command(f"SET-SERIAL={serial}")

    dump = await session.send_command("DUMP")
    logger.info(f"dump: {dump.as_dict()}")

    for command in ("STIR-ENTROPY", "STIR-IV", "STIR-KEY"):
        await session.send_command(f"{command}=0x{random_bytes(STIR_LENGTH).hex()}")

    keypair = await session.send_command("GEN-KEY")
    logger.info(f"keypair: {keypair.as_dict()}")

    pubkey_n = response_bytes(keypair, "pubkey.N").rjust(RSA_KEY_SIZE // 8, b"\x00")
    cipher_data = response_bytes(keypair, "cipherdata")
    check_device_public_key(pubkey_n)
    log.set("pubkeyN", "0x" + pubkey_n.hex())
    log.set("cipherData", "0x" + cipher_data.hex())

    attest = signer.sign(model, serial, pubkey_n)
    logger.info(f"attest: 0x{attest.hex()}")
    log.set("attest", "0x" + attest.hex())

    await session.send_command(f"SET-ATTEST={compact_signature(attest).hex()}")
    await session.send_command("WRITE")
    await session.send_command("BURN")

    final = await session.send_command("DUMP", ignore_error=True)
    logger.info(f"dump: {final.as_dict()}")
    return final


async def request_attestation(session: ReplSession, nonce: bytes) -> AttestationRecord:
    """Send ATTEST and decode the record (no verification)."""
    if len(nonce) != NONCE_LENGTH:
        raise ValueError(f"nonce must be {NONCE_LENGTH} bytes, got {len(nonce)}")
    proof = await session.send_command(f"ATTEST={nonce.hex()}")
    return AttestationRecord.from_bytes(response_bytes(proof, "attest"))


async def verify_device(session: ReplSession, verifier: AttestationVerifier, nonce: bytes) -> AttestationResult:
    """Challenge the device with `nonce` and verify the record it returns."""
    record = await request_attestation(session, nonce)
    result = verifier.verify(record)
    if result.nonce != nonce:
        raise ProvisioningError(f"attestation nonce mismatch (0x{result.nonce.hex()} != 0x{nonce.hex()})")
    logger.info(f"attested: {result}")
    return result


async def attest_device(session: ReplSession, verifier: AttestationVerifier, nonce: Optional[bytes] = None) -> AttestationResult:
    """Load stored key material on a provisioned device and verify it."""
    await check_firmware_version(session)
    await read_provisioned_identity(session)

    logger.info(f"load-efuse: {(await session.send_command('LOAD-EFUSE')).as_dict()}")
    logger.info(f"load-nvs: {(await session.send_command('LOAD-NVS')).as_dict()}")

    return await verify_device(session, verifier, nonce or random_nonce())


async def restore_device(
    session: ReplSession,
    folder: Path,
    verifier: AttestationVerifier,
    nonce: Optional[bytes] = None,
) -> AttestationResult:
    """
    Restore key material from the provisioning log onto a device.

    Raises:
        ProvisioningLogNotFound: If the device has no log in `folder`
    """
    await check_firmware_version(session)
    model, serial = await read_provisioned_identity(session)

    log = ProvisioningLog.load(folder, model, serial)
    missing = [key for key in ("attest", "pubkeyN", "cipherData") if not log.get(key)]
    if missing:
        raise ProvisioningError(f"provisioning log {log.path} is missing {missing}")

    attest = compact_signature(bytes.fromhex(_strip_hex(log.get("attest"))))
    pubkey_n = _strip_hex(log.get("pubkeyN"))
    cipher_data = _strip_hex(log.get("cipherData"))

    await session.send_command(f"SET-ATTEST={attest.hex()}")
    await session.send_command(f"SET-PUBKEYN={pubkey_n}")
    await session.send_command(f"SET-CIPHERDATA={cipher_data}")
    await session.send_command("WRITE")

    logger.info(f"load-efuse: {(await session.send_command('LOAD-EFUSE')).as_dict()}")

    result = await verify_device(session, verifier, nonce or random_nonce())

    await session.send_command("RESET")
    return result


def _strip_hex(value: str) -> str:
    return value[2:] if value.startswith("0x") else value
