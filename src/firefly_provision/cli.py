# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Firefly Provisioning Authors

"""
Provisioning station command line.

Commands:
    provision   Burn identity and keys onto blank devices
    restore     Re-load key material from the provisioning log
    attest      Challenge a provisioned device and verify it
    verify      Verify an attestation record offline
"""

import argparse
import asyncio
import getpass
import logging
import sys
from pathlib import Path
from typing import Optional

from .attestation import AttestationVerifier, AuthoritySigner
from .config import Settings, settings
from .errors import FireflyError
from .provisioning import (
    ProvisioningLog,
    attest_device,
    provision_device,
    restore_device,
)
from .repl import ReplSession, SerialLineTransport


logger = logging.getLogger(__name__)


def _open_session(config: Settings) -> ReplSession:
    transport = SerialLineTransport(config.serial_port, config.baud_rate, config.serial_timeout)
    return ReplSession.from_settings(transport.open(), config)


def _read_cred(config: Settings, name: str) -> str:
    with open(config.creds_folder / name, "r") as f:
        return f.read().strip()


def load_authority(config: Settings) -> AuthoritySigner:
    """Derive the authority from the station credentials, prompting for the password."""
    phrase = _read_cred(config, "mnemonic.txt")
    address = _read_cred(config, "address.txt")
    password = getpass.getpass("password: ")
    return AuthoritySigner.from_mnemonic(phrase, password, expected_address=address)


async def run_provision(config: Settings, model: int, count: int) -> None:
    print(f"MODEL: {model} (0x{model:x})")
    # prompts block, so they run off the event loop
    signer = await asyncio.to_thread(load_authority, config)

    for _ in range(count):
        log = ProvisioningLog.next_for_model(config.provision_folder, model)
        await asyncio.to_thread(input, f"Burn Serial Number: {log.serial} [press enter]")

        handler = log.handler()
        package_logger = logging.getLogger("firefly_provision")
        package_logger.addHandler(handler)
        try:
            session = _open_session(config)
            try:
                await session.wait_ready()
                await provision_device(session, log, signer)
            finally:
                session.close()
        except FireflyError as e:
            logger.error(f"Provisioning serial={log.serial} failed: {e}")
        finally:
            package_logger.removeHandler(handler)
            log.save()


async def run_restore(config: Settings, verifier: AttestationVerifier) -> None:
    session = _open_session(config)
    try:
        await session.wait_ready()
        result = await restore_device(session, config.provision_folder, verifier)
    finally:
        session.close()
    _print_result(result)


async def run_attest(config: Settings, verifier: AttestationVerifier, nonce: Optional[bytes] = None) -> None:
    session = _open_session(config)
    try:
        await session.wait_ready()
        result = await attest_device(session, verifier, nonce)
    finally:
        session.close()
    _print_result(result)


def _print_result(result) -> None:
    print("✓ Attestation verified")
    print(f"  Authority:  {result.authority}")
    print(f"  Model:      {result.model_name} (0x{result.model:x})")
    print(f"  Serial:     {result.serial}")
    print(f"  Nonce:      0x{result.nonce.hex()}")


def _hex_bytes(value: str) -> bytes:
    value = value.strip()
    if value.startswith("0x"):
        value = value[2:]
    try:
        return bytes.fromhex(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a hex string: {value[:32]}...")


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Firefly provisioning station",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Provision three Pixie DevKit rev.5 boards
  firefly-provision provision --model 0x105 --count 3 --port /dev/ttyACM0

  # Check a provisioned board
  firefly-provision attest --port /dev/ttyACM0

  # Verify a saved attestation record
  firefly-provision verify 01371cd3...
        """
    )

    parser.add_argument(
        "command",
        choices=["provision", "restore", "attest", "verify"],
        help="Command to execute"
    )

    parser.add_argument(
        "record",
        nargs="?",
        type=_hex_bytes,
        help="Attestation record as hex (verify only)"
    )

    parser.add_argument(
        "--port",
        help="Serial port of the device (default: $FIREFLY_SERIAL_PORT)"
    )

    parser.add_argument(
        "--model",
        type=lambda v: int(v, 0),
        help="Model number to provision, e.g. 0x105"
    )

    parser.add_argument(
        "--count",
        type=int,
        default=1,
        help="Number of devices to provision (default: 1)"
    )

    parser.add_argument(
        "--nonce",
        type=_hex_bytes,
        help="8-byte challenge nonce as hex (default: random)"
    )

    parser.add_argument(
        "--folder",
        type=Path,
        help="Provisioning folder (default: $FIREFLY_PROVISION_FOLDER)"
    )

    args = parser.parse_args(argv)

    if args.nonce is not None and len(args.nonce) != 8:
        parser.error("--nonce must be 8 bytes (16 hex digits)")

    overrides = {}
    if args.port:
        overrides["serial_port"] = args.port
    if args.folder:
        overrides["provision_folder"] = args.folder
    config = settings.model_copy(update=overrides)

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    verifier = AttestationVerifier(config.authority_address)

    try:
        if args.command == "provision":
            if args.model is None:
                parser.error("--model required for provision")
            asyncio.run(run_provision(config, args.model, args.count))

        elif args.command == "restore":
            asyncio.run(run_restore(config, verifier))

        elif args.command == "attest":
            asyncio.run(run_attest(config, verifier, args.nonce))

        elif args.command == "verify":
            if args.record is None:
                parser.error("record required for verify")
            _print_result(verifier.verify_bytes(args.record))

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(1)

    except FireflyError as e:
        print(f"\n❌ {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
