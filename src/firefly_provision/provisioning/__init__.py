# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Firefly Provisioning Authors

"""
Provisioning station tasks: the per-device log store and the
provision / restore / attest workflows.
"""

from .log import (
    ProvisioningLog,
    log_filename,
)

from .workflows import (
    attest_device,
    check_device_public_key,
    check_firmware_version,
    provision_device,
    random_nonce,
    read_provisioned_identity,
    request_attestation,
    response_bytes,
    restore_device,
    verify_device,
)

__all__ = [
    # Log store
    "ProvisioningLog",
    "log_filename",
    # Workflows
    "attest_device",
    "check_device_public_key",
    "check_firmware_version",
    "provision_device",
    "random_nonce",
    "read_provisioned_identity",
    "request_attestation",
    "response_bytes",
    "restore_device",
    "verify_device",
]
