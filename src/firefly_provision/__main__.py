# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Firefly Provisioning Authors

"""
Main entry point for running firefly_provision as a module.

Allows running:
    python -m firefly_provision attest --port /dev/ttyACM0
"""

from .cli import main

if __name__ == "__main__":
    main()
