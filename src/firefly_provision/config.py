# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Firefly Provisioning Authors

"""Configuration management for Firefly provisioning tools."""

import re
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .attestation.verifier import AUTHORITY_ADDRESS


class Settings(BaseSettings):
    """Settings loaded from FIREFLY_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FIREFLY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Serial link
    serial_port: str = ""
    baud_rate: int = Field(115200, gt=0)
    serial_timeout: float = Field(0.5, gt=0)

    # REPL timing (seconds)
    poll_interval: float = Field(0.1, ge=0)
    settle_delay: float = Field(0.5, ge=0)
    stall_limit: int = Field(10, ge=0)
    ready_timeout: Optional[float] = Field(None, gt=0)  # None waits forever
    response_timeout: Optional[float] = Field(None, gt=0)

    # Provisioning store
    provision_folder: Path = Path("/Volumes/FireflyProvision")

    # Attestation
    authority_address: str = AUTHORITY_ADDRESS

    # Logging
    log_level: str = "INFO"

    @field_validator("authority_address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        """Validate 20-byte hex address format."""
        if not re.match(r'^0x[a-f0-9]{40}$', v, re.IGNORECASE):
            raise ValueError("Authority address must be 0x followed by 40 hexadecimal characters")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate logging level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def devices_folder(self) -> Path:
        """Folder holding the per-device provisioning logs."""
        return self.provision_folder / "devices"

    @property
    def creds_folder(self) -> Path:
        """Folder holding the authority mnemonic and address."""
        return self.provision_folder / "creds"


# Global settings instance
settings = Settings()
