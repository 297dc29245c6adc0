# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Firefly Provisioning Authors

"""
Unit tests for REPL command encoding.

Tests:
- Numeric argument normalization
- Data argument prefix stripping
- Pass-through of other commands
"""

import pytest

from firefly_provision.errors import MalformedCommand, ReplError
from firefly_provision.repl import DATA_COMMANDS, NUMERIC_COMMANDS, encode_command


class TestNumericCommands:
    """Test SET-MODEL / SET-SERIAL encoding."""

    def test_leading_zeros_removed(self):
        """Test decimal values are normalized."""
        assert encode_command("SET-MODEL=007") == "SET-MODEL=7"
        assert encode_command("SET-SERIAL=0042") == "SET-SERIAL=42"

    def test_zero(self):
        """Test a zero value survives normalization."""
        assert encode_command("SET-SERIAL=000") == "SET-SERIAL=0"

    def test_large_value(self):
        """Test values are not truncated."""
        assert encode_command("SET-MODEL=4294967295") == "SET-MODEL=4294967295"

    def test_non_decimal_rejected(self):
        """Test a non-decimal value raises MalformedCommand."""
        with pytest.raises(MalformedCommand) as exc_info:
            encode_command("SET-MODEL=0x105")

        assert "SET-MODEL" in str(exc_info.value)

    def test_empty_value_rejected(self):
        """Test an empty value raises MalformedCommand."""
        with pytest.raises(MalformedCommand):
            encode_command("SET-SERIAL=")

    @pytest.mark.parametrize("value", ["1_000", " 7 ", "7\n", "+7", "-7", "\u0663"])
    def test_loose_integer_forms_rejected(self, value):
        """Test only plain ASCII digits are accepted."""
        with pytest.raises(MalformedCommand):
            encode_command(f"SET-SERIAL={value}")

    def test_malformed_is_repl_error(self):
        """Test MalformedCommand can be handled as a ReplError or ValueError."""
        with pytest.raises(ReplError):
            encode_command("SET-SERIAL=abc")
        with pytest.raises(ValueError):
            encode_command("SET-SERIAL=abc")


class TestDataCommands:
    """Test hex data argument encoding."""

    def test_prefix_stripped(self):
        """Test a 0x prefix is removed."""
        assert encode_command("SET-ATTEST=0xAB12") == "SET-ATTEST=AB12"

    def test_no_prefix(self):
        """Test an unprefixed value is left alone."""
        assert encode_command("STIR-ENTROPY=ab12") == "STIR-ENTROPY=ab12"

    def test_all_data_commands(self):
        """Test every data command strips the prefix."""
        for name in DATA_COMMANDS:
            assert encode_command(f"{name}=0x00ff") == f"{name}=00ff"

    def test_only_leading_prefix(self):
        """Test only the leading prefix is removed."""
        assert encode_command("SET-PUBKEYN=0x0x12") == "SET-PUBKEYN=0x12"


class TestPassThrough:
    """Test commands sent unchanged."""

    def test_bare_command(self):
        """Test commands without an argument."""
        for command in ("DUMP", "VERSION", "NOP", "GEN-KEY", "BURN"):
            assert encode_command(command) == command

    def test_unknown_command_with_argument(self):
        """Test arguments of other commands are not touched."""
        assert encode_command("ATTEST=0x0123") == "ATTEST=0x0123"

    def test_multiple_separators(self):
        """Test a command with more than one '=' is sent unchanged."""
        assert encode_command("SET-MODEL=1=2") == "SET-MODEL=1=2"

    def test_command_sets_disjoint(self):
        """Test no command is both numeric and data."""
        assert not NUMERIC_COMMANDS & DATA_COMMANDS
