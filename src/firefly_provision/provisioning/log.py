# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Firefly Provisioning Authors

"""
Per-device provisioning logs.

Every provisioned device gets a JSON file under `<folder>/devices/`
named after its model and serial, e.g. `rev-0105-00002a.json`. It holds
the key material needed to restore the device (pubkeyN, cipherData,
attest) and the ordered log lines of every session with it.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..errors import ProvisioningLogNotFound


logger = logging.getLogger(__name__)

LOG_FILENAME_PATTERN = re.compile(r"^rev-([0-9A-F]+)-([0-9A-F]+)\.json$", re.IGNORECASE)

_LINES_KEY = "_logs"


def log_filename(model: int, serial: int) -> str:
    """
    Example:
        >>> log_filename(0x0105, 42)
        'rev-0105-00002a.json'
    """
    return f"rev-{model:04x}-{serial:06x}.json"


class ProvisioningLog:
    """Key/value record plus log lines for one device."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.lines: List[str] = []
        self._values: Dict[str, Any] = {}

    @property
    def model(self) -> Optional[int]:
        return self._values.get("model")

    @property
    def serial(self) -> Optional[int]:
        return self._values.get("serial")

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def log(self, message: Any) -> None:
        """Append a message, one entry per line."""
        text = message if isinstance(message, str) else json.dumps(message, indent=2, default=str)
        self.lines.extend(text.split("\n"))

    def handler(self, level: int = logging.INFO) -> logging.Handler:
        """A logging handler that appends formatted records to this log."""
        return _ProvisioningLogHandler(self, level)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self._values)
        data[_LINES_KEY] = list(self.lines)
        return data

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self.to_dict(), f)
        logger.info(f"Provisioning log saved: {self.path}")

    @staticmethod
    def path_for(folder: Path, model: int, serial: int) -> Path:
        return Path(folder) / "devices" / log_filename(model, serial)

    @classmethod
    def create(cls, folder: Path, model: int, serial: int) -> "ProvisioningLog":
        """New, unsaved log for a device."""
        result = cls(cls.path_for(folder, model, serial))
        result.set("model", model)
        result.set("serial", serial)
        return result

    @classmethod
    def load(cls, folder: Path, model: int, serial: int) -> "ProvisioningLog":
        """
        Load an existing device log.

        Raises:
            ProvisioningLogNotFound: If the device was never provisioned here
        """
        result = cls.create(folder, model, serial)
        try:
            with open(result.path, "r") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise ProvisioningLogNotFound(result.path)

        result.lines = list(data.pop(_LINES_KEY, []))
        for key, value in data.items():
            result.set(key, value)
        return result

    @classmethod
    def next_for_model(cls, folder: Path, model: int) -> "ProvisioningLog":
        """Log for the next unused serial of a model."""
        devices = Path(folder) / "devices"
        latest = 0
        if devices.is_dir():
            for path in devices.iterdir():
                match = LOG_FILENAME_PATTERN.match(path.name)
                if match and int(match.group(1), 16) == model:
                    latest = max(latest, int(match.group(2), 16))

        return cls.create(folder, model, latest + 1)


class _ProvisioningLogHandler(logging.Handler):

    def __init__(self, target: ProvisioningLog, level: int):
        super().__init__(level)
        self.target = target
        self.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.target.log(self.format(record))
        except Exception:
            self.handleError(record)
