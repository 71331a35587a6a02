"""
State File Persistence — JSON key-value backend for the selected mirror.

The whole store is one JSON object. Writes go to a temp file that is
then renamed over the original, so a crash never leaves a half-written
store behind.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Dict, Optional

from ..adapters.base import PersistenceAdapter

logger = logging.getLogger(__name__)

DEFAULT_STATE_PATH = Path("state") / "mirror_selection.json"


class JsonFilePersistence(PersistenceAdapter):
    """Durable string store backed by a JSON file."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else DEFAULT_STATE_PATH
        self._lock = threading.Lock()

    def load(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._read().get(key)
        if value is not None and not isinstance(value, str):
            logger.warning(f"Ignoring non-string value for '{key}' in {self.path}")
            return None
        return value

    def save(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)
        logger.debug(f"Persisted {key} → {self.path.name}")

    def _read(self) -> Dict[str, object]:
        """Current contents; missing or corrupt files read as empty."""
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Unreadable state file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"State file {self.path} is not a JSON object, ignoring")
            return {}
        return data

    def _write(self, data: Dict[str, object]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        temp_path = self.path.with_suffix(".tmp")
        with temp_path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=4)
            f.write("\n")

        temp_path.replace(self.path)


class MemoryPersistence(PersistenceAdapter):
    """In-process store; survives nothing, useful for tests and local mode."""

    def __init__(self):
        self.values: Dict[str, str] = {}

    def load(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def save(self, key: str, value: str) -> None:
        self.values[key] = value
