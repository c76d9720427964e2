# SPDX-License-Identifier: MIT
# src/shipment_alerts/storage.py
"""
Key-value persistence for JSON-serializable records.

Both the alert store and the shipment store receive one of these backends at
construction time. Backends never raise on read: missing or corrupt data yields
the caller-supplied default. Writes report success as a bool.
"""
from __future__ import annotations
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

logger = logging.getLogger(__name__)

# Logical keys
ALERTS_KEY = "alerts"
SHIPMENTS_KEY = "shipments"
PREFERENCES_KEY = "preferences"


class KeyValueStore(Protocol):
    """Minimal load/save contract shared by every persistence backend."""

    def load(self, key: str, default: Any = None) -> Any: ...

    def save(self, key: str, value: Any) -> bool: ...


class JsonFileStore:
    """
    Stores each key as ``<root>/<key>.json``.

    Writes go to a temp file in the same directory and are moved into place with
    ``os.replace`` so a crash mid-write never leaves a truncated document behind.
    """

    def __init__(self, root: Optional[Union[str, Path]] = None):
        """
        Args:
            root: Directory holding the JSON documents (default: data/state)
        """
        if root is None:
            root = Path("data/state")
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def load(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        if not path.exists():
            return default
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error reading from storage ({key}): {e}", exc_info=True)
            return default

    def save(self, key: str, value: Any) -> bool:
        path = self._path(key)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(value, f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error writing to storage ({key}): {e}", exc_info=True)
            return False


class InMemoryStore:
    """
    Process-local backend.

    Values are serialized on save and parsed on load, so callers get the same
    copy semantics (and the same failure on non-JSON values) as the file store.
    """

    def __init__(self):
        self._data: Dict[str, str] = {}

    def load(self, key: str, default: Any = None) -> Any:
        raw = self._data.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.error(f"Error reading from storage ({key}): {e}", exc_info=True)
            return default

    def save(self, key: str, value: Any) -> bool:
        try:
            self._data[key] = json.dumps(value)
            return True
        except (TypeError, ValueError) as e:
            logger.error(f"Error writing to storage ({key}): {e}", exc_info=True)
            return False
