"""
Durable local state for one client device, kept in a single JSON file.

Fixed keys:
  offline_queue     — list of visitor request payloads not yet persisted
  resident_session  — {"resident": {...}, "role": "resident"}
  language          — "en" | "mr"

Every write replaces the file atomically, so a crash leaves either the old or the
new contents on disk.
"""

import json
import os
from pathlib import Path
from typing import Any

from society_vms.utils.logger import get_logger

logger = get_logger(__name__)

OFFLINE_QUEUE_KEY = "offline_queue"
SESSION_KEY = "resident_session"
LANGUAGE_KEY = "language"


class LocalStore:
    def __init__(self, path):
        self.path = Path(path)
        self._data = self._load()

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Local state at {self.path} unreadable ({e}) — starting empty")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Local state at {self.path} is not an object — starting empty")
            return {}
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any):
        self._data[key] = value
        self._flush()

    def remove(self, key: str):
        if self._data.pop(key, None) is not None:
            self._flush()

    def _flush(self):
        if self.path.parent and not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(self._data, default=str), encoding="utf-8")
        os.replace(tmp, self.path)
