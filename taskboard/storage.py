"""
Durable key/value storage for the client session.

One JSON object per file, keyed by fixed names (``token``, ``user``).
Survives process restarts until explicitly cleared.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"


class MemoryStorage:
    """In-process storage with the same interface as FileStorage."""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(data or {})

    def _read(self) -> Dict[str, Any]:
        return dict(self._data)

    def _write(self, data: Dict[str, Any]) -> None:
        self._data = dict(data)

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def clear(self) -> None:
        self._write({})


class FileStorage(MemoryStorage):
    """JSON-file storage. A missing or corrupt file reads as empty."""

    def __init__(self, path: str):
        super().__init__()
        self.path = Path(path)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # Atomic write: write to temp, then rename
        tmp_file = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_file, "w") as f:
            json.dump(data, f, ensure_ascii=False)
        os.chmod(tmp_file, 0o600)
        tmp_file.replace(self.path)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
