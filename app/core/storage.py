"""JSON-file backed key/value storage, one file per browser session"""
import json
from pathlib import Path
from threading import RLock
from typing import Any, Dict, Optional
from app.utils.logger import logger


class LocalStorage:
    """
    Persistent key/value store holding the state a browser would keep locally.

    Known keys:
    - token: bearer token of the signed-in user
    - user: cached user profile
    - predictions: recents cache entries
    - userSettings: last saved display/export settings
    - preferred_language: language code chosen in settings

    Values are JSON-serialisable. Every write rewrites the whole file.
    """

    def __init__(self, path: Path):
        """
        Initialize storage.

        Args:
            path: JSON file backing this store (created on first write)
        """
        self.path = Path(path)
        self._lock = RLock()
        self._data: Dict[str, Any] = self._read()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable storage file {self.path}: {str(e)}")
            return {}
        return data if isinstance(data, dict) else {}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        with tmp_path.open("w", encoding="utf-8") as fh:
            json.dump(self._data, fh, ensure_ascii=False, indent=2)
        tmp_path.replace(self.path)

    def get_item(self, key: str, default: Optional[Any] = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set_item(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value
            self._flush()

    def remove_item(self, key: str) -> None:
        with self._lock:
            if key in self._data:
                del self._data[key]
                self._flush()

    def clear(self) -> None:
        with self._lock:
            self._data = {}
            if self.path.exists():
                self.path.unlink()

    def keys(self):
        with self._lock:
            return list(self._data.keys())
