"""
Key-Value Persistence

JSON-file backed key-value store used for contacts, incident notes and the
user name. Reads never fail: missing or unreadable data yields the
caller's default.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import StorageError


class KeyValueStore:
    """Key-value store with optional JSON file persistence"""

    def __init__(self, path: Optional[str] = None):
        self.logger = logging.getLogger(__name__)
        self.path = Path(path) if path else None
        self._data: Dict[str, Any] = {}
        self._load()

    def _load(self):
        """Load stored data from disk, falling back to an empty store"""
        if self.path is None or not self.path.exists():
            return

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            self.logger.warning(f"Could not read store {self.path}, starting empty: {e}")
            return

        if isinstance(data, dict):
            self._data = data
        else:
            self.logger.warning(f"Ignoring malformed store {self.path}: expected an object")

    def _flush(self):
        if self.path is None:
            return

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(self._data, f, indent=2, ensure_ascii=False)
            tmp_path.replace(self.path)
        except (OSError, TypeError, ValueError) as e:
            self.logger.error(f"Error writing store {self.path}: {e}")
            raise StorageError(f"Could not persist data: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieve stored data.

        Args:
            key: Storage key
            default: Default value if key not found

        Returns:
            Stored data or default value
        """
        if key not in self._data:
            return default
        # Hand out a copy so callers cannot mutate the store in place
        try:
            return json.loads(json.dumps(self._data[key]))
        except (TypeError, ValueError) as e:
            self.logger.warning(f"Unreadable value for {key}: {e}")
            return default

    def set(self, key: str, value: Any) -> None:
        """
        Store data.

        Args:
            key: Storage key
            value: Data to store (must be JSON serializable)

        Raises:
            StorageError: If the value cannot be persisted
        """
        try:
            json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for {key} is not serializable: {e}") from e

        previous = self._data.get(key)
        had_key = key in self._data
        self._data[key] = value
        try:
            self._flush()
        except StorageError:
            if had_key:
                self._data[key] = previous
            else:
                del self._data[key]
            raise

    def delete(self, key: str) -> bool:
        """Delete a key; returns False if it did not exist"""
        if key not in self._data:
            return False
        del self._data[key]
        self._flush()
        return True

    def keys(self) -> List[str]:
        """List stored keys"""
        return list(self._data.keys())
