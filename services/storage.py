"""Key-value storage handlers for the session manager.

- MemoryStorage: process-local store with per-key expiry. Expired values
  are dropped when read, like a browser's localStorage fallback.
- NullStorage: for environments with nowhere to persist. Reads return
  None and writes are ignored, so every event starts a new client and
  session.

The server-side cookie handler lives in services/server_storage.py.
"""

from typing import Callable, Dict, Optional

from config import SESSION_KEYS
from utils.push_id import now_ms, to_millis


class MemoryStorage:
    """In-memory storage handler with expiry."""

    def __init__(self, prefix: str = "", clock: Optional[Callable[[], int]] = None,
                 cookie_options: Optional[dict] = None):
        self.prefix = prefix
        self.clock = clock or now_ms
        self.cookie_options = dict(cookie_options or {})
        self._items: Dict[str, dict] = {}

    def _name(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str) -> Optional[str]:
        name = self._name(key)
        item = self._items.get(name)
        if item is None:
            return None
        expires = item.get("expires")
        if expires is not None and self.clock() > expires:
            del self._items[name]
            return None
        return item["value"]

    def set(self, key: str, value: str, options: Optional[dict] = None):
        options = options or {}
        expires = options.get("expires")
        self._items[self._name(key)] = {
            "value": value,
            "expires": to_millis(expires) if expires is not None else None,
        }

    def clear(self):
        for key in SESSION_KEYS:
            self._items.pop(self._name(key), None)

    def __len__(self) -> int:
        return len(self._items)


class NullStorage:
    """Storage handler for environments without persistent storage."""

    cookie_options: dict = {}

    def get(self, key: str) -> Optional[str]:
        return None

    def set(self, key: str, value: str, options: Optional[dict] = None):
        pass

    def clear(self):
        pass
