"""
Key-value store interface used to persist sync cursors.
"""

import threading
from typing import Dict, List, Optional, Protocol


class KeyValueStore(Protocol):
    """Minimal persistence collaborator: string keys to string values."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class MemoryStore:
    """In-process store, used by tests and the CLI."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data)
