"""
In-process store backed by nested dictionaries.

Nothing survives the process. Useful for tests and for throwaway databases.
"""

from __future__ import annotations

import threading
from typing import Dict, Iterator, Optional

from dustydb.stores.abstract import AbstractStore, StoredItem


class MemoryStore(AbstractStore):
    """Thread-safe ``namespace -> key -> bytes`` mapping."""

    name: str = "memory"

    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, bytes]] = {}
        self._lock = threading.Lock()

    def get(self, namespace: str, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(namespace, {}).get(key)

    def put(self, namespace: str, key: str, value: bytes) -> None:
        with self._lock:
            self._data.setdefault(namespace, {})[key] = bytes(value)

    def delete(self, namespace: str, key: str) -> bool:
        with self._lock:
            table = self._data.get(namespace)
            if table is None or key not in table:
                return False
            del table[key]
            return True

    def scan(self, namespace: str) -> Iterator[StoredItem]:
        # Snapshot under the lock so callers may write while iterating.
        with self._lock:
            items = sorted(self._data.get(namespace, {}).items())
        yield from items


__all__ = ["MemoryStore"]
