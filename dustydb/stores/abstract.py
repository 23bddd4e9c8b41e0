"""
Store interfaces for DustyDB.

A store is a persistent associative container addressed by
``(namespace, key)``. The namespace is a record type's table name, the key is
the encoded identity key of one record, and the value is the record's
serialized bytes. Stores know nothing about records or schemas.

Concrete stores should implement the AbstractStore ABC. Every I/O failure
must surface as ``PersistenceError``; a missing key is not a failure.
"""

from __future__ import annotations

import abc
from typing import Iterator, Optional, Protocol, Tuple, runtime_checkable

StoredItem = Tuple[str, bytes]


@runtime_checkable
class Store(Protocol):
    """
    Common interface all stores must implement.

    Attributes
    ----------
    name : str
        A short machine-friendly identifier of the backend.
    """

    name: str

    def get(self, namespace: str, key: str) -> Optional[bytes]:
        """Return the bytes stored at ``key`` or None when nothing is stored."""
        ...

    def put(self, namespace: str, key: str, value: bytes) -> None:
        """Store ``value`` at ``key``, replacing any previous value."""
        ...

    def delete(self, namespace: str, key: str) -> bool:
        """Remove ``key``. Returns True when a value was removed."""
        ...

    def scan(self, namespace: str) -> Iterator[StoredItem]:
        """Yield every ``(key, value)`` pair of ``namespace`` ordered by key."""
        ...

    def close(self) -> None:
        """Release resources held by the store."""
        ...


class AbstractStore(abc.ABC):
    """
    ABC helper for class-based stores.

    Subclasses set `name` and implement `get`, `put`, `delete` and `scan`.
    `close` is a no-op unless the store holds resources.
    """

    name: str

    @abc.abstractmethod
    def get(self, namespace: str, key: str) -> Optional[bytes]:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def put(self, namespace: str, key: str, value: bytes) -> None:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def delete(self, namespace: str, key: str) -> bool:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def scan(self, namespace: str) -> Iterator[StoredItem]:  # pragma: no cover
        raise NotImplementedError

    def close(self) -> None:
        return None

    def __enter__(self) -> "AbstractStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["AbstractStore", "Store", "StoredItem"]
