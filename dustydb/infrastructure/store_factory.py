"""
Settings-driven construction of store handles.

The returned handle is meant to be shared: one store backs the models of every
record type of a Database.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from dustydb.config import Settings, get_settings
from dustydb.stores.abstract import Store
from dustydb.stores.file import FileStore
from dustydb.stores.memory import MemoryStore
from dustydb.stores.postgres import PostgresStore
from dustydb.utils.logging import get_logger

log = get_logger(__name__)


def _store_factories(settings: Settings) -> Dict[str, Callable[[], Store]]:
    """Registry of available store backends."""
    return {
        "memory": lambda: MemoryStore(),
        "file": lambda: FileStore(settings.store_path),
        "postgres": lambda: PostgresStore(
            table=settings.db_table,
            pool_min_size=settings.db_pool_min_size,
            pool_max_size=settings.db_pool_max_size,
            retry_attempts=settings.retry_attempts,
        ),
    }


def available_backends() -> List[str]:
    """List available store backend names."""
    return sorted(_store_factories(get_settings()).keys())


def build_store(settings: Optional[Settings] = None, backend: Optional[str] = None) -> Store:
    """
    Build the store selected by ``backend`` or ``settings.store_backend``.

    Raises
    ------
    ValueError
        If the backend name is unknown.
    """
    settings = settings or get_settings()
    name = backend or settings.store_backend
    factories = _store_factories(settings)
    if name not in factories:
        raise ValueError(f"Unknown store backend '{name}'. Available: {', '.join(sorted(factories))}")
    store = factories[name]()
    log.info(f"[STORE OPEN] {name}", extra={"backend": name})
    return store


__all__ = ["available_backends", "build_store"]
