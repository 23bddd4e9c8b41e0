"""
Database: one store handle shared by the models of every record type.

Usage:
    from dustydb import Database, MemoryStore

    with Database(MemoryStore()) as db:
        authors = db.model(Author)       # or db.model("Author")
        authors.create(name="chromatic")
"""

from __future__ import annotations

import threading
from typing import Dict, Optional, Union

from dustydb.config import Settings, UnknownAttributePolicy, get_settings
from dustydb.domain.record import Record, record_type_for
from dustydb.domain.schema import schema_for
from dustydb.infrastructure.store_factory import build_store
from dustydb.model import Model
from dustydb.stores.abstract import Store
from dustydb.utils.logging import get_logger

log = get_logger(__name__)


class Database:
    """
    Hands out one Model per record type, all bound to the same store.

    Parameters
    ----------
    store : Store
        The store handle. The database closes it on `close()`.
    unknown_attributes : "ignore" | "reject"
        Unknown-attribute policy passed to every model.
    """

    def __init__(self, store: Store, unknown_attributes: UnknownAttributePolicy = "ignore") -> None:
        self.store = store
        self.unknown_attributes = unknown_attributes
        self._models: Dict[type[Record], Model] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "Database":
        """Open the store configured in settings."""
        settings = settings or get_settings()
        return cls(build_store(settings), unknown_attributes=settings.unknown_attributes)

    def model(self, record_type: Union[type[Record], str]) -> Model:
        """
        Return the model of ``record_type`` (a Record subclass or its class name).

        Raises
        ------
        SchemaError
            If the name is not a declared record type, or the declaration is invalid.
        """
        if isinstance(record_type, str):
            record_type = record_type_for(record_type)
        with self._lock:
            model = self._models.get(record_type)
            if model is None:
                model = Model(
                    store=self.store,
                    schema=schema_for(record_type),
                    unknown_attributes=self.unknown_attributes,
                )
                self._models[record_type] = model
                log.debug(f"[MODEL] {model.table}", extra={"table": model.table})
            return model

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["Database"]
