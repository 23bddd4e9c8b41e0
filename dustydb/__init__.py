"""
DustyDB - record persistence on top of a key/value store.

Declare a record type as a pydantic model naming its identity key, obtain a
Model for it from a Database, and use construct / create / load /
load_or_create / save / delete plus key-ordered scans (all, all_where).

Stores are pluggable: in-memory, one file per record, or a PostgreSQL table.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from dustydb.config import Settings, get_settings
from dustydb.database import Database
from dustydb.domain.record import Record
from dustydb.domain.schema import RecordSchema, schema_for
from dustydb.errors import (
    DustyDBError,
    InvalidSchemaError,
    MissingKeyError,
    PersistenceError,
    SchemaError,
    SchemaMismatchError,
)
from dustydb.model import Model
from dustydb.stores import AbstractStore, FileStore, MemoryStore, PostgresStore, Store
from dustydb.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Records
    "Database",
    "Model",
    "Record",
    "RecordSchema",
    "schema_for",
    # Stores
    "AbstractStore",
    "FileStore",
    "MemoryStore",
    "PostgresStore",
    "Store",
    # Errors
    "DustyDBError",
    "InvalidSchemaError",
    "MissingKeyError",
    "PersistenceError",
    "SchemaError",
    "SchemaMismatchError",
    # Logging
    "configure_logging",
    "get_logger",
]
