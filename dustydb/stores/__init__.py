"""
Stores package for DustyDB.

Re-exports the store interfaces and the concrete backends so downstream code
can import from `dustydb.stores` directly.
"""

from dustydb.stores.abstract import AbstractStore, Store, StoredItem
from dustydb.stores.file import FileStore
from dustydb.stores.memory import MemoryStore
from dustydb.stores.postgres import PostgresStore

__all__ = [
    # Abstracts
    "AbstractStore",
    "Store",
    "StoredItem",
    # Concrete stores
    "FileStore",
    "MemoryStore",
    "PostgresStore",
]
