"""
Infrastructure package for DustyDB.

Centralizes PostgreSQL connectivity (pooling) and store construction
(`dustydb.infrastructure.store_factory`). Keep this layer focused on I/O and
resource management, decoupled from the model and schema logic.
"""

from dustydb.infrastructure.db_factory import PoolManager, build_dsn, get_sync_pool

__all__ = [
    "PoolManager",
    "build_dsn",
    "get_sync_pool",
]
