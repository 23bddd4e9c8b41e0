"""
Utilities package for DustyDB.

Exports shared helpers for logging and other cross-cutting concerns.
Keep this package lightweight and free of record-specific logic.
"""

from dustydb.utils.logging import ConsoleFormatter, JsonFormatter, configure_logging, get_logger

__all__ = [
    "ConsoleFormatter",
    "JsonFormatter",
    "configure_logging",
    "get_logger",
]
