"""
Error taxonomy for DustyDB.

A legitimate miss (no record stored at a key) is never an error: `Model.load`
returns None for it. Everything below signals a real failure and is
propagated unchanged by the model layer.
"""

from __future__ import annotations

from typing import Iterable


class DustyDBError(Exception):
    """Base class for every error raised by DustyDB."""


class MissingKeyError(DustyDBError, KeyError):
    """An identity-key attribute is absent for a key-dependent operation."""

    def __init__(self, table: str, missing: Iterable[str]) -> None:
        self.table = table
        self.missing = tuple(missing)
        super().__init__(f"{table}: missing key attribute(s) {', '.join(self.missing)}")

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0])


class PersistenceError(DustyDBError):
    """The underlying store failed to complete an operation."""


class SchemaError(DustyDBError):
    """Base class for schema related failures."""


class SchemaMismatchError(SchemaError, ValueError):
    """Params reference attribute names the record type does not declare."""

    def __init__(self, table: str, unknown: Iterable[str]) -> None:
        self.table = table
        self.unknown = tuple(unknown)
        super().__init__(f"{table}: unknown attribute(s) {', '.join(self.unknown)}")


class InvalidSchemaError(SchemaError, TypeError):
    """A record class declaration cannot be turned into a schema."""


__all__ = [
    "DustyDBError",
    "InvalidSchemaError",
    "MissingKeyError",
    "PersistenceError",
    "SchemaError",
    "SchemaMismatchError",
]
