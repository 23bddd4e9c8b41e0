"""
Models: the bridge between a store and the records of one type.

Usage:
    from dustydb import Database, Record

    db = Database.from_settings()
    authors = db.model("Author")

    schwartz = authors.create(name="Randall Schwartz")      # construct + save
    chromatic = authors.construct(name="chromatic")         # not saved yet
    damian = authors.load(name="Damian Conway")             # None if absent
    authors.save(name="chromatic", email="c@example.com")   # upsert, full replace
    d_authors = list(authors.all_where(name=re.compile("^d", re.I)))

A Model holds no locks and keeps no registry of live records. ``load_or_create``
and ``save`` read then write without serialization: two concurrent callers may
both miss and both create, in which case the last write wins and neither sees
an error.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Mapping, Optional

from dustydb.config import UnknownAttributePolicy
from dustydb.domain.record import Record
from dustydb.domain.schema import RecordSchema
from dustydb.errors import SchemaMismatchError
from dustydb.stores.abstract import Store
from dustydb.utils.logging import get_logger

log = get_logger(__name__)

Params = Mapping[str, Any]


def _merge_params(params: Optional[Params], kwargs: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(params or {})
    merged.update(kwargs)
    return merged


def _matches(record: Record, name: str, condition: Any) -> bool:
    value = getattr(record, name)
    if isinstance(condition, re.Pattern):
        if value is None or name not in record.model_fields_set:
            return False
        return condition.search(str(value)) is not None
    if callable(condition):
        return bool(condition(value))
    return value == condition


@dataclass(frozen=True)
class Model:
    """
    Gateway coordinating the lifecycle of one record type.

    Every operation takes attribute values either as a mapping, as keyword
    arguments, or both (keywords win). Byte-level I/O is left to the schema
    descriptor and the store; store failures propagate unchanged.

    Attributes
    ----------
    store : Store
        Shared store handle; other models write to it too.
    schema : RecordSchema
        Descriptor of the record type.
    unknown_attributes : "ignore" | "reject"
        What to do with params naming undeclared attributes.
    """

    store: Store
    schema: RecordSchema
    unknown_attributes: UnknownAttributePolicy = "ignore"

    @property
    def table(self) -> str:
        return self.schema.table

    @property
    def record_type(self) -> type[Record]:
        return self.schema.record_type

    def _params(self, params: Optional[Params], kwargs: Dict[str, Any]) -> Dict[str, Any]:
        merged = _merge_params(params, kwargs)
        self.schema.check_params(merged, self.unknown_attributes)
        return merged

    def construct(self, params: Optional[Params] = None, /, **kwargs: Any) -> Record:
        """Build a record in memory without saving it. The key may be partial."""
        return self.schema.create_instance(self, self._params(params, kwargs))

    def create(self, params: Optional[Params] = None, /, **kwargs: Any) -> Record:
        """
        Construct a record and save it.

        Raises
        ------
        MissingKeyError
            If a key attribute is absent (raised by the save).
        PersistenceError
            If the store write fails.
        """
        record = self.construct(params, **kwargs)
        record.save()
        log.debug(f"[CREATE] {self.table}", extra={"table": self.table})
        return record

    def load(self, params: Optional[Params] = None, /, **kwargs: Any) -> Optional[Record]:
        """
        Load the record addressed by the key attributes of the params.

        Non-key params are ignored. Returns None when nothing is stored at the key.
        """
        merged = self._params(params, kwargs)
        record = self.schema.load_instance(self, merged)
        log.debug(
            f"[LOAD] {self.table}",
            extra={"table": self.table, "found": record is not None},
        )
        return record

    def load_or_create(self, params: Optional[Params] = None, /, **kwargs: Any) -> Record:
        """
        Return the stored record for the key, or create one from the params.

        A stored record is returned as-is: non-key params are not applied to it.
        """
        merged = self._params(params, kwargs)
        record = self.schema.load_instance(self, merged)
        if record is not None:
            return record
        return self.create(merged)

    def save(self, params: Optional[Params] = None, /, **kwargs: Any) -> Record:
        """
        Upsert with full-replace semantics.

        If a record is stored at the key, every attribute is overwritten: set
        where the params carry a non-None value, cleared otherwise. The record is
        then saved and returned. If nothing is stored, the record is created
        from the params.
        """
        merged = self._params(params, kwargs)
        record = self.schema.load_instance(self, merged)
        if record is None:
            return self.create(merged)

        for attribute in self.schema.attributes.values():
            value = merged.get(attribute.name)
            if value is not None:
                attribute.set(record, value)
            else:
                attribute.clear(record)

        record.save()
        log.debug(f"[REPLACE] {self.table}", extra={"table": self.table})
        return record

    load_and_update_or_create = save

    def delete(self, params: Optional[Params] = None, /, **kwargs: Any) -> bool:
        """Delete the record addressed by the key params. Returns False on a miss."""
        merged = self._params(params, kwargs)
        deleted = self.schema.delete_key(self, merged)
        log.debug(f"[DELETE] {self.table}", extra={"table": self.table, "found": deleted})
        return deleted

    def all(self) -> Iterator[Record]:
        """Iterate over every stored record of the type, ordered by key."""
        return self.schema.iter_instances(self)

    def all_where(self, **filters: Any) -> Iterator[Record]:
        """
        Iterate over stored records whose attributes satisfy every filter.

        A filter is a compiled regular expression (searched in ``str(value)``;
        unset values never match), a predicate called with the value, or a plain
        value compared for equality.

        Raises
        ------
        SchemaMismatchError
            If a filter names an undeclared attribute.
        """
        unknown = self.schema.unknown_names(filters)
        if unknown:
            raise SchemaMismatchError(self.table, unknown)
        return (
            record
            for record in self.all()
            if all(_matches(record, name, cond) for name, cond in filters.items())
        )

    def count(self) -> int:
        """Number of records of the type in the store."""
        return sum(1 for _ in self.store.scan(self.table))


__all__ = ["Model"]
