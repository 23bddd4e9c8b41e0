"""
Record base class for DustyDB.

A record type is a pydantic model that names its identity key::

    class Author(Record):
        key_fields = ("name",)

        name: Optional[str] = None
        email: Optional[str] = None

Every field must carry a default: records may be constructed with a partial
key, and cleared attributes fall back to their default. Which attributes are
actually set is tracked by pydantic's ``model_fields_set``; only set
attributes are written to the store.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, PrivateAttr

from dustydb.errors import DustyDBError, SchemaError
from dustydb.utils.logging import get_logger

if TYPE_CHECKING:
    from dustydb.model import Model

log = get_logger(__name__)

_RECORD_TYPES: Dict[str, type["Record"]] = {}


class Record(BaseModel):
    """
    One row of a record type, bound to the Model that produced it.

    Class attributes
    ----------------
    key_fields : tuple[str, ...]
        Names of the attributes forming the identity key, in key order.
    table_name : str | None
        Store namespace of the record type. Defaults to the class name.
    """

    key_fields: ClassVar[Tuple[str, ...]] = ()
    table_name: ClassVar[Optional[str]] = None

    # Stored documents and Model params use field names, even for aliased fields.
    model_config = ConfigDict(extra="ignore", validate_assignment=True, populate_by_name=True)

    _model: Any = PrivateAttr(default=None)

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        name = cls.__name__
        if name in _RECORD_TYPES and _RECORD_TYPES[name] is not cls:
            log.debug("Record type redefined", extra={"record_type": name})
        _RECORD_TYPES[name] = cls

    @property
    def bound_model(self) -> "Model":
        """The Model this record saves and deletes through."""
        if self._model is None:
            raise DustyDBError(f"{type(self).__name__} record is not bound to a model")
        return self._model

    def save(self) -> "Record":
        """Write this record to the store, replacing whatever is stored at its key."""
        model = self.bound_model
        model.schema.save_instance(model, self)
        return self

    def delete(self) -> bool:
        """Remove this record from the store. Returns False if it was not stored."""
        model = self.bound_model
        return model.schema.delete_instance(model, self)


def record_type_for(name: str) -> type[Record]:
    """Look up a declared record type by class name."""
    try:
        return _RECORD_TYPES[name]
    except KeyError:
        raise SchemaError(
            f"Unknown record type '{name}'. Declared: {', '.join(sorted(_RECORD_TYPES))}"
        ) from None


__all__ = ["Record", "record_type_for"]
