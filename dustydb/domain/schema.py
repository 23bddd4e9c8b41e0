"""
Schema descriptors: the static attribute table of a record type.

A RecordSchema is built once per Record subclass (see `schema_for`) and holds
an ordered map of attribute accessors plus the identity key. It derives
storage keys and materializes instances against a store; the Model decides
*when* to do so.

Storage keys are the identity-key values in key order, JSON-encoded as an
array (``["chromatic"]``, ``["2024-01-01", 7]``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Mapping, Optional, Tuple

from pydantic.fields import FieldInfo
from pydantic_core import to_json

from dustydb.domain.record import Record
from dustydb.errors import InvalidSchemaError, MissingKeyError, SchemaMismatchError
from dustydb.utils.logging import get_logger

if TYPE_CHECKING:
    from dustydb.model import Model

log = get_logger(__name__)


@dataclass(frozen=True)
class Attribute:
    """Accessor for one declared attribute of a record type."""

    name: str
    info: FieldInfo = field(repr=False, compare=False)
    is_key: bool = False

    def default(self) -> Any:
        return self.info.get_default(call_default_factory=True)

    def get(self, instance: Record) -> Any:
        return getattr(instance, self.name)

    def is_set(self, instance: Record) -> bool:
        return self.name in instance.model_fields_set

    def set(self, instance: Record, value: Any) -> None:
        setattr(instance, self.name, value)

    def clear(self, instance: Record) -> None:
        # Bypasses assignment validation: a default need not satisfy the annotation.
        instance.__dict__[self.name] = self.default()
        instance.model_fields_set.discard(self.name)


def encode_key(values: Tuple[Any, ...]) -> str:
    """Encode identity-key values into a storage key."""
    return to_json(list(values)).decode("utf-8")


class RecordSchema:
    """
    Descriptor of one record type.

    Attributes
    ----------
    record_type : type[Record]
        The described pydantic model.
    table : str
        Store namespace shared by every record of the type.
    attributes : dict[str, Attribute]
        Declared attributes in declaration order.
    key_names : tuple[str, ...]
        Identity-key attribute names in key order.
    """

    def __init__(self, record_type: type[Record]) -> None:
        if not isinstance(record_type, type) or not issubclass(record_type, Record):
            raise InvalidSchemaError(f"{record_type!r} is not a Record subclass")

        name = record_type.__name__
        fields = record_type.model_fields
        key_names = tuple(record_type.key_fields)

        if not key_names:
            raise InvalidSchemaError(f"{name}: key_fields must name at least one attribute")
        if len(set(key_names)) != len(key_names):
            raise InvalidSchemaError(f"{name}: duplicate names in key_fields {key_names}")
        undeclared = [key for key in key_names if key not in fields]
        if undeclared:
            raise InvalidSchemaError(f"{name}: key_fields not declared: {', '.join(undeclared)}")
        required = [attr for attr, info in fields.items() if info.is_required()]
        if required:
            raise InvalidSchemaError(
                f"{name}: attributes need a default (e.g. None): {', '.join(required)}"
            )

        self.record_type = record_type
        self.table = record_type.table_name or name
        self.key_names = key_names
        self.attributes: Dict[str, Attribute] = {
            attr: Attribute(name=attr, info=info, is_key=attr in key_names)
            for attr, info in fields.items()
        }

    def __repr__(self) -> str:
        return f"RecordSchema({self.record_type.__name__}, table={self.table!r}, key={self.key_names})"

    # -- Params --

    def unknown_names(self, params: Mapping[str, Any]) -> List[str]:
        return [name for name in params if name not in self.attributes]

    def check_params(self, params: Mapping[str, Any], policy: str = "ignore") -> None:
        """Apply the unknown-attribute policy to ``params``."""
        unknown = self.unknown_names(params)
        if not unknown:
            return
        if policy == "reject":
            raise SchemaMismatchError(self.table, unknown)
        log.debug(
            "Ignoring unknown attributes",
            extra={"table": self.table, "unknown": unknown},
        )

    # -- Keys --

    def key_for(self, params: Mapping[str, Any]) -> str:
        """
        Derive the storage key from the key-bearing subset of ``params``.

        Key values are validated through the record type so that ``load(id="7")``
        and a stored ``id=7`` address the same record.

        Raises
        ------
        MissingKeyError
            If any key attribute is absent or None.
        """
        missing = [name for name in self.key_names if params.get(name) is None]
        if missing:
            raise MissingKeyError(self.table, missing)
        probe = self.record_type.model_validate({name: params[name] for name in self.key_names})
        return self.key_of(probe)

    def key_of(self, instance: Record) -> str:
        """
        Storage key of an instance. Raises MissingKeyError for a partial key.

        A key attribute holding only its declared default counts as missing.
        """
        values = tuple(getattr(instance, name) for name in self.key_names)
        missing = [
            name
            for name, value in zip(self.key_names, values)
            if value is None or name not in instance.model_fields_set
        ]
        if missing:
            raise MissingKeyError(self.table, missing)
        return encode_key(values)

    # -- Serialization --

    def encode(self, instance: Record) -> bytes:
        return instance.model_dump_json(exclude_unset=True, by_alias=False).encode("utf-8")

    def decode(self, model: "Model", data: bytes) -> Record:
        instance = self.record_type.model_validate_json(data)
        instance._model = model
        return instance

    # -- Instances --

    def create_instance(self, model: "Model", params: Mapping[str, Any]) -> Record:
        """Build an in-memory instance. None values count as not given."""
        values = {
            name: value
            for name, value in params.items()
            if name in self.attributes and value is not None
        }
        instance = self.record_type.model_validate(values)
        instance._model = model
        return instance

    def load_instance(self, model: "Model", key_params: Mapping[str, Any]) -> Optional[Record]:
        """Materialize the instance stored at the key of ``key_params``, or None."""
        key = self.key_for(key_params)
        data = model.store.get(self.table, key)
        if data is None:
            return None
        return self.decode(model, data)

    def save_instance(self, model: "Model", instance: Record) -> str:
        """Write ``instance`` at its key. Returns the storage key."""
        key = self.key_of(instance)
        model.store.put(self.table, key, self.encode(instance))
        return key

    def delete_instance(self, model: "Model", instance: Record) -> bool:
        return model.store.delete(self.table, self.key_of(instance))

    def delete_key(self, model: "Model", key_params: Mapping[str, Any]) -> bool:
        return model.store.delete(self.table, self.key_for(key_params))

    def iter_instances(self, model: "Model") -> Iterator[Record]:
        """Every stored instance of the record type, ordered by storage key."""
        for _key, data in model.store.scan(self.table):
            yield self.decode(model, data)


@lru_cache(maxsize=None)
def schema_for(record_type: type[Record]) -> RecordSchema:
    """Return the cached schema of ``record_type``, building it on first use."""
    schema = RecordSchema(record_type)
    log.debug(
        "Schema registered",
        extra={"table": schema.table, "key_fields": list(schema.key_names)},
    )
    return schema


__all__ = ["Attribute", "RecordSchema", "encode_key", "schema_for"]
