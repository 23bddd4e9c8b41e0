"""
Domain package for DustyDB.

Exports the record base class and the schema descriptors built from it.
Keep this package focused on record definitions, keys and serialization.
"""

from dustydb.domain.record import Record, record_type_for
from dustydb.domain.schema import Attribute, RecordSchema, encode_key, schema_for

__all__ = [
    "Attribute",
    "Record",
    "RecordSchema",
    "encode_key",
    "record_type_for",
    "schema_for",
]
