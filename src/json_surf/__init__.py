"""Store flat records in tantivy indexes and query them back by field or free text."""

from json_surf.conditions import AndCondition, DocumentIdentity, OrCondition
from json_surf.config import Settings, get_settings
from json_surf.errors import (
    NotFoundError,
    QueryError,
    SchemaError,
    SchemaErrorKind,
    SerializationError,
    StorageError,
    SurfError,
)
from json_surf.fuzzy import FuzzyConfig, FuzzyWord
from json_surf.manager import CollectionHandle, CollectionManager, Surf
from json_surf.query import QueryEngine, Term
from json_surf.registry import CollectionRegistry
from json_surf.schema import (
    BytesField,
    CollectionSchema,
    FieldType,
    FloatField,
    NumericOptions,
    SignedField,
    TextField,
    TextOptions,
    UnsignedField,
    infer_schema,
)


__version__ = "0.9.0"

__all__ = [
    "AndCondition",
    "BytesField",
    "CollectionHandle",
    "CollectionManager",
    "CollectionRegistry",
    "CollectionSchema",
    "DocumentIdentity",
    "FieldType",
    "FloatField",
    "FuzzyConfig",
    "FuzzyWord",
    "NotFoundError",
    "NumericOptions",
    "OrCondition",
    "QueryEngine",
    "QueryError",
    "SchemaError",
    "SchemaErrorKind",
    "SerializationError",
    "Settings",
    "SignedField",
    "StorageError",
    "Surf",
    "SurfError",
    "Term",
    "TextField",
    "TextOptions",
    "UnsignedField",
    "get_settings",
    "infer_schema",
]
