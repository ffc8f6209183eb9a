"""
Schema model and schema inference for flat records.

A collection schema is derived from one representative record. Each
top-level value is mapped onto a field kind:

- ``str`` and ``bool``: TextField (tokenized, stored)
- ``int``: SignedField, or UnsignedField when the record is a pydantic model
  whose field declares a non-negative bound (``NonNegativeInt``, ``conint(ge=0)``)
- ``float``: FloatField
- ``bytes``: BytesField (stored only, never searchable)

Nested mappings, sequences, ``None`` and any other value kind are rejected.
Field order follows the order in which keys appear in the record, which
mappings, pydantic models and dataclasses all preserve.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
import dataclasses
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any, Literal

from pydantic import BaseModel
import tantivy

from json_surf.errors import SchemaError, SchemaErrorKind


logger = logging.getLogger(__name__)

IndexOption = Literal["basic", "freq", "position"]


class FieldType(str, Enum):
    """Semantic field kinds understood by json-surf."""

    UNSIGNED_INT = "u64"
    SIGNED_INT = "i64"
    FLOAT = "f64"
    TEXT = "text"
    BYTES = "bytes"


@dataclass(frozen=True)
class TextOptions:
    """Storage and indexing options for text fields.

    Args:
        stored: Keep the raw value so it can be returned (default: True)
        tokenizer: tantivy tokenizer name, ``raw`` for exact matching (default: "default")
        index_option: Postings detail recorded for the field (default: "position")
    """

    stored: bool = True
    tokenizer: str = "default"
    index_option: IndexOption = "position"


@dataclass(frozen=True)
class NumericOptions:
    """Storage and indexing options for numeric fields."""

    stored: bool = True
    indexed: bool = True
    fast: bool = False


FieldOptions = TextOptions | NumericOptions


@dataclass(frozen=True)
class SchemaField(ABC):
    """Base class for all schema fields."""

    name: str
    stored: bool = True

    @property
    @abstractmethod
    def field_type(self) -> FieldType:
        """Return the field type."""

    @abstractmethod
    def add_to(self, builder: tantivy.SchemaBuilder) -> None:
        """Declare this field on a tantivy schema builder."""

    def to_dict(self) -> dict[str, Any]:
        """Serialize field definition to dict."""
        return {"name": self.name, "type": self.field_type.value, "stored": self.stored}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SchemaField:
        """Deserialize field definition from dict."""
        field_type = FieldType(data["type"])
        name = data["name"]
        stored = data.get("stored", True)

        if field_type == FieldType.TEXT:
            return TextField(
                name,
                stored=stored,
                tokenizer=data.get("tokenizer", "default"),
                index_option=data.get("index_option", "position"),
            )
        if field_type == FieldType.BYTES:
            return BytesField(name)
        numeric = {"stored": stored, "indexed": data.get("indexed", True), "fast": data.get("fast", False)}
        if field_type == FieldType.UNSIGNED_INT:
            return UnsignedField(name, **numeric)
        if field_type == FieldType.SIGNED_INT:
            return SignedField(name, **numeric)
        return FloatField(name, **numeric)


@dataclass(frozen=True)
class TextField(SchemaField):
    """
    Tokenized text field.

    Strings and booleans land here. Term conditions on a text field match a
    single token, so with the default tokenizer values are compared
    lower-cased; use ``tokenizer="raw"`` for case-sensitive exact values.
    """

    tokenizer: str = "default"
    index_option: IndexOption = "position"

    @property
    def field_type(self) -> FieldType:
        return FieldType.TEXT

    @property
    def lowercases(self) -> bool:
        return self.tokenizer != "raw"

    def add_to(self, builder: tantivy.SchemaBuilder) -> None:
        builder.add_text_field(
            self.name,
            stored=self.stored,
            tokenizer_name=self.tokenizer,
            index_option=self.index_option,
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["tokenizer"] = self.tokenizer
        data["index_option"] = self.index_option
        return data


@dataclass(frozen=True)
class NumericField(SchemaField, ABC):
    """Shared options of the three numeric field kinds."""

    indexed: bool = True
    fast: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["indexed"] = self.indexed
        data["fast"] = self.fast
        return data


@dataclass(frozen=True)
class UnsignedField(NumericField):
    @property
    def field_type(self) -> FieldType:
        return FieldType.UNSIGNED_INT

    def add_to(self, builder: tantivy.SchemaBuilder) -> None:
        builder.add_unsigned_field(self.name, stored=self.stored, indexed=self.indexed, fast=self.fast)


@dataclass(frozen=True)
class SignedField(NumericField):
    @property
    def field_type(self) -> FieldType:
        return FieldType.SIGNED_INT

    def add_to(self, builder: tantivy.SchemaBuilder) -> None:
        builder.add_integer_field(self.name, stored=self.stored, indexed=self.indexed, fast=self.fast)


@dataclass(frozen=True)
class FloatField(NumericField):
    @property
    def field_type(self) -> FieldType:
        return FieldType.FLOAT

    def add_to(self, builder: tantivy.SchemaBuilder) -> None:
        builder.add_float_field(self.name, stored=self.stored, indexed=self.indexed, fast=self.fast)


@dataclass(frozen=True)
class BytesField(SchemaField):
    """Stored-only byte blob. Never a search or condition target."""

    stored: bool = field(default=True, init=False)

    @property
    def field_type(self) -> FieldType:
        return FieldType.BYTES

    def add_to(self, builder: tantivy.SchemaBuilder) -> None:
        builder.add_bytes_field(self.name, stored=True)


@dataclass(frozen=True)
class CollectionSchema:
    """
    Ordered field list of one collection.

    Created once at registration time and shared, read-only, by the
    collection manager and the query engine.

    Example:
        schema = CollectionSchema(
            fields=(
                TextField("first"),
                TextField("last"),
                SignedField("age"),
            )
        )
    """

    fields: tuple[SchemaField, ...]
    _field_map: dict[str, SchemaField] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        field_map = {f.name: f for f in self.fields}
        if len(field_map) != len(self.fields):
            msg = "Duplicate field names in schema"
            raise ValueError(msg)
        object.__setattr__(self, "_field_map", field_map)

    def __getitem__(self, name: str) -> SchemaField:
        """Get field by name."""
        return self._field_map[name]

    def __contains__(self, name: object) -> bool:
        return name in self._field_map

    def __iter__(self) -> Iterator[SchemaField]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __str__(self) -> str:
        return "".join(f"Name: {f.name} Type: {f.field_type.value}\n" for f in self.fields)

    def get(self, name: str) -> SchemaField | None:
        return self._field_map.get(name)

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def mappings(self) -> dict[str, FieldType]:
        """Field name to field type, in declaration order."""
        return {f.name: f.field_type for f in self.fields}

    @property
    def text_fields(self) -> list[TextField]:
        return [f for f in self.fields if isinstance(f, TextField)]

    def to_tantivy(self) -> tantivy.Schema:
        builder = tantivy.SchemaBuilder()
        for schema_field in self.fields:
            schema_field.add_to(builder)
        return builder.build()

    def to_dict(self) -> dict[str, Any]:
        return {"fields": [f.to_dict() for f in self.fields]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CollectionSchema:
        return cls(fields=tuple(SchemaField.from_dict(f) for f in data["fields"]))


def as_mapping(record: Any) -> dict[str, Any]:
    """Flatten a record into an ordered ``{field name: value}`` dict.

    Accepts mappings, pydantic models and dataclass instances. Raises
    SchemaError(NOT_FLAT) for anything else or for non-string keys.
    """
    if isinstance(record, BaseModel):
        data = record.model_dump()
    elif dataclasses.is_dataclass(record) and not isinstance(record, type):
        data = dataclasses.asdict(record)
    elif isinstance(record, Mapping):
        data = dict(record)
    else:
        raise SchemaError(SchemaErrorKind.NOT_FLAT, f"Expected a flat mapping, got {type(record).__name__}")

    for key in data:
        if not isinstance(key, str):
            raise SchemaError(SchemaErrorKind.NOT_FLAT, f"keys were not string: {key!r}")
    return data


def _unsigned_fields(sample: Any) -> set[str]:
    """Names of integer fields a pydantic model constrains to non-negative values."""
    if not isinstance(sample, BaseModel):
        return set()

    unsigned = set()
    for name, info in type(sample).model_fields.items():
        for constraint in info.metadata:
            ge = getattr(constraint, "ge", None)
            gt = getattr(constraint, "gt", None)
            if (ge is not None and ge >= 0) or (gt is not None and gt >= 0):
                unsigned.add(name)
                break
    return unsigned


def _text_options(name: str, override: FieldOptions | None) -> TextOptions:
    if isinstance(override, TextOptions):
        return override
    if override is not None:
        logger.debug("Ignoring %s for text field %s", type(override).__name__, name)
    return TextOptions()


def _numeric_options(name: str, override: FieldOptions | None) -> NumericOptions:
    if isinstance(override, NumericOptions):
        return override
    if override is not None:
        logger.debug("Ignoring %s for numeric field %s", type(override).__name__, name)
    return NumericOptions()


def infer_field(name: str, value: Any, *, unsigned: bool = False, options: FieldOptions | None = None) -> SchemaField:
    """Map one sample value onto a schema field."""
    # bool is an int subclass, so it must be checked first
    if isinstance(value, (bool, str)):
        text = _text_options(name, options)
        return TextField(name, stored=text.stored, tokenizer=text.tokenizer, index_option=text.index_option)
    if isinstance(value, int):
        numeric = _numeric_options(name, options)
        kind = UnsignedField if unsigned and value >= 0 else SignedField
        return kind(name, stored=numeric.stored, indexed=numeric.indexed, fast=numeric.fast)
    if isinstance(value, float):
        numeric = _numeric_options(name, options)
        return FloatField(name, stored=numeric.stored, indexed=numeric.indexed, fast=numeric.fast)
    if isinstance(value, (bytes, bytearray)):
        return BytesField(name)
    raise SchemaError(
        SchemaErrorKind.UNSUPPORTED_TYPE,
        f"Unhandled value type for field {name}: {type(value).__name__}",
    )


def infer_schema(sample: Any, options: Mapping[str, FieldOptions] | None = None) -> CollectionSchema:
    """Infer a collection schema from one representative record.

    Args:
        sample: Mapping, pydantic model or dataclass instance with scalar values.
        options: Optional per-field overrides keyed by field name. An override
            of the wrong kind for the inferred field type is ignored.

    Returns:
        CollectionSchema with fields in the record's key order. An empty
        record yields an empty schema, which registries reject.

    Raises:
        SchemaError: If the record is not flat or holds an unsupported value.
    """
    values = as_mapping(sample)
    unsigned = _unsigned_fields(sample)
    overrides = options or {}

    fields = tuple(
        infer_field(name, value, unsigned=name in unsigned, options=overrides.get(name))
        for name, value in values.items()
    )
    return CollectionSchema(fields=fields)
