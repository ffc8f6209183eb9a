"""Conversion between caller records and tantivy documents.

Inbound records are checked field by field against the collection schema
and added to a ``tantivy.Document`` with the matching typed setter.

Outbound, tantivy hands back every stored field as a list of values. The
bridge keeps the first value per field, orders the fields as the schema
declares them, serializes that map to JSON and validates the JSON into the
caller's requested type through pydantic. Bytes travel through JSON as
base64 text and are decoded again before validation.
"""

from __future__ import annotations

import base64
from functools import lru_cache
from typing import Any

import orjson
from pydantic import TypeAdapter, ValidationError
import tantivy

from json_surf.errors import SchemaError, SerializationError
from json_surf.schema import CollectionSchema, FieldType, SchemaField, as_mapping


def _mismatch(schema_field: SchemaField, value: Any) -> SerializationError:
    return SerializationError(
        "Unable to parse document",
        f"Field {schema_field.name} expects {schema_field.field_type.value}, got {type(value).__name__}",
    )


def _add_value(document: tantivy.Document, schema_field: SchemaField, value: Any) -> None:
    name = schema_field.name
    field_type = schema_field.field_type

    if field_type == FieldType.TEXT:
        if isinstance(value, bool):
            document.add_text(name, "true" if value else "false")
        elif isinstance(value, str):
            document.add_text(name, value)
        else:
            raise _mismatch(schema_field, value)
    elif field_type == FieldType.BYTES:
        if not isinstance(value, (bytes, bytearray)):
            raise _mismatch(schema_field, value)
        document.add_bytes(name, bytes(value))
    else:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise _mismatch(schema_field, value)
        if field_type == FieldType.FLOAT:
            document.add_float(name, float(value))
        elif not isinstance(value, int):
            raise _mismatch(schema_field, value)
        elif field_type == FieldType.UNSIGNED_INT:
            if value < 0:
                raise SerializationError("Unable to parse document", f"Field {name} expects a non-negative value")
            document.add_unsigned(name, value)
        else:
            document.add_integer(name, value)


def to_native(record: Any, schema: CollectionSchema) -> tantivy.Document:
    """Convert a record into a tantivy document for ``schema``.

    Raises:
        SerializationError: If the record is not flat, names a field missing
            from the schema, or holds a value of the wrong type.
    """
    try:
        values = as_mapping(record)
    except SchemaError as exc:
        raise SerializationError("Unable to parse document", exc.reason) from exc

    document = tantivy.Document()
    for name, value in values.items():
        schema_field = schema.get(name)
        if schema_field is None:
            raise SerializationError("Unable to parse document", f"Field {name} is not part of the schema")
        try:
            _add_value(document, schema_field, value)
        except (OverflowError, TypeError, ValueError) as exc:
            raise SerializationError("Unable to parse document", f"Field {name}: {exc}") from exc
    return document


def _json_value(schema_field: SchemaField | None, value: Any) -> Any:
    is_bytes_field = schema_field is not None and schema_field.field_type == FieldType.BYTES
    if is_bytes_field or isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return value


def from_native(document: tantivy.Document, schema: CollectionSchema) -> str:
    """Serialize a stored document to a JSON object string in schema field order.

    Fields the record was inserted without have no stored value and are left
    out, so the JSON object can hold fewer keys than the schema has fields.
    """
    stored = document.to_dict()
    names = [name for name in schema.field_names if name in stored]
    names.extend(name for name in stored if name not in schema)

    ordered = {name: _json_value(schema.get(name), stored[name][0]) for name in names}

    try:
        return orjson.dumps(ordered).decode("utf-8")
    except TypeError as exc:
        raise SerializationError("Unable to serialize struct", str(exc)) from exc


@lru_cache(maxsize=128)
def _adapter(model: Any) -> TypeAdapter:
    return TypeAdapter(model)


def materialize(payload: str, schema: CollectionSchema, model: Any = None) -> Any:
    """Deserialize a JSON payload produced by ``from_native``.

    Args:
        payload: JSON object string.
        schema: Schema of the collection the payload came from.
        model: Target type (pydantic model, dataclass, TypedDict ...). A plain
            dict is returned when omitted.

    Raises:
        SerializationError: If the payload does not fit ``model``.
    """
    try:
        data = orjson.loads(payload)
    except orjson.JSONDecodeError as exc:
        raise SerializationError("Unable to deserialize record", str(exc)) from exc

    for schema_field in schema.fields:
        if schema_field.field_type == FieldType.BYTES and isinstance(data.get(schema_field.name), str):
            data[schema_field.name] = base64.b64decode(data[schema_field.name])

    if model is None:
        return data
    try:
        return _adapter(model).validate_python(data)
    except ValidationError as exc:
        target = getattr(model, "__name__", repr(model))
        raise SerializationError(f"Unable to deserialize record into {target}", str(exc)) from exc
