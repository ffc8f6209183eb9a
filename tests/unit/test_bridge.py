"""Unit tests for record <-> tantivy document conversion."""

from dataclasses import dataclass

import orjson
from pydantic import BaseModel
import pytest
import tantivy

from json_surf.bridge import from_native, materialize, to_native
from json_surf.errors import SerializationError
from json_surf.schema import (
    BytesField,
    CollectionSchema,
    FloatField,
    SignedField,
    TextField,
    UnsignedField,
)


SCHEMA = CollectionSchema(
    fields=(
        TextField("name"),
        TextField("active"),
        UnsignedField("count"),
        SignedField("delta"),
        FloatField("ratio"),
        BytesField("blob"),
    )
)


class Row(BaseModel):
    name: str
    active: bool
    count: int
    delta: int
    ratio: float
    blob: bytes


@dataclass
class Name:
    name: str


def _record() -> dict:
    return {"name": "John", "active": True, "count": 7, "delta": -3, "ratio": 0.5, "blob": b"\x00\xff"}


class TestToNative:
    def test_builds_document_with_typed_values(self):
        document = to_native(_record(), SCHEMA)
        stored = document.to_dict()

        assert stored["name"] == ["John"]
        assert stored["active"] == ["true"]
        assert stored["count"] == [7]
        assert stored["delta"] == [-3]
        assert stored["ratio"] == [0.5]
        assert stored["blob"] == [b"\x00\xff"]

    def test_accepts_pydantic_model(self):
        document = to_native(Row(**_record()), SCHEMA)

        assert document.to_dict()["count"] == [7]

    def test_int_allowed_for_float(self):
        document = to_native({"ratio": 2}, SCHEMA)

        assert document.to_dict()["ratio"] == [2.0]

    def test_unknown_field_rejected(self):
        with pytest.raises(SerializationError, match="not part of the schema"):
            to_native({"other": "x"}, SCHEMA)

    @pytest.mark.parametrize(
        ("field_name", "value"),
        [
            ("name", 10),
            ("count", "7"),
            ("count", 1.5),
            ("delta", True),
            ("ratio", "0.5"),
            ("blob", "bytes"),
        ],
    )
    def test_type_mismatch_rejected(self, field_name, value):
        with pytest.raises(SerializationError, match=f"Field {field_name} expects"):
            to_native({field_name: value}, SCHEMA)

    def test_negative_unsigned_rejected(self):
        with pytest.raises(SerializationError, match="non-negative"):
            to_native({"count": -1}, SCHEMA)

    def test_non_mapping_rejected(self):
        with pytest.raises(SerializationError, match="Unable to parse document"):
            to_native("John", SCHEMA)


class TestFromNative:
    def test_schema_order_and_base64_bytes(self):
        document = tantivy.Document()
        document.add_bytes("blob", b"\x00\xff")
        document.add_float("ratio", 0.5)
        document.add_text("name", "John")

        payload = from_native(document, SCHEMA)

        assert list(orjson.loads(payload)) == ["name", "ratio", "blob"]
        assert orjson.loads(payload)["blob"] == "AP8="

    def test_first_value_wins(self):
        document = tantivy.Document()
        document.add_text("name", "John")
        document.add_text("name", "Johnny")

        assert orjson.loads(from_native(document, SCHEMA)) == {"name": "John"}

    def test_missing_fields_left_out(self):
        payload = from_native(to_native({"delta": -3, "name": "John"}, SCHEMA), SCHEMA)

        assert payload == '{"name":"John","delta":-3}'
        assert materialize(payload, SCHEMA) == {"name": "John", "delta": -3}
        with pytest.raises(SerializationError, match="Unable to deserialize record into Row"):
            materialize(payload, SCHEMA, Row)


class TestMaterialize:
    def test_dict_by_default_with_bytes_restored(self):
        payload = from_native(to_native(_record(), SCHEMA), SCHEMA)

        assert materialize(payload, SCHEMA) == {
            "name": "John",
            "active": "true",
            "count": 7,
            "delta": -3,
            "ratio": 0.5,
            "blob": b"\x00\xff",
        }

    def test_pydantic_model_roundtrip(self):
        record = Row(**_record())

        restored = materialize(from_native(to_native(record, SCHEMA), SCHEMA), SCHEMA, Row)

        assert restored == record

    def test_dataclass_target(self):
        schema = CollectionSchema(fields=(TextField("name"),))

        assert materialize('{"name": "Jane"}', schema, Name) == Name(name="Jane")

    def test_validation_failure(self):
        schema = CollectionSchema(fields=(TextField("name"),))

        with pytest.raises(SerializationError, match="Unable to deserialize record into Row"):
            materialize('{"name": "Jane"}', schema, Row)

    def test_invalid_json(self):
        with pytest.raises(SerializationError, match="Unable to deserialize record"):
            materialize("{not json", SCHEMA)
