"""Unit tests for schema inference and the schema model."""

from dataclasses import dataclass

from pydantic import BaseModel, NonNegativeInt
import pytest

from json_surf.errors import SchemaError, SchemaErrorKind
from json_surf.schema import (
    BytesField,
    CollectionSchema,
    FieldType,
    FloatField,
    NumericOptions,
    SchemaField,
    SignedField,
    TextField,
    TextOptions,
    UnsignedField,
    as_mapping,
    infer_field,
    infer_schema,
)


class Giant(BaseModel):
    a: str
    b: bool
    c: NonNegativeInt
    d: int
    e: float
    f: bytes


@dataclass
class Point:
    x: float
    y: float
    label: str


class TestInferSchema:
    def test_maps_each_value_kind(self):
        schema = infer_schema({"name": "John", "active": True, "age": 20, "score": 1.5, "blob": b"\x00"})

        assert schema.mappings == {
            "name": FieldType.TEXT,
            "active": FieldType.TEXT,
            "age": FieldType.SIGNED_INT,
            "score": FieldType.FLOAT,
            "blob": FieldType.BYTES,
        }

    def test_preserves_key_order(self):
        schema = infer_schema({"z": "1", "a": "2", "m": "3"})

        assert schema.field_names == ["z", "a", "m"]

    def test_is_deterministic(self, user_sample):
        assert infer_schema(user_sample) == infer_schema(dict(user_sample))

    def test_pydantic_non_negative_bound_becomes_unsigned(self):
        schema = infer_schema(Giant(a="tag1", b=False, c=10, d=-3, e=1.0, f=b"abc"))

        assert schema["c"].field_type == FieldType.UNSIGNED_INT
        assert schema["d"].field_type == FieldType.SIGNED_INT
        assert schema.field_names == ["a", "b", "c", "d", "e", "f"]

    def test_dataclass_sample(self):
        schema = infer_schema(Point(x=1.0, y=2.0, label="origin"))

        assert schema.mappings == {"x": FieldType.FLOAT, "y": FieldType.FLOAT, "label": FieldType.TEXT}

    def test_empty_sample_gives_empty_schema(self):
        assert len(infer_schema({})) == 0

    @pytest.mark.parametrize("value", [{"nested": 1}, [1, 2], None, (1,)])
    def test_rejects_unsupported_values(self, value):
        with pytest.raises(SchemaError) as exc_info:
            infer_schema({"field": value})

        assert exc_info.value.kind == SchemaErrorKind.UNSUPPORTED_TYPE
        assert "field" in exc_info.value.reason

    def test_rejects_non_mapping_sample(self):
        with pytest.raises(SchemaError) as exc_info:
            infer_schema(["not", "a", "record"])

        assert exc_info.value.kind == SchemaErrorKind.NOT_FLAT

    def test_rejects_non_string_keys(self):
        with pytest.raises(SchemaError, match="keys were not string"):
            infer_schema({1: "one"})

    def test_options_override_matching_kind_only(self):
        schema = infer_schema(
            {"code": "AB-1", "age": 20},
            {"code": TextOptions(tokenizer="raw"), "age": TextOptions(tokenizer="raw")},
        )

        assert schema["code"].tokenizer == "raw"
        assert isinstance(schema["age"], SignedField)

    def test_numeric_options(self):
        schema = infer_schema({"age": 20}, {"age": NumericOptions(fast=True)})

        assert schema["age"].fast is True


class TestInferField:
    def test_bool_checked_before_int(self):
        assert isinstance(infer_field("flag", True), TextField)

    def test_unsigned_requires_non_negative_value(self):
        assert isinstance(infer_field("n", 5, unsigned=True), UnsignedField)
        assert isinstance(infer_field("n", -5, unsigned=True), SignedField)

    def test_bytearray_is_bytes(self):
        assert isinstance(infer_field("raw", bytearray(b"x")), BytesField)


class TestCollectionSchema:
    def test_lookup_helpers(self):
        schema = CollectionSchema(fields=(TextField("first"), SignedField("age"), BytesField("blob")))

        assert schema["first"].field_type == FieldType.TEXT
        assert "age" in schema
        assert "missing" not in schema
        assert schema.get("missing") is None
        assert len(schema) == 3
        assert [f.name for f in schema] == ["first", "age", "blob"]
        assert [f.name for f in schema.text_fields] == ["first"]

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            CollectionSchema(fields=(TextField("a"), SignedField("a")))

    def test_str_lists_fields(self):
        schema = CollectionSchema(fields=(TextField("first"), UnsignedField("count")))

        assert str(schema) == "Name: first Type: text\nName: count Type: u64\n"

    def test_dict_roundtrip(self):
        schema = CollectionSchema(
            fields=(
                TextField("code", tokenizer="raw"),
                UnsignedField("count", fast=True),
                SignedField("delta"),
                FloatField("ratio", stored=False),
                BytesField("blob"),
            )
        )

        assert CollectionSchema.from_dict(schema.to_dict()) == schema

    def test_from_dict_rejects_unknown_type(self):
        with pytest.raises(ValueError):
            SchemaField.from_dict({"name": "x", "type": "bad"})

    def test_text_lowercases_unless_raw(self):
        assert TextField("t").lowercases
        assert not TextField("t", tokenizer="raw").lowercases

    def test_to_tantivy_builds_schema(self):
        schema = CollectionSchema(fields=(TextField("first"), SignedField("age"), BytesField("blob")))

        assert schema.to_tantivy() is not None


class TestAsMapping:
    def test_dataclass(self):
        assert as_mapping(Point(x=1.0, y=2.0, label="p")) == {"x": 1.0, "y": 2.0, "label": "p"}

    def test_mapping_copy(self):
        source = {"a": 1}
        result = as_mapping(source)
        result["b"] = 2

        assert source == {"a": 1}
