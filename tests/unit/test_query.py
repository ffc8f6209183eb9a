"""Unit tests for term building and boolean query evaluation."""

from pydantic import BaseModel
import pytest

from json_surf.bridge import to_native
from json_surf.conditions import OrCondition
from json_surf.config import Settings
from json_surf.errors import QueryError
from json_surf.manager import CollectionHandle
from json_surf.query import QueryEngine, Term
from json_surf.schema import (
    BytesField,
    CollectionSchema,
    FieldType,
    FloatField,
    SignedField,
    TextField,
    UnsignedField,
)
from json_surf.storage import open_index


class Person(BaseModel):
    first: str
    last: str
    age: int


SCHEMA = CollectionSchema(
    fields=(
        TextField("first"),
        TextField("last"),
        TextField("code", tokenizer="raw"),
        UnsignedField("count"),
        SignedField("age"),
        FloatField("ratio"),
        BytesField("blob"),
    )
)


@pytest.fixture
def engine(test_settings) -> QueryEngine:
    return QueryEngine(test_settings)


@pytest.fixture
def handle(tmp_path, test_settings):
    index = open_index(tmp_path / "people", SCHEMA)
    handle = CollectionHandle("people", tmp_path / "people", index, SCHEMA)
    writer = handle.acquire_writer(test_settings)
    rows = [
        ("John", "Doe", "AB", 1, 20, 0.5),
        ("Jane", "Doe", "ab", 2, 18, 0.25),
        ("John", "Smith", "CD", 3, 20, 0.5),
    ]
    for first, last, code, count, age, ratio in rows:
        record = {"first": first, "last": last, "code": code, "count": count, "age": age, "ratio": ratio}
        writer.add_document(to_native(record, SCHEMA))
    handle.commit()
    handle.acquire_reader(test_settings)
    yield handle
    handle.close()


class TestBuildTerm:
    def test_text_lowercased(self, engine):
        assert engine.build_term(SCHEMA, "first", "John") == Term("first", "john", FieldType.TEXT)

    def test_raw_text_kept(self, engine):
        assert engine.build_term(SCHEMA, "code", "AB").value == "AB"

    def test_numeric_parsing(self, engine):
        assert engine.build_term(SCHEMA, "count", "10").value == 10
        assert engine.build_term(SCHEMA, "age", "-10").value == -10
        assert engine.build_term(SCHEMA, "ratio", "0.5").value == 0.5

    def test_non_string_value_accepted(self, engine):
        assert engine.build_term(SCHEMA, "age", 20).value == 20

    def test_unknown_field(self, engine):
        with pytest.raises(QueryError, match="Missing field: nope"):
            engine.build_term(SCHEMA, "nope", "x")

    @pytest.mark.parametrize(
        ("field_name", "value"),
        [("count", "-1"), ("count", "ten"), ("age", "1.5"), ("ratio", "x")],
    )
    def test_invalid_values(self, engine, field_name, value):
        with pytest.raises(QueryError, match=f"Invalid search: {value}"):
            engine.build_term(SCHEMA, field_name, value)

    def test_bytes_rejected(self, engine):
        with pytest.raises(QueryError, match="Cant search on bytes"):
            engine.build_term(SCHEMA, "blob", "abc")

    def test_text_terms_one_per_text_field(self, engine):
        terms = engine.build_text_terms(SCHEMA, "Doe")

        assert [t.field_name for t in terms] == ["first", "last", "code"]
        assert [t.value for t in terms] == ["doe", "doe", "Doe"]


class TestEvaluate:
    def test_single_pair(self, engine, handle):
        records = engine.evaluate(handle, [OrCondition.from_pair("last", "doe")])

        assert sorted(r["first"] for r in records) == ["Jane", "John"]

    def test_and_group_intersects(self, engine, handle):
        records = engine.evaluate(handle, [OrCondition.from_pairs([("first", "john"), ("last", "doe")])])

        assert [(r["first"], r["last"]) for r in records] == [("John", "Doe")]

    def test_and_group_with_no_overlap_is_empty(self, engine, handle):
        assert engine.evaluate(handle, [OrCondition.from_pairs([("first", "jane"), ("last", "smith")])]) == []

    def test_or_groups_union_without_duplicates(self, engine, handle):
        records = engine.evaluate(
            handle,
            [OrCondition.from_pair("age", "20"), OrCondition.from_pair("first", "john")],
        )

        assert sorted((r["first"], r["last"]) for r in records) == [("John", "Doe"), ("John", "Smith")]

    def test_numeric_kinds(self, engine, handle):
        assert len(engine.evaluate(handle, [OrCondition.from_pair("count", "2")])) == 1
        assert len(engine.evaluate(handle, [OrCondition.from_pair("ratio", "0.5")])) == 2

    def test_raw_tokenizer_is_case_sensitive(self, engine, handle):
        records = engine.evaluate(handle, [OrCondition.from_pair("code", "ab")])

        assert [r["first"] for r in records] == ["Jane"]

    def test_model_validation(self, engine, handle):
        records = engine.evaluate(handle, [OrCondition.from_pair("first", "jane")], model=Person)

        assert records == [Person(first="Jane", last="Doe", age=18)]

    def test_min_score_above_all_hits(self, engine, handle):
        assert engine.evaluate(handle, [OrCondition.from_pair("last", "doe")], min_score=1_000.0) == []

    def test_limit_caps_candidates_per_term(self, engine, handle):
        assert len(engine.evaluate(handle, [OrCondition.from_pair("last", "doe")], limit=1)) == 1

    def test_invalid_limit(self, engine, handle):
        with pytest.raises(ValueError, match="limit must be positive"):
            engine.evaluate(handle, [OrCondition.from_pair("last", "doe")], limit=0)

    def test_bad_pair_fails_before_search(self, engine, handle):
        with pytest.raises(QueryError):
            engine.evaluate(handle, [OrCondition.from_pair("last", "doe"), OrCondition.from_pair("blob", "x")])

    def test_results_sorted_by_identity(self, engine, handle):
        _, identities = engine.match(handle, [OrCondition.from_pair("last", "doe")])

        assert identities == sorted(identities)


class TestSearchText:
    def test_parsed_query_returns_json(self, engine, handle):
        payloads = engine.search_text(handle, "smith")

        assert len(payloads) == 1
        assert '"last":"Smith"' in payloads[0]

    def test_unparseable_query(self, engine, handle):
        with pytest.raises(QueryError, match="Unable to parse query"):
            engine.search_text(handle, "first:(")

    def test_default_limit(self, handle):
        engine = QueryEngine(Settings(default_limit=1))

        assert len(engine.search_text(handle, "doe")) == 1
