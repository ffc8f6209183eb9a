"""Boolean term queries over one collection.

A query is a list of AND-groups (``OrCondition``). Every pair in a group is
turned into an exact term query; the group's hits are intersected pair by
pair and the groups are united. Matching documents are fetched once, in
document identity order, and converted through the bridge.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any

import tantivy

from json_surf.bridge import from_native, materialize
from json_surf.conditions import DocumentIdentity, OrCondition
from json_surf.config import Settings, get_settings
from json_surf.errors import QueryError
from json_surf.schema import CollectionSchema, FieldType


if TYPE_CHECKING:
    from json_surf.manager import CollectionHandle

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Term:
    """A typed exact-match value for one field."""

    field_name: str
    value: str | int | float
    field_type: FieldType

    def to_query(self, schema: tantivy.Schema) -> tantivy.Query:
        return tantivy.Query.term_query(schema, self.field_name, self.value, index_option="basic")


def _parse_value(schema_field: Any, raw: str) -> str | int | float:
    field_type = schema_field.field_type
    if field_type == FieldType.BYTES:
        raise QueryError("Cant search on bytes", f"Field {schema_field.name} stores bytes")
    if field_type == FieldType.TEXT:
        return raw.lower() if schema_field.lowercases else raw

    try:
        if field_type == FieldType.FLOAT:
            return float(raw)
        value = int(raw)
    except ValueError as exc:
        raise QueryError(f"Invalid search: {raw}", str(exc)) from exc

    if field_type == FieldType.UNSIGNED_INT and value < 0:
        raise QueryError(f"Invalid search: {raw}", f"Field {schema_field.name} holds unsigned values")
    return value


class QueryEngine:
    """Evaluates boolean term queries and parsed free-text queries."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def build_term(self, schema: CollectionSchema, field_name: str, value: Any) -> Term:
        """Parse ``value`` against the declared type of ``field_name``.

        Raises:
            QueryError: For an unknown field, an unparseable value or a bytes field.
        """
        schema_field = schema.get(field_name)
        if schema_field is None:
            raise QueryError("Unable to perform search", f"Missing field: {field_name}")
        return Term(field_name, _parse_value(schema_field, str(value)), schema_field.field_type)

    def build_text_terms(self, schema: CollectionSchema, value: Any) -> list[Term]:
        """One term per text field, all carrying the same value."""
        return [self.build_term(schema, text_field.name, value) for text_field in schema.text_fields]

    def _resolve_limit(self, limit: int | None) -> int:
        resolved = self.settings.default_limit if limit is None else limit
        if resolved < 1:
            msg = f"limit must be positive, got {resolved}"
            raise ValueError(msg)
        return resolved

    def _resolve_score(self, min_score: float | None) -> float:
        return self.settings.default_min_score if min_score is None else min_score

    def _term_hits(
        self,
        searcher: tantivy.Searcher,
        tantivy_schema: tantivy.Schema,
        term: Term,
        limit: int,
        cutoff: float,
    ) -> set[DocumentIdentity]:
        try:
            result = searcher.search(term.to_query(tantivy_schema), limit=limit)
        except ValueError as exc:
            raise QueryError("Error while term query", str(exc)) from exc
        return {DocumentIdentity.from_address(address) for score, address in result.hits if score >= cutoff}

    def match(
        self,
        handle: CollectionHandle,
        or_groups: Sequence[OrCondition],
        limit: int | None = None,
        min_score: float | None = None,
    ) -> tuple[tantivy.Searcher, list[DocumentIdentity]]:
        """Return the searcher used and the sorted identities matching ``or_groups``."""
        limit = self._resolve_limit(limit)
        cutoff = self._resolve_score(min_score)
        schema = handle.schema

        # Parse every condition first so a bad pair fails before any search runs
        groups = [[self.build_term(schema, c.field_name, c.field_value) for c in group] for group in or_groups]

        searcher = handle.searcher()
        tantivy_schema = handle.index.schema
        matched: set[DocumentIdentity] = set()
        for terms in groups:
            group_hits: set[DocumentIdentity] | None = None
            for term in terms:
                hits = self._term_hits(searcher, tantivy_schema, term, limit, cutoff)
                group_hits = hits if group_hits is None else group_hits & hits
                if not group_hits:
                    break
            if group_hits:
                matched |= group_hits
        return searcher, sorted(matched)

    def evaluate(
        self,
        handle: CollectionHandle,
        or_groups: Sequence[OrCondition],
        limit: int | None = None,
        min_score: float | None = None,
        model: Any = None,
    ) -> list[Any]:
        """Run ``or_groups`` against ``handle`` and materialize the matches.

        Args:
            handle: Open collection to search.
            or_groups: AND-groups united into one result set.
            limit: Candidate cap applied to every single term query
                (default: ``settings.default_limit``). Not a cap on the
                number of returned records.
            min_score: Hits scoring below this are dropped
                (default: ``settings.default_min_score``).
            model: Type to validate each record into; dicts when omitted.

        Returns:
            Deduplicated records in document identity order.
        """
        searcher, identities = self.match(handle, or_groups, limit, min_score)
        logger.debug("Conditions matched %d documents in %s", len(identities), handle.name)
        return [
            materialize(from_native(searcher.doc(identity.address), handle.schema), handle.schema, model)
            for identity in identities
        ]

    def search_text(
        self,
        handle: CollectionHandle,
        query: str,
        limit: int | None = None,
        min_score: float | None = None,
    ) -> list[str]:
        """Parse ``query`` over the collection's text fields and return JSON strings.

        Results keep the relevance order of the search. Without ``min_score``
        no hit is dropped.
        """
        limit = self._resolve_limit(limit)
        field_names = [f.name for f in handle.schema.text_fields]
        if not field_names:
            return []
        try:
            parsed = handle.index.parse_query(query, default_field_names=field_names)
        except ValueError as exc:
            raise QueryError("Unable to parse query", str(exc)) from exc

        searcher = handle.searcher()
        try:
            result = searcher.search(parsed, limit=limit)
        except ValueError as exc:
            raise QueryError("Unable to perform search", str(exc)) from exc
        return [
            from_native(searcher.doc(address), handle.schema)
            for score, address in result.hits
            if min_score is None or score >= min_score
        ]
