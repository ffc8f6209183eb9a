"""Equality conditions and document identities used by boolean queries.

A query is a list of ``OrCondition`` groups. Each group is an AND-group of
``AndCondition`` equality pairs; the query matches the union over groups of
the intersection over each group's pairs.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

import tantivy


@dataclass(frozen=True)
class AndCondition:
    """One ``field_name = field_value`` equality pair.

    The value is kept as a string and parsed against the field's type when
    the query runs.
    """

    field_name: str
    field_value: str

    def __post_init__(self) -> None:
        if not isinstance(self.field_value, str):
            object.__setattr__(self, "field_value", str(self.field_value))

    def __str__(self) -> str:
        return f"{self.field_name} = {self.field_value}"


@dataclass(frozen=True)
class OrCondition:
    """An AND-group; a list of these forms an OR query."""

    conditions: tuple[AndCondition, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.conditions, tuple):
            object.__setattr__(self, "conditions", tuple(self.conditions))

    def __str__(self) -> str:
        return " AND ".join(str(condition) for condition in self.conditions)

    def __iter__(self) -> Iterator[AndCondition]:
        return iter(self.conditions)

    def __len__(self) -> int:
        return len(self.conditions)

    @classmethod
    def from_pair(cls, field_name: str, field_value: Any) -> OrCondition:
        return cls((AndCondition(field_name, str(field_value)),))

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, Any]]) -> OrCondition:
        return cls(tuple(AndCondition(name, str(value)) for name, value in pairs))


@dataclass(frozen=True, order=True)
class DocumentIdentity:
    """Address of one stored document within a searcher snapshot.

    Only meaningful for the searcher that produced it; never persisted.
    """

    segment_ord: int
    doc: int
    address: tantivy.DocAddress | None = field(default=None, compare=False, repr=False)

    @classmethod
    def from_address(cls, address: tantivy.DocAddress) -> DocumentIdentity:
        return cls(address.segment_ord, address.doc, address)

    def __str__(self) -> str:
        return f"SegmentLocalId = {self.segment_ord}, DocId = {self.doc}"
