"""Collection registry: the builder consumed by ``CollectionManager.open``."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

from json_surf.errors import SchemaError, SchemaErrorKind
from json_surf.schema import CollectionSchema, FieldOptions, infer_schema


class CollectionRegistry:
    """Accumulates named collections, their schemas and the index home.

    The registry is sealed when a manager is opened from it; further
    mutation raises ``RuntimeError``.
    """

    def __init__(self, home: str | Path | None = None) -> None:
        self._home = str(home) if home is not None else None
        self._schemas: dict[str, CollectionSchema] = {}
        self._sealed = False

    def __str__(self) -> str:
        lines = []
        for name, schema in self._schemas.items():
            location = Path(self._home or "<default home>") / name
            lines.append(f"Index: {name} Location: {location}\n{schema}")
        return "\n".join(lines)

    def __contains__(self, name: object) -> bool:
        return name in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)

    @property
    def home(self) -> str | None:
        return self._home

    @property
    def schemas(self) -> Mapping[str, CollectionSchema]:
        return MappingProxyType(self._schemas)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def set_home(self, home: str | Path) -> None:
        """Set the directory holding the collections' indexes."""
        self._ensure_mutable()
        self._home = str(home)

    def add_schema(self, name: str, schema: CollectionSchema) -> None:
        """Register a collection with an explicit schema, replacing any previous one."""
        self._ensure_mutable()
        if not name:
            msg = "Collection name must not be empty"
            raise ValueError(msg)
        if len(schema) == 0:
            raise SchemaError(SchemaErrorKind.EMPTY, f"Collection {name} has no fields")
        self._schemas[name] = schema

    def add_record(self, name: str, sample: Any, options: Mapping[str, FieldOptions] | None = None) -> CollectionSchema:
        """Register a collection whose schema is inferred from ``sample``."""
        schema = infer_schema(sample, options)
        self.add_schema(name, schema)
        return schema

    def seal(self) -> None:
        self._sealed = True

    def _ensure_mutable(self) -> None:
        if self._sealed:
            msg = "Registry was already consumed by a collection manager"
            raise RuntimeError(msg)
