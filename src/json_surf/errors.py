"""Error hierarchy for json-surf.

Every error carries a short ``message`` describing the failed operation and a
``reason`` with the underlying cause. Failures coming from ``tantivy``, the
filesystem or pydantic are chained with ``raise ... from exc`` at the point
where they cross into this package.
"""

from __future__ import annotations

from enum import Enum


class SurfError(Exception):
    """Base error for all json-surf errors."""

    def __init__(self, message: str, reason: str = "") -> None:
        self.message = message
        self.reason = reason
        super().__init__(f"{message}: {reason}" if reason else message)


class SchemaErrorKind(str, Enum):
    """Why a sample record could not be turned into a schema."""

    NOT_FLAT = "not_flat"
    UNSUPPORTED_TYPE = "unsupported_type"
    EMPTY = "empty"


class SchemaError(SurfError):
    """Raised when a schema cannot be inferred or registered."""

    def __init__(self, kind: SchemaErrorKind, reason: str) -> None:
        self.kind = kind
        super().__init__("Unable to create schema", reason)


class StorageError(SurfError):
    """Raised when index directories, indexes, writers or readers cannot be opened."""


class QueryError(SurfError):
    """Raised for unknown fields, unparseable values and searches on bytes fields."""


class SerializationError(SurfError):
    """Raised when a record cannot be converted to or from a native document."""


class NotFoundError(SurfError):
    """Raised when an operation targets a collection that was never registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Invalid index operation for {name}", f"No schema found for index: {name}")
