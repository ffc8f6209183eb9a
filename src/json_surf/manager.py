"""Collection lifecycle: index handles, lazy writers and readers, and the public API.

``CollectionManager.open`` turns a sealed ``CollectionRegistry`` into one
``CollectionHandle`` per collection. Writers and readers are created on
first use and cached on the handle. Every mutating call commits before it
returns, and the handle reloads the index after the commit so the next read
on the same manager sees the change.

Example:
    registry = CollectionRegistry(home="indexes")
    registry.add_record("users", {"first": "John", "last": "Doe", "age": 20})

    with CollectionManager.open(registry) as manager:
        manager.insert_one("users", {"first": "Jane", "last": "Doe", "age": 18})
        people = manager.read_records_by_field("users", "last", "doe")
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any

import tantivy

from json_surf.bridge import materialize, to_native
from json_surf.conditions import OrCondition
from json_surf.config import Settings, get_settings
from json_surf.errors import NotFoundError, StorageError, SurfError
from json_surf.observability.logging import configure_logging
from json_surf.observability.metrics import (
    DELETE_REQUESTS,
    DOCUMENTS_WRITTEN,
    ERROR_COUNT,
    SEARCH_LATENCY,
    track_latency,
)
from json_surf.observability.tracing import create_span
from json_surf.query import QueryEngine, Term
from json_surf.registry import CollectionRegistry
from json_surf.schema import CollectionSchema
from json_surf.storage import open_collection, open_index_reader, open_index_writer, resolve_home


logger = logging.getLogger(__name__)


@dataclass
class CollectionHandle:
    """Open index of one collection plus its lazily created writer and reader."""

    name: str
    path: Path
    index: tantivy.Index
    schema: CollectionSchema
    writer: tantivy.IndexWriter | None = field(default=None, repr=False)
    reader_ready: bool = False

    def acquire_writer(self, settings: Settings) -> tantivy.IndexWriter:
        if self.writer is None:
            logger.debug("Opening writer for %s", self.name)
            self.writer = open_index_writer(self.index, settings.writer_heap_size, settings.writer_threads)
        return self.writer

    def acquire_reader(self, settings: Settings) -> None:
        if not self.reader_ready:
            open_index_reader(self.index, settings.reload_policy)
            self.reader_ready = True

    def searcher(self) -> tantivy.Searcher:
        return self.index.searcher()

    def commit(self) -> None:
        """Commit pending writer operations and make them visible to searchers."""
        if self.writer is None:
            return
        try:
            self.writer.commit()
            self.index.reload()
        except (ValueError, OSError) as exc:
            raise StorageError("Unable to commit", str(exc)) from exc

    def close(self) -> None:
        """Wait for background merges and release the writer lock."""
        if self.writer is None:
            return
        writer, self.writer = self.writer, None
        try:
            writer.wait_merging_threads()
        except (ValueError, OSError) as exc:
            logger.warning("Failed to finish merges for %s: %s", self.name, exc)


class CollectionManager:
    """Owns every open collection of one registry.

    Not thread-safe: callers serialize access. A second manager opened on
    the same home can read freely but fails with ``StorageError`` when it
    tries to write while the first one still holds the writer.
    """

    def __init__(
        self,
        home: Path,
        handles: dict[str, CollectionHandle],
        failures: dict[str, StorageError],
        settings: Settings,
    ) -> None:
        self._home = home
        self._handles = handles
        self._failures = failures
        self.settings = settings
        self.engine = QueryEngine(settings)

    @classmethod
    def open(cls, registry: CollectionRegistry, settings: Settings | None = None) -> CollectionManager:
        """Open or create the index of every registered collection.

        A collection whose index cannot be opened, or whose stored schema
        differs from the registered one, is logged and recorded in
        ``failures``; the remaining collections still open. With
        ``settings.setup_logging`` the root logger is configured first.

        Raises:
            StorageError: If the home directory cannot be created.
        """
        settings = settings or get_settings()
        if settings.setup_logging:
            configure_logging(settings.log_level, json_output=settings.json_logs)
        registry.seal()
        home = resolve_home(registry.home or settings.home)

        handles: dict[str, CollectionHandle] = {}
        failures: dict[str, StorageError] = {}
        for name, schema in registry.schemas.items():
            path = home / name
            try:
                index, schema = open_collection(path, schema)
            except StorageError as exc:
                logger.error("Failed to open collection %s at %s: %s", name, path, exc)
                ERROR_COUNT.labels(collection=name, error_type=type(exc).__name__).inc()
                failures[name] = exc
                continue
            handles[name] = CollectionHandle(name, path, index, schema)

        logger.info("Opened %d collections under %s (%d failed)", len(handles), home, len(failures))
        return cls(home, handles, failures, settings)

    def __enter__(self) -> CollectionManager:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # Introspection

    @property
    def home(self) -> Path:
        return self._home

    @property
    def names(self) -> list[str]:
        return sorted([*self._handles, *self._failures])

    @property
    def failures(self) -> Mapping[str, StorageError]:
        return MappingProxyType(self._failures)

    def which_path(self, name: str) -> Path | None:
        """Directory of a collection's index, or None when it is not registered."""
        if name in self._handles:
            return self._handles[name].path
        if name in self._failures:
            return self._home / name
        return None

    def resolve_schema(self, name: str) -> CollectionSchema | None:
        handle = self._handles.get(name)
        return handle.schema if handle else None

    def resolve_index(self, name: str) -> tantivy.Index | None:
        handle = self._handles.get(name)
        return handle.index if handle else None

    def close(self) -> None:
        for handle in self._handles.values():
            handle.close()
        logger.debug("Closed collections under %s", self._home)

    def _handle(self, name: str) -> CollectionHandle | None:
        if name in self._failures:
            raise self._failures[name]
        return self._handles.get(name)

    def _require(self, name: str) -> CollectionHandle:
        handle = self._handle(name)
        if handle is None:
            raise NotFoundError(name)
        return handle

    # Writes

    def insert_one(self, name: str, record: Any) -> None:
        """Insert a single record and commit."""
        self.insert_many(name, [record])

    def insert_many(self, name: str, records: Iterable[Any]) -> None:
        """Insert records and commit once.

        Inserting into an unregistered collection does nothing. When a record
        fails to convert, the records added before it stay queued on the
        writer and are committed by the next successful write.
        """
        handle = self._handle(name)
        if handle is None:
            logger.warning("Ignoring insert into unregistered collection %s", name)
            return

        with create_span("json_surf.insert", attributes={"collection": name}):
            try:
                writer = handle.acquire_writer(self.settings)
                count = 0
                for record in records:
                    writer.add_document(to_native(record, handle.schema))
                    count += 1
                handle.commit()
            except (ValueError, OSError) as exc:
                ERROR_COUNT.labels(collection=name, error_type="StorageError").inc()
                raise StorageError("Unable to add document", str(exc)) from exc
            except SurfError as exc:
                ERROR_COUNT.labels(collection=name, error_type=type(exc).__name__).inc()
                raise
        DOCUMENTS_WRITTEN.labels(collection=name).inc(count)
        logger.debug("Committed %d documents to %s", count, name)

    def _delete_terms(self, handle: CollectionHandle, terms: Sequence[Term], kind: str) -> None:
        with create_span("json_surf.delete", attributes={"collection": handle.name, "delete.kind": kind}):
            try:
                writer = handle.acquire_writer(self.settings)
                for term in terms:
                    writer.delete_documents_by_term(term.field_name, term.value)
                handle.commit()
            except (ValueError, OSError) as exc:
                ERROR_COUNT.labels(collection=handle.name, error_type="StorageError").inc()
                raise StorageError("Unable to delete documents", str(exc)) from exc
            except SurfError as exc:
                ERROR_COUNT.labels(collection=handle.name, error_type=type(exc).__name__).inc()
                raise
        DELETE_REQUESTS.labels(collection=handle.name, kind=kind).inc()

    def delete_by_field(self, name: str, field_name: str, value: Any) -> None:
        """Delete every document whose ``field_name`` equals ``value``."""
        handle = self._require(name)
        term = self.engine.build_term(handle.schema, field_name, value)
        self._delete_terms(handle, [term], "field")
        logger.info("Deleted documents from %s where %s = %s", name, field_name, value)

    def delete_by_text(self, name: str, value: Any) -> None:
        """Delete every document in which any text field holds the token ``value``."""
        handle = self._require(name)
        terms = self.engine.build_text_terms(handle.schema, value)
        self._delete_terms(handle, terms, "text")
        logger.info("Deleted documents from %s matching text %s", name, value)

    # Reads

    def read_json(
        self, name: str, query: str, limit: int | None = None, min_score: float | None = None
    ) -> list[str] | None:
        """Free-text search over the text fields; JSON strings, or None for an unknown collection."""
        handle = self._handle(name)
        if handle is None:
            return None
        handle.acquire_reader(self.settings)
        with create_span("json_surf.search", attributes={"collection": name, "query": query}):
            with track_latency(SEARCH_LATENCY, collection=name):
                return self.engine.search_text(handle, query, limit, min_score)

    def read_records(
        self,
        name: str,
        query: str,
        limit: int | None = None,
        min_score: float | None = None,
        model: Any = None,
    ) -> list[Any] | None:
        """Free-text search returning records validated into ``model``."""
        payloads = self.read_json(name, query, limit, min_score)
        if payloads is None:
            return None
        schema = self._handles[name].schema
        return [materialize(payload, schema, model) for payload in payloads]

    def read_all_records(self, name: str, query: str, model: Any = None) -> list[Any] | None:
        """Free-text search over every document of the collection."""
        handle = self._handle(name)
        if handle is None:
            return None
        return self.read_records(name, query, limit=self._all_limit(handle), model=model)

    def read_records_by_field(
        self,
        name: str,
        field_name: str,
        value: Any,
        limit: int | None = None,
        min_score: float | None = None,
        model: Any = None,
    ) -> list[Any]:
        """Records whose ``field_name`` equals ``value``."""
        return self.select(name, [OrCondition.from_pair(field_name, value)], limit, min_score, model)

    def read_all_records_by_field(self, name: str, field_name: str, value: Any, model: Any = None) -> list[Any]:
        """Every record whose ``field_name`` equals ``value``, with no score cutoff."""
        handle = self._require(name)
        return self.read_records_by_field(name, field_name, value, self._all_limit(handle), 0.0, model)

    def select(
        self,
        name: str,
        conditions: Sequence[OrCondition],
        limit: int | None = None,
        min_score: float | None = None,
        model: Any = None,
    ) -> list[Any]:
        """Evaluate a boolean AND/OR condition query.

        Raises:
            NotFoundError: If the collection is not registered.
            QueryError: For unknown fields, unparseable values or bytes fields.
        """
        handle = self._require(name)
        handle.acquire_reader(self.settings)
        with create_span("json_surf.select", attributes={"collection": name, "groups": len(conditions)}):
            try:
                with track_latency(SEARCH_LATENCY, collection=name):
                    return self.engine.evaluate(handle, conditions, limit, min_score, model)
            except SurfError as exc:
                ERROR_COUNT.labels(collection=name, error_type=type(exc).__name__).inc()
                raise

    def _all_limit(self, handle: CollectionHandle) -> int:
        handle.acquire_reader(self.settings)
        return max(handle.searcher().num_docs, 1)


class Surf:
    """Convenience facade over a manager with the historical ``apply``/``select`` API."""

    def __init__(self, manager: CollectionManager) -> None:
        self.manager = manager

    @classmethod
    def open(cls, registry: CollectionRegistry, settings: Settings | None = None) -> Surf:
        return cls(CollectionManager.open(registry, settings))

    def __getattr__(self, item: str) -> Any:
        return getattr(self.manager, item)

    def __enter__(self) -> Surf:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.manager.close()

    def apply(
        self,
        name: str,
        conditions: Sequence[OrCondition],
        limit: int | None = None,
        score: float | None = None,
        model: Any = None,
    ) -> list[Any]:
        return self.manager.select(name, conditions, limit, score, model)

    def select(self, name: str, conditions: Sequence[OrCondition], model: Any = None) -> list[Any]:
        """Condition query with a wide candidate cap and no score cutoff."""
        return self.apply(name, conditions, self.manager.settings.select_limit, 0.0, model)
