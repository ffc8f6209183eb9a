"""Filesystem and tantivy resource helpers.

Every failure raised by ``tantivy`` or the filesystem is converted to
``StorageError`` here, so the manager only deals with json-surf errors.

Each index directory also holds ``surf_schema.json``, the collection schema
the index was created with. Reopening a collection checks the registered
schema against it.
"""

from __future__ import annotations

import logging
from pathlib import Path

import orjson
import tantivy

from json_surf.errors import StorageError
from json_surf.schema import CollectionSchema


logger = logging.getLogger(__name__)

DEFAULT_HOME = "indexes"
SCHEMA_FILE = "surf_schema.json"


def resolve_home(home: str | Path | None = None) -> Path:
    """Return the index home directory, creating it recursively if missing."""
    path = Path(home) if home is not None else Path(DEFAULT_HOME)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise StorageError("Unable to create index dir", str(exc)) from exc
    return path


def resolve_index_path(name: str, home: str | Path | None = None) -> Path:
    """Return ``home/name`` for a collection, creating ``home`` if needed."""
    return resolve_home(home) / name


def open_index(path: Path, schema: CollectionSchema | None = None) -> tantivy.Index:
    """Open the index stored at ``path`` or create it from ``schema``.

    An existing index keeps the schema it was created with; ``schema`` is only
    used when the directory holds no index yet.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise StorageError("Unable to create index dir", str(exc)) from exc

    location = str(path)
    try:
        if tantivy.Index.exists(location):
            logger.debug("Opening existing index at %s", location)
            return tantivy.Index.open(location)
        if schema is None:
            raise StorageError("Unable to create index", "Schema is required for new index")
        logger.info("Creating index at %s with %d fields", location, len(schema))
        return tantivy.Index(schema.to_tantivy(), path=location)
    except (ValueError, OSError) as exc:
        raise StorageError("Unable to open Index", str(exc)) from exc


def load_schema(path: Path) -> CollectionSchema | None:
    """Read the schema recorded for the index at ``path``, or None when there is none."""
    try:
        data = orjson.loads((path / SCHEMA_FILE).read_bytes())
    except FileNotFoundError:
        return None
    except (OSError, orjson.JSONDecodeError) as exc:
        raise StorageError("Unable to read index schema", str(exc)) from exc

    try:
        return CollectionSchema.from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise StorageError("Unable to read index schema", f"{path / SCHEMA_FILE}: {exc!r}") from exc


def save_schema(path: Path, schema: CollectionSchema) -> None:
    try:
        (path / SCHEMA_FILE).write_bytes(orjson.dumps(schema.to_dict(), option=orjson.OPT_INDENT_2))
    except OSError as exc:
        raise StorageError("Unable to write index schema", str(exc)) from exc


def _schema_changes(stored: CollectionSchema, registered: CollectionSchema) -> list[str]:
    changes = []
    for name in dict.fromkeys([*stored.field_names, *registered.field_names]):
        before, after = stored.get(name), registered.get(name)
        before_type = before.field_type.value if before else "missing"
        after_type = after.field_type.value if after else "missing"
        if before_type != after_type:
            changes.append(f"{name} is {before_type} on disk, {after_type} registered")
    return changes


def open_collection(path: Path, schema: CollectionSchema) -> tuple[tantivy.Index, CollectionSchema]:
    """Open or create a collection's index and return it with its stored schema.

    A new index records ``schema`` beside its segments. An existing index
    must have been created with the same field names and types; its recorded
    schema, options included, is the one returned.

    Raises:
        StorageError: If the index cannot be opened or its schema differs.
    """
    index = open_index(path, schema)
    stored = load_schema(path)
    if stored is None:
        save_schema(path, schema)
        return index, schema

    changes = _schema_changes(stored, schema)
    if changes:
        raise StorageError("Index schema mismatch", "; ".join(changes))
    return index, stored


def open_index_writer(index: tantivy.Index, heap_size: int, num_threads: int = 1) -> tantivy.IndexWriter:
    """Open a writer bound to a memory budget.

    tantivy allows a single writer per index directory; a second one fails
    with a lock error instead of blocking.
    """
    try:
        return index.writer(heap_size=heap_size, num_threads=num_threads)
    except (ValueError, OSError) as exc:
        raise StorageError("Unable to create index writer", str(exc)) from exc


def open_index_reader(index: tantivy.Index, reload_policy: str = "commit") -> None:
    """Configure the index reader so searchers follow commits."""
    try:
        index.config_reader(reload_policy=reload_policy, num_warmers=0)
    except (ValueError, OSError) as exc:
        raise StorageError("Unable to create index reader", str(exc)) from exc
