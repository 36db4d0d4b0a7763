"""TinyDB-backed document store adapter.

Each collection maps to a TinyDB table; every document keeps its primary key
in an ``_id`` field. Primitives run in a worker thread under a store-wide lock,
which makes each find-and-modify call atomic within the process.
"""

from __future__ import annotations

import asyncio
import copy
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping, TypeVar

from tinydb import Query, TinyDB
from tinydb.storages import MemoryStorage
from tinydb.table import Document as TinyDocument
from tinydb.table import Table

from doc_repository.adapters.tinydb_query import (
    QueryLike,
    apply_update,
    compose_query,
    id_from_filter,
    project_document,
    sort_documents,
)
from doc_repository.core.exceptions import DuplicateKeyError, StoreError
from doc_repository.core.identifiers import RandomIdGenerator
from doc_repository.core.logging import get_logger
from doc_repository.core.ports import (
    Document,
    DocumentSessionPort,
    DocumentStorePort,
    FilterDocument,
    Projection,
    SortSpec,
)

logger = get_logger(__name__)

R = TypeVar("R")

_object_ids = RandomIdGenerator()


def _replace_with(replacement: Document) -> Callable[[dict[str, Any]], None]:
    def transform(document: dict[str, Any]) -> None:
        document.clear()
        document.update(copy.deepcopy(replacement))

    return transform


class TinyDBSession(DocumentSessionPort):
    """Collection session over a single TinyDB table."""

    def __init__(self, table: Table, lock: threading.Lock) -> None:
        self._table = table
        self._lock = lock

    @property
    def collection_name(self) -> str:
        return self._table.name

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        """Surface failures from TinyDB query evaluation and JSON storage as ``StoreError``."""
        try:
            yield
        except (OSError, TypeError, ValueError) as exc:
            raise StoreError(f"tinydb {self.collection_name}: {exc}") from exc

    def _first(self, query: QueryLike) -> TinyDocument | None:
        with self._translate_errors():
            return self._table.get(query)  # type: ignore[return-value]

    def _ensure_unique(self, key: Any) -> None:
        with self._translate_errors():
            taken = self._table.contains(Query()["_id"] == key)
        if taken:
            raise DuplicateKeyError(key, self.collection_name)

    def _write(self, func: Callable[..., R], *args: Any, **kwargs: Any) -> R:
        with self._translate_errors():
            return func(*args, **kwargs)

    # Reads

    def _find(
        self,
        filter_doc: FilterDocument | None,
        skip: int | None,
        limit: int | None,
        sort: SortSpec | None,
        select: Projection | None,
    ) -> list[Document]:
        query = compose_query(filter_doc)
        with self._lock, self._translate_errors():
            matches = self._table.search(query)
        documents = [copy.deepcopy(dict(doc)) for doc in matches]
        if sort:
            sort_documents(documents, sort)
        if skip:
            documents = documents[skip:]
        if limit:
            documents = documents[:limit]
        if select:
            documents = [project_document(doc, select) for doc in documents]
        return documents

    async def find(
        self,
        filter: FilterDocument | None,  # pylint: disable=redefined-builtin
        *,
        skip: int | None = None,
        limit: int | None = None,
        sort: SortSpec | None = None,
        select: Projection | None = None,
    ) -> list[Document]:
        return await asyncio.to_thread(self._find, filter, skip, limit, sort, select)

    def _count(self, filter_doc: FilterDocument | None) -> int:
        query = compose_query(filter_doc)
        with self._lock, self._translate_errors():
            return self._table.count(query)

    async def count_documents(self, filter: FilterDocument | None) -> int:  # pylint: disable=redefined-builtin
        return await asyncio.to_thread(self._count, filter)

    def _find_one(self, filter_doc: FilterDocument | None) -> Document | None:
        query = compose_query(filter_doc)
        with self._lock:
            found = self._first(query)
        return copy.deepcopy(dict(found)) if found is not None else None

    async def find_one(self, filter: FilterDocument | None) -> Document | None:  # pylint: disable=redefined-builtin
        return await asyncio.to_thread(self._find_one, filter)

    # Writes

    def _insert_one(self, document: Document) -> Document:
        stored = copy.deepcopy(dict(document))
        if stored.get("_id") is None:
            stored["_id"] = _object_ids.next_id()
        with self._lock:
            self._ensure_unique(stored["_id"])
            self._write(self._table.insert, stored)
        return copy.deepcopy(stored)

    async def insert_one(self, document: Document) -> Document:
        return await asyncio.to_thread(self._insert_one, document)

    def _find_one_and_replace(
        self, filter_doc: FilterDocument | None, document: Document, upsert: bool
    ) -> Document | None:
        query = compose_query(filter_doc)
        replacement = copy.deepcopy(dict(document))
        with self._lock:
            existing = self._first(query)
            if existing is None:
                if not upsert:
                    return None
                if replacement.get("_id") is None:
                    replacement["_id"] = id_from_filter(filter_doc) or _object_ids.next_id()
                self._ensure_unique(replacement["_id"])
                self._write(self._table.insert, replacement)
                return copy.deepcopy(replacement)

            if "_id" in replacement and replacement["_id"] != existing["_id"]:
                raise StoreError(f"_id is immutable in {self.collection_name}")
            replacement["_id"] = existing["_id"]
            self._write(self._table.update, _replace_with(replacement), doc_ids=[existing.doc_id])
        return copy.deepcopy(replacement)

    async def find_one_and_replace(
        self,
        filter: FilterDocument | None,  # pylint: disable=redefined-builtin
        document: Document,
        *,
        upsert: bool = False,
    ) -> Document | None:
        return await asyncio.to_thread(self._find_one_and_replace, filter, document, upsert)

    def _find_one_and_update(
        self, filter_doc: FilterDocument | None, update: Mapping[str, Any]
    ) -> Document | None:
        query = compose_query(filter_doc)
        with self._lock:
            existing = self._first(query)
            if existing is None:
                return None
            updated = apply_update(copy.deepcopy(dict(existing)), update)
            if updated.get("_id") != existing["_id"]:
                raise StoreError(f"_id is immutable in {self.collection_name}")
            self._write(self._table.update, _replace_with(updated), doc_ids=[existing.doc_id])
        return copy.deepcopy(updated)

    async def find_one_and_update(
        self,
        filter: FilterDocument | None,  # pylint: disable=redefined-builtin
        update: Mapping[str, Any],
    ) -> Document | None:
        return await asyncio.to_thread(self._find_one_and_update, filter, update)

    def _find_one_and_delete(self, filter_doc: FilterDocument | None) -> Document | None:
        query = compose_query(filter_doc)
        with self._lock:
            existing = self._first(query)
            if existing is None:
                return None
            self._write(self._table.remove, doc_ids=[existing.doc_id])
        return copy.deepcopy(dict(existing))

    async def find_one_and_delete(self, filter: FilterDocument | None) -> Document | None:  # pylint: disable=redefined-builtin
        return await asyncio.to_thread(self._find_one_and_delete, filter)

    def _delete_many(self, filter_doc: FilterDocument | None) -> int:
        query = compose_query(filter_doc)
        with self._lock:
            return len(self._write(self._table.remove, query))

    async def delete_many(self, filter: FilterDocument | None) -> int:  # pylint: disable=redefined-builtin
        return await asyncio.to_thread(self._delete_many, filter)


class TinyDBStore(DocumentStorePort):
    """Document store wrapping one TinyDB database (file-backed or in-memory)."""

    def __init__(self, db: TinyDB) -> None:
        self._db = db
        self._lock = threading.Lock()

    @classmethod
    def open(cls, path: Path | str | None = None) -> "TinyDBStore":
        """Open a JSON file database at ``path``, or an in-memory one when omitted."""
        if path is None:
            logger.info("Opening in-memory TinyDB store")
            return cls(TinyDB(storage=MemoryStorage))
        db_path = Path(path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Opening TinyDB store at %s", db_path)
        return cls(TinyDB(str(db_path)))

    @property
    def db(self) -> TinyDB:
        return self._db

    def collection(self, name: str) -> TinyDBSession:
        return TinyDBSession(self._db.table(name), self._lock)

    def _close(self) -> None:
        with self._lock:
            self._db.close()

    async def close(self) -> None:
        await asyncio.to_thread(self._close)


__all__ = ["TinyDBSession", "TinyDBStore"]
