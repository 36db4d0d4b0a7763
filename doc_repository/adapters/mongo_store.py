"""MongoDB document store adapter built on the pymongo async driver."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Mapping

from pymongo import AsyncMongoClient, ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError as PyMongoDuplicateKeyError
from pymongo.errors import PyMongoError

from doc_repository.core.exceptions import DuplicateKeyError, StoreError
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


class MongoSession(DocumentSessionPort):
    """Collection session delegating to a pymongo ``AsyncCollection``."""

    def __init__(self, collection: AsyncCollection) -> None:
        self._collection = collection

    @property
    def collection_name(self) -> str:
        return self._collection.name

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except PyMongoDuplicateKeyError as exc:
            key = (exc.details or {}).get("keyValue")
            raise DuplicateKeyError(key, self.collection_name) from exc
        except PyMongoError as exc:
            raise StoreError(f"mongodb {self.collection_name}: {exc}") from exc

    async def find(
        self,
        filter: FilterDocument | None,  # pylint: disable=redefined-builtin
        *,
        skip: int | None = None,
        limit: int | None = None,
        sort: SortSpec | None = None,
        select: Projection | None = None,
    ) -> list[Document]:
        options: dict[str, Any] = {}
        if skip is not None:
            options["skip"] = skip
        if limit is not None:
            options["limit"] = limit
        if sort:
            options["sort"] = list(sort.items()) if isinstance(sort, Mapping) else list(sort)
        if select:
            options["projection"] = dict(select)
        with self._translate_errors():
            cursor = self._collection.find(filter or {}, **options)
            return await cursor.to_list(None)

    async def count_documents(self, filter: FilterDocument | None) -> int:  # pylint: disable=redefined-builtin
        with self._translate_errors():
            return await self._collection.count_documents(filter or {})

    async def find_one(self, filter: FilterDocument | None) -> Document | None:  # pylint: disable=redefined-builtin
        with self._translate_errors():
            return await self._collection.find_one(filter or {})

    async def insert_one(self, document: Document) -> Document:
        stored = dict(document)
        with self._translate_errors():
            # The driver assigns ``_id`` on ``stored`` in place when it is missing.
            await self._collection.insert_one(stored)
        return stored

    async def find_one_and_replace(
        self,
        filter: FilterDocument | None,  # pylint: disable=redefined-builtin
        document: Document,
        *,
        upsert: bool = False,
    ) -> Document | None:
        with self._translate_errors():
            return await self._collection.find_one_and_replace(
                filter or {},
                document,
                upsert=upsert,
                return_document=ReturnDocument.AFTER,
            )

    async def find_one_and_update(
        self,
        filter: FilterDocument | None,  # pylint: disable=redefined-builtin
        update: Mapping[str, Any],
    ) -> Document | None:
        with self._translate_errors():
            return await self._collection.find_one_and_update(
                filter or {},
                dict(update),
                return_document=ReturnDocument.AFTER,
            )

    async def find_one_and_delete(self, filter: FilterDocument | None) -> Document | None:  # pylint: disable=redefined-builtin
        with self._translate_errors():
            return await self._collection.find_one_and_delete(filter or {})

    async def delete_many(self, filter: FilterDocument | None) -> int:  # pylint: disable=redefined-builtin
        with self._translate_errors():
            result = await self._collection.delete_many(filter or {})
        return result.deleted_count


class MongoStore(DocumentStorePort):
    """Document store wrapping one MongoDB database."""

    def __init__(self, database: AsyncDatabase, client: AsyncMongoClient | None = None) -> None:
        self._database = database
        self._client = client

    @classmethod
    def connect(cls, uri: str, database: str) -> "MongoStore":
        """Create a client for ``uri``; the driver connects lazily on first use."""
        client: AsyncMongoClient = AsyncMongoClient(uri)
        logger.info("Opening MongoDB store for database %s", database)
        return cls(client[database], client)

    def collection(self, name: str) -> MongoSession:
        return MongoSession(self._database[name])

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()


__all__ = ["MongoSession", "MongoStore"]
