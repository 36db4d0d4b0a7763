"""Tests for the MongoDB adapter against a mocked async collection."""

# pylint: disable=missing-function-docstring,redefined-outer-name

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError as PyMongoDuplicateKeyError
from pymongo.errors import PyMongoError

from doc_repository.adapters.mongo_store import MongoSession, MongoStore
from doc_repository.core.exceptions import DuplicateKeyError, StoreError


@pytest.fixture
def collection() -> MagicMock:
    fake = MagicMock()
    fake.name = "widgets"
    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=[{"_id": "a"}])
    fake.find.return_value = cursor
    fake.count_documents = AsyncMock(return_value=4)
    fake.find_one = AsyncMock(return_value={"_id": "a"})
    fake.insert_one = AsyncMock()
    fake.find_one_and_replace = AsyncMock(return_value={"_id": "a", "name": "B"})
    fake.find_one_and_update = AsyncMock(return_value={"_id": "a", "name": "C"})
    fake.find_one_and_delete = AsyncMock(return_value={"_id": "a"})
    fake.delete_many = AsyncMock(return_value=SimpleNamespace(deleted_count=2))
    return fake


@pytest.fixture
def session(collection: MagicMock) -> MongoSession:
    return MongoSession(collection)


def test_collection_name(session: MongoSession) -> None:
    assert session.collection_name == "widgets"


def test_find_passes_only_given_options(session: MongoSession, collection: MagicMock) -> None:
    found = asyncio.run(session.find({"kind": "a"}))
    assert found == [{"_id": "a"}]
    collection.find.assert_called_once_with({"kind": "a"})
    collection.find.return_value.to_list.assert_awaited_once_with(None)


def test_find_translates_paging_sort_and_projection(
    session: MongoSession, collection: MagicMock
) -> None:
    asyncio.run(session.find(None, skip=10, limit=5, sort={"name": -1}, select={"name": 1}))
    collection.find.assert_called_once_with(
        {}, skip=10, limit=5, sort=[("name", -1)], projection={"name": 1}
    )


def test_count_and_find_one(session: MongoSession, collection: MagicMock) -> None:
    assert asyncio.run(session.count_documents(None)) == 4
    collection.count_documents.assert_awaited_once_with({})
    assert asyncio.run(session.find_one({"_id": "a"})) == {"_id": "a"}


def test_insert_returns_stored_document(session: MongoSession, collection: MagicMock) -> None:
    stored = asyncio.run(session.insert_one({"_id": "a", "name": "A"}))
    assert stored == {"_id": "a", "name": "A"}
    collection.insert_one.assert_awaited_once_with({"_id": "a", "name": "A"})


def test_find_and_modify_request_post_images(session: MongoSession, collection: MagicMock) -> None:
    replaced = asyncio.run(
        session.find_one_and_replace({"_id": "a"}, {"_id": "a", "name": "B"}, upsert=True)
    )
    updated = asyncio.run(session.find_one_and_update({"_id": "a"}, {"$set": {"name": "C"}}))

    assert replaced == {"_id": "a", "name": "B"}
    assert updated == {"_id": "a", "name": "C"}
    collection.find_one_and_replace.assert_awaited_once_with(
        {"_id": "a"},
        {"_id": "a", "name": "B"},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    collection.find_one_and_update.assert_awaited_once_with(
        {"_id": "a"}, {"$set": {"name": "C"}}, return_document=ReturnDocument.AFTER
    )


def test_delete_operations(session: MongoSession, collection: MagicMock) -> None:
    assert asyncio.run(session.find_one_and_delete({"_id": "a"})) == {"_id": "a"}
    assert asyncio.run(session.delete_many({"kind": "a"})) == 2
    collection.delete_many.assert_awaited_once_with({"kind": "a"})


def test_duplicate_key_is_translated(session: MongoSession, collection: MagicMock) -> None:
    collection.insert_one.side_effect = PyMongoDuplicateKeyError(
        "E11000 duplicate key", 11000, {"keyValue": {"_id": "a"}}
    )
    with pytest.raises(DuplicateKeyError) as excinfo:
        asyncio.run(session.insert_one({"_id": "a"}))
    assert excinfo.value.key == {"_id": "a"}
    assert isinstance(excinfo.value.__cause__, PyMongoDuplicateKeyError)


def test_driver_errors_become_store_errors(session: MongoSession, collection: MagicMock) -> None:
    collection.count_documents.side_effect = PyMongoError("connection refused")
    with pytest.raises(StoreError, match="connection refused"):
        asyncio.run(session.count_documents({}))


def test_store_hands_out_sessions_and_closes_client() -> None:
    database = MagicMock()
    database.__getitem__.return_value = MagicMock(name="collection")
    client = MagicMock()
    client.close = AsyncMock()

    store = MongoStore(database, client)
    session = store.collection("widgets")
    asyncio.run(store.close())

    database.__getitem__.assert_called_once_with("widgets")
    assert isinstance(session, MongoSession)
    client.close.assert_awaited_once()
