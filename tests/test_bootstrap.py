"""Tests for assembling the document store from settings."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from doc_repository import bootstrap
from doc_repository.adapters.tinydb_store import TinyDBStore
from doc_repository.core.config import Settings


def test_tinydb_backend_uses_configured_path(tmp_path: Path) -> None:
    """The embedded backend opens the configured JSON file."""
    db_path = tmp_path / "store" / "docs.json"
    config = Settings(DOC_REPOSITORY_BACKEND="tinydb", TINYDB_PATH=db_path)

    store = bootstrap.build_document_store(config)
    try:
        assert isinstance(store, TinyDBStore)
        asyncio.run(store.collection("widgets").insert_one({"_id": "a"}))
        assert db_path.exists()
    finally:
        asyncio.run(store.close())


def test_tinydb_backend_defaults_under_data_dir(tmp_path: Path) -> None:
    """Without an explicit path the store lives in DATA_DIR."""
    config = Settings(DOC_REPOSITORY_BACKEND="tinydb", DATA_DIR=tmp_path)

    store = bootstrap.build_document_store(config)
    asyncio.run(store.close())
    assert (tmp_path / "documents.json").exists()


def test_mongo_backend_connects_with_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """The Mongo backend is built from the URI and database settings."""
    calls: list[tuple[str, str]] = []
    sentinel = object()

    def fake_connect(uri: str, database: str) -> object:
        calls.append((uri, database))
        return sentinel

    monkeypatch.setattr(bootstrap.MongoStore, "connect", staticmethod(fake_connect))
    config = Settings(
        DOC_REPOSITORY_BACKEND="mongo",
        MONGO_URI="mongodb://db.example:27017",
        MONGO_DATABASE="inventory",
    )

    assert bootstrap.build_document_store(config) is sentinel
    assert calls == [("mongodb://db.example:27017", "inventory")]


def test_settings_defaults() -> None:
    """Defaults bound pages at 100 and select the embedded store."""
    config = Settings()
    assert config.DOC_REPOSITORY_MAX_PAGE_SIZE == 100
    assert config.DOC_REPOSITORY_BACKEND == "tinydb"
