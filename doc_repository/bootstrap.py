"""Application bootstrap helpers for assembling a document store."""

from __future__ import annotations

from doc_repository.adapters.mongo_store import MongoStore
from doc_repository.adapters.tinydb_store import TinyDBStore
from doc_repository.core.config import Settings, settings
from doc_repository.core.ports import DocumentStorePort


def build_document_store(config: Settings | None = None) -> DocumentStorePort:
    """Return the document store selected by ``DOC_REPOSITORY_BACKEND``."""

    config = config or settings
    if config.DOC_REPOSITORY_BACKEND == "mongo":
        return MongoStore.connect(config.MONGO_URI, config.MONGO_DATABASE)
    return TinyDBStore.open(config.TINYDB_PATH or config.DATA_DIR / "documents.json")


__all__ = ["build_document_store"]
