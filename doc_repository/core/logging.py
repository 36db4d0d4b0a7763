"""JSON logging for the repository layer.

Records carry the correlation id of the calling operation and the collection
it works against. Both are bound through context variables, so concurrent
operations on one event loop never see each other's values.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterator, Optional

from pythonjsonlogger import jsonlogger

from doc_repository.core.config import settings

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
_collection: ContextVar[Optional[str]] = ContextVar("collection", default=None)

LOG_LEVEL = logging.getLevelNamesMapping().get(
    settings.DOC_REPOSITORY_LOG_LEVEL.upper(), logging.INFO
)

PACKAGE_DIR = Path(__file__).resolve().parent.parent
PROJECT_DIR = PACKAGE_DIR.parent

_RECORD_FIELDS = ("asctime", "levelname", "name", "message", "correlation_id", "collection")
_RENAMED_FIELDS = {
    "asctime": "timestamp",
    "levelname": "level",
    "name": "logger",
    "correlation_id": "cid",
}


def _log_dir_candidates() -> Iterator[Path]:
    if settings.DOC_REPOSITORY_LOG_DIR:
        yield Path(settings.DOC_REPOSITORY_LOG_DIR)
    yield PROJECT_DIR / "logs"
    yield Path(settings.DATA_DIR) / "logs"
    yield PACKAGE_DIR / "logs"


def resolve_logs_dir() -> Path:
    """Return the first log directory candidate that can be created."""
    for candidate in _log_dir_candidates():
        try:
            candidate.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            continue
        return candidate
    raise PermissionError("no writable logs directory")


LOG_FILE_PATH = resolve_logs_dir() / "doc_repository.log"


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def get_collection() -> Optional[str]:
    return _collection.get()


@contextmanager
def _bound(variable: ContextVar[Optional[str]], value: Optional[str]) -> Iterator[None]:
    token = variable.set(value)
    try:
        yield
    finally:
        variable.reset(token)


@contextmanager
def correlation_id_context(value: Optional[str]) -> Iterator[None]:
    """Bind ``value`` as the correlation id for the duration of the block."""
    with _bound(_correlation_id, value):
        yield


@contextmanager
def collection_context(value: Optional[str]) -> Iterator[None]:
    """Bind the collection name an operation works against."""
    with _bound(_collection, value):
        yield


class ContextFilter(logging.Filter):  # pylint: disable=too-few-public-methods
    """Copy the bound correlation id and collection onto each record; ``-`` when unbound."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        record.collection = get_collection() or "-"
        return True


def json_formatter() -> jsonlogger.JsonFormatter:
    """Build the formatter shared by every handler, stamped with the log schema version."""
    return jsonlogger.JsonFormatter(
        " ".join(f"%({field})s" for field in _RECORD_FIELDS),
        rename_fields=_RENAMED_FIELDS,
        static_fields={"schema_version": settings.DOC_REPOSITORY_LOG_SCHEMA_VERSION},
        datefmt="%Y-%m-%d %H:%M:%S",
        json_ensure_ascii=False,
    )


def get_logger(name: str) -> logging.Logger:
    """Return ``name``'s logger writing JSON to stdout and the rotating log file."""
    logger = logging.getLogger(name)
    logger.setLevel(LOG_LEVEL)
    if logger.handlers:
        return logger

    formatter = json_formatter()
    context_filter = ContextFilter()
    handlers: list[logging.Handler] = [
        logging.StreamHandler(sys.stdout),
        RotatingFileHandler(
            LOG_FILE_PATH, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8"
        ),
    ]
    for handler in handlers:
        handler.addFilter(context_filter)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


__all__ = [
    "ContextFilter",
    "LOG_FILE_PATH",
    "collection_context",
    "correlation_id_context",
    "get_collection",
    "get_correlation_id",
    "get_logger",
    "json_formatter",
    "resolve_logs_dir",
]
