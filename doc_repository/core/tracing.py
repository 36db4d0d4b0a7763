"""Trace port implementations routing repository trace records through structured logging."""

from __future__ import annotations

import logging
from typing import Any

from doc_repository.core.logging import correlation_id_context, get_correlation_id, get_logger
from doc_repository.core.ports import TracePort


class LoggerTracer(TracePort):
    """Emit trace records at DEBUG with the correlation id bound for the call."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or get_logger("doc_repository.trace")

    def trace(self, correlation_id: str | None, message: str, *args: Any) -> None:
        with correlation_id_context(correlation_id or get_correlation_id()):
            self._logger.debug(message, *args)


class NullTracer(TracePort):
    """Discards every trace record."""

    def trace(self, correlation_id: str | None, message: str, *args: Any) -> None:
        return None


__all__ = ["LoggerTracer", "NullTracer"]
