"""Identifier generators for entities created without an id."""

from __future__ import annotations

import itertools
import uuid


class RandomIdGenerator:
    """Produces 32-character hex tokens from random UUIDs."""

    def next_id(self) -> str:
        return uuid.uuid4().hex


class SequentialIdGenerator:
    """Deterministic ``<prefix><n>`` identifiers, useful for fixtures and replays."""

    def __init__(self, prefix: str = "", start: int = 1) -> None:
        self._prefix = prefix
        self._counter = itertools.count(start)

    def next_id(self) -> str:
        return f"{self._prefix}{next(self._counter)}"


__all__ = ["RandomIdGenerator", "SequentialIdGenerator"]
