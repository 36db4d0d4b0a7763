"""Core data transfer objects shared across layers."""

from __future__ import annotations

from typing import Any, Generic, Iterable, Mapping, Optional, TypeVar

from pydantic import BaseModel, Field


class IdentifiableModel(BaseModel):
    """Base entity: any record carrying a unique ``id``; other fields are payload."""

    id: Any = None


T = TypeVar("T", bound=IdentifiableModel)


class PagingParams(BaseModel):
    """Skip/take window for a page request, plus whether a total is wanted."""

    skip: int | None = Field(default=None, description="Items to skip; negative means none")
    take: int | None = Field(default=None, ge=1, description="Requested page size")
    total: bool = Field(default=False, description="Whether to count matching items")

    def get_skip(self, min_skip: int) -> int:
        """Return ``skip`` raised to at least ``min_skip``."""
        if self.skip is None or self.skip < min_skip:
            return min_skip
        return self.skip

    def get_take(self, max_take: int) -> int:
        """Return ``take`` capped at ``max_take``, defaulting to it when unset."""
        if self.take is None:
            return max_take
        return min(self.take, max_take)


class DataPage(BaseModel, Generic[T]):
    """A bounded slice of a result set; ``total`` is set only when it was requested."""

    data: list[T] = Field(default_factory=list)
    total: Optional[int] = None


class FilterParams(dict):
    """String-keyed filter parameters handed to ``compose_filter`` implementations."""

    @classmethod
    def from_tuples(cls, *tuples: Any) -> "FilterParams":
        """Build from a flat ``key, value, key, value`` sequence."""
        if len(tuples) % 2:
            raise ValueError("from_tuples expects an even number of arguments")
        return cls(zip(tuples[0::2], tuples[1::2]))

    @classmethod
    def from_value(cls, value: Mapping[str, Any] | Iterable[tuple[str, Any]] | None) -> "FilterParams":
        """Coerce ``None``, a mapping or key/value pairs into filter parameters."""
        if value is None:
            return cls()
        if isinstance(value, FilterParams):
            return value
        return cls(value)

    def get_as_nullable_string(self, key: str) -> str | None:
        value = self.get(key)
        if value is None:
            return None
        return str(value)

    def get_as_string_with_default(self, key: str, default: str) -> str:
        value = self.get_as_nullable_string(key)
        return default if value is None else value

    def get_as_nullable_integer(self, key: str) -> int | None:
        value = self.get(key)
        if value is None or isinstance(value, bool):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    def get_as_nullable_boolean(self, key: str) -> bool | None:
        value = self.get(key)
        if value is None:
            return None
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in {"1", "true", "t", "yes", "y"}:
            return True
        if text in {"0", "false", "f", "no", "n"}:
            return False
        return None

    def get_as_array(self, key: str) -> list[Any]:
        """Return the value as a list; comma-separated strings are split."""
        value = self.get(key)
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        if isinstance(value, (list, tuple, set, frozenset)):
            return list(value)
        return [value]


__all__ = [
    "IdentifiableModel",
    "PagingParams",
    "DataPage",
    "FilterParams",
]
