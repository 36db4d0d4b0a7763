"""Helpers translating MongoDB-style filter, sort, projection and update documents
into TinyDB queries and in-memory document transforms."""

from __future__ import annotations

import operator
import re
from functools import reduce
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, cast

from tinydb import Query

from doc_repository.core.exceptions import StoreError, UnsupportedOperatorError
from doc_repository.core.ports import Document, FilterDocument, Projection, SortSpec

# Provide a QueryLike alias for static checkers; at runtime use Any.
if TYPE_CHECKING:  # pragma: no cover - typing only
    from tinydb.queries import QueryLike  # type: ignore
else:
    QueryLike = Any  # type: ignore[misc,assignment]

_MISSING = object()


def _field(path: str) -> Query:
    """Return a TinyDB query rooted at a dotted ``path``."""
    query = Query()
    for part in path.split("."):
        query = query[part]
    return query


def _is_operator_document(value: Any) -> bool:
    return (
        isinstance(value, Mapping)
        and bool(value)
        and all(isinstance(key, str) and key.startswith("$") for key in value)
    )


def _regex_flags(options: str) -> int:
    flags = 0
    if "i" in options:
        flags |= re.IGNORECASE
    if "m" in options:
        flags |= re.MULTILINE
    if "s" in options:
        flags |= re.DOTALL
    if "x" in options:
        flags |= re.VERBOSE
    return flags


def _compose_operators(path: str, operators: Mapping[str, Any]) -> QueryLike:
    field = _field(path)
    parts: list[QueryLike] = []
    for name, value in operators.items():
        if name == "$eq":
            parts.append(field == value)
        elif name == "$ne":
            parts.append(~(field == value))
        elif name == "$gt":
            parts.append(field > value)
        elif name == "$gte":
            parts.append(field >= value)
        elif name == "$lt":
            parts.append(field < value)
        elif name == "$lte":
            parts.append(field <= value)
        elif name == "$in":
            parts.append(field.one_of(list(value)))
        elif name == "$nin":
            parts.append(~field.one_of(list(value)))
        elif name == "$exists":
            parts.append(field.exists() if value else ~field.exists())
        elif name == "$regex":
            flags = _regex_flags(str(operators.get("$options", "")))
            pattern = value.pattern if isinstance(value, re.Pattern) else str(value)
            parts.append(field.search(pattern, flags=flags))
        elif name == "$options":
            continue
        elif name == "$not":
            if not isinstance(value, Mapping):
                raise UnsupportedOperatorError(f"$not expects an operator document for {path}")
            parts.append(~_compose_operators(path, value))
        else:
            raise UnsupportedOperatorError(f"unsupported filter operator {name} on {path}")
    return reduce(operator.and_, parts)


def _compose_logical(name: str, clauses: Any) -> QueryLike:
    if not isinstance(clauses, (list, tuple)) or not clauses:
        raise UnsupportedOperatorError(f"{name} expects a non-empty list of filters")
    composed = [compose_query(clause) for clause in clauses]
    if name == "$and":
        return reduce(operator.and_, composed)
    if name == "$or":
        return reduce(operator.or_, composed)
    if name == "$nor":
        return ~reduce(operator.or_, composed)
    raise UnsupportedOperatorError(f"unsupported logical operator {name}")


def compose_query(filter_doc: FilterDocument | None) -> QueryLike:
    """Translate a filter document into a TinyDB query.

    An empty or missing filter matches every document.
    """
    if not filter_doc:
        return Query().noop()

    parts: list[QueryLike] = []
    for key, value in filter_doc.items():
        if key.startswith("$"):
            parts.append(_compose_logical(key, value))
        elif _is_operator_document(value):
            parts.append(_compose_operators(key, value))
        else:
            parts.append(_field(key) == value)
    return reduce(operator.and_, parts)


def get_path(document: Mapping[str, Any], path: str, default: Any = None) -> Any:
    """Resolve a dotted ``path`` inside ``document``."""
    value: Any = document
    for part in path.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return default
        value = value[part]
    return value


def _set_path(document: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    target = document
    for part in parts[:-1]:
        child = target.get(part)
        if not isinstance(child, dict):
            child = {}
            target[part] = child
        target = child
    target[parts[-1]] = value


def _unset_path(document: dict[str, Any], path: str) -> None:
    parts = path.split(".")
    target: Any = document
    for part in parts[:-1]:
        target = target.get(part) if isinstance(target, dict) else None
        if target is None:
            return
    if isinstance(target, dict):
        target.pop(parts[-1], None)


def _iter_sort(sort: SortSpec) -> Iterable[tuple[str, int]]:
    if isinstance(sort, Mapping):
        return list(sort.items())
    return [(key, direction) for key, direction in sort]


def sort_documents(documents: list[Document], sort: SortSpec) -> None:
    """Sort ``documents`` in place; missing and ``None`` values order first."""
    # Stable sorts applied from the least significant key upwards.
    for key, direction in reversed(list(_iter_sort(sort))):
        def sort_key(document: Document, path: str = key) -> tuple[int, Any]:
            value = get_path(document, path)
            return (0, 0) if value is None else (1, value)

        try:
            documents.sort(key=sort_key, reverse=int(direction) < 0)
        except TypeError as exc:
            raise StoreError(f"cannot sort mixed value types on {key}") from exc


def project_document(document: Document, select: Projection) -> Document:
    """Apply an inclusion or exclusion projection to a top-level document."""
    include_id = bool(select.get("_id", 1))
    fields = {key: bool(flag) for key, flag in select.items() if key != "_id"}

    if any(fields.values()):
        projected = {
            key: document[key] for key, flag in fields.items() if flag and key in document
        }
        if include_id and "_id" in document:
            projected = {"_id": document["_id"], **projected}
        return projected

    projected = {key: value for key, value in document.items() if key not in fields}
    if not include_id:
        projected.pop("_id", None)
    return projected


def _apply_inc(document: dict[str, Any], path: str, amount: Any) -> None:
    current = get_path(document, path, _MISSING)
    if current is _MISSING:
        current = 0
    if not isinstance(current, (int, float)) or not isinstance(amount, (int, float)):
        raise StoreError(f"$inc requires numeric values on {path}")
    _set_path(document, path, current + amount)


_UPDATE_OPERATORS: dict[str, Callable[[dict[str, Any], str, Any], None]] = {
    "$set": _set_path,
    "$unset": lambda document, path, _value: _unset_path(document, path),
    "$inc": _apply_inc,
}


def apply_update(document: dict[str, Any], update: Mapping[str, Any]) -> dict[str, Any]:
    """Apply an operator update document to ``document`` in place and return it."""
    if not _is_operator_document(update):
        raise UnsupportedOperatorError("update document requires atomic operators")
    for name, fields in update.items():
        handler = _UPDATE_OPERATORS.get(name)
        if handler is None:
            raise UnsupportedOperatorError(f"unsupported update operator {name}")
        for path, value in cast(Mapping[str, Any], fields).items():
            handler(document, path, value)
    return document


def id_from_filter(filter_doc: FilterDocument | None) -> Any:
    """Return the ``_id`` a filter pins by equality, or ``None``."""
    if not filter_doc:
        return None
    value = filter_doc.get("_id")
    if isinstance(value, Mapping):
        return value.get("$eq") if set(value) == {"$eq"} else None
    return value


__all__ = [
    "compose_query",
    "get_path",
    "sort_documents",
    "project_document",
    "apply_update",
    "id_from_filter",
]
