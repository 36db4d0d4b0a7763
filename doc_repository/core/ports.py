"""Protocol definitions for infrastructure adapters."""

# pylint: disable=unnecessary-ellipsis

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence

Document = dict[str, Any]
FilterDocument = Mapping[str, Any]
SortSpec = Mapping[str, int] | Sequence[tuple[str, int]]
Projection = Mapping[str, Any]


class DocumentSessionPort(Protocol):
    """Port exposing collection-level primitives against one live collection."""

    @property
    def collection_name(self) -> str:
        """Name of the collection this session operates on."""
        ...

    async def find(
        self,
        filter: FilterDocument | None,  # pylint: disable=redefined-builtin
        *,
        skip: int | None = None,
        limit: int | None = None,
        sort: SortSpec | None = None,
        select: Projection | None = None,
    ) -> list[Document]:
        """Return matching documents in the store's natural (or requested) order."""
        ...

    async def count_documents(self, filter: FilterDocument | None) -> int:  # pylint: disable=redefined-builtin
        """Return the number of documents matching ``filter``."""
        ...

    async def find_one(self, filter: FilterDocument | None) -> Document | None:  # pylint: disable=redefined-builtin
        """Return the first matching document or ``None``."""
        ...

    async def insert_one(self, document: Document) -> Document:
        """Insert ``document`` and return it as stored."""
        ...

    async def find_one_and_replace(
        self,
        filter: FilterDocument | None,  # pylint: disable=redefined-builtin
        document: Document,
        *,
        upsert: bool = False,
    ) -> Document | None:
        """Replace the first match atomically and return the post-image."""
        ...

    async def find_one_and_update(
        self,
        filter: FilterDocument | None,  # pylint: disable=redefined-builtin
        update: Mapping[str, Any],
    ) -> Document | None:
        """Apply an update document to the first match and return the post-image."""
        ...

    async def find_one_and_delete(self, filter: FilterDocument | None) -> Document | None:  # pylint: disable=redefined-builtin
        """Delete the first match atomically and return the pre-image."""
        ...

    async def delete_many(self, filter: FilterDocument | None) -> int:  # pylint: disable=redefined-builtin
        """Delete every match and return how many documents were removed."""
        ...


class DocumentStorePort(Protocol):
    """Port owning the live connection and handing out per-collection sessions."""

    def collection(self, name: str) -> DocumentSessionPort:
        """Return a session bound to collection ``name``."""
        ...

    async def close(self) -> None:
        """Release the underlying connection or file handle."""
        ...


class TracePort(Protocol):
    """Fire-and-forget observability side channel."""

    def trace(self, correlation_id: str | None, message: str, *args: Any) -> None:
        """Record ``message % args`` against ``correlation_id``."""
        ...


class IdGeneratorPort(Protocol):
    """Source of new unique identifiers for entities created without one."""

    def next_id(self) -> str:
        """Return a fresh collision-resistant identifier."""
        ...


__all__ = [
    "Document",
    "FilterDocument",
    "SortSpec",
    "Projection",
    "DocumentSessionPort",
    "DocumentStorePort",
    "TracePort",
    "IdGeneratorPort",
]
