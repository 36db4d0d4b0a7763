"""Identity-keyed CRUD repository over a document store collection.

``IdentifiableRepository`` turns any collection into a typed repository of
entities with a unique ``id``. Subclasses bind an entity model and implement
``compose_filter`` to translate ``FilterParams`` into a store filter; all other
operations work out of the box.

Documents are stored with the entity ``id`` under ``_id``. Every operation
makes one or two sequential calls to the collection session, traces its
outcome on success and lets store errors propagate unchanged.

Example::

    class Dummy(IdentifiableModel):
        key: str | None = None
        content: str | None = None

    class DummyRepository(IdentifiableRepository[Dummy]):
        model = Dummy

        def compose_filter(self, filter_params):
            key = filter_params.get_as_nullable_string("key")
            return {"key": key} if key is not None else {}

    repository = DummyRepository("dummies", TinyDBStore.open())
    created = await repository.create("123", Dummy(key="ABC"))
    page = await repository.get_page("123", FilterParams.from_tuples("key", "ABC"))
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, Mapping, Sequence

from doc_repository.core.config import settings
from doc_repository.core.identifiers import RandomIdGenerator
from doc_repository.core.logging import collection_context
from doc_repository.core.models import DataPage, FilterParams, IdentifiableModel, PagingParams, T
from doc_repository.core.ports import (
    Document,
    DocumentStorePort,
    FilterDocument,
    IdGeneratorPort,
    Projection,
    SortSpec,
    TracePort,
)
from doc_repository.core.tracing import LoggerTracer

MAX_PAGE_SIZE_OPTION = "options.max_page_size"


def _lookup_option(config: Mapping[str, Any], dotted_key: str) -> Any:
    """Find ``dotted_key`` either as a flat key or by walking nested mappings."""
    if dotted_key in config:
        return config[dotted_key]
    value: Any = config
    for part in dotted_key.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return None
        value = value[part]
    return value


class IdentifiableRepository(ABC, Generic[T]):
    """Abstract repository of entities with unique ids stored in one collection."""

    model: ClassVar[type[IdentifiableModel]]

    def __init__(
        self,
        collection: str,
        store: DocumentStorePort,
        *,
        tracer: TracePort | None = None,
        id_generator: IdGeneratorPort | None = None,
        max_page_size: int | None = None,
    ) -> None:
        if not collection:
            raise ValueError("Collection name could not be null")
        self._collection_name = collection
        self._collection = store.collection(collection)
        self._tracer = tracer or LoggerTracer()
        self._id_generator = id_generator or RandomIdGenerator()
        self._max_page_size = max_page_size or settings.DOC_REPOSITORY_MAX_PAGE_SIZE

    @property
    def collection_name(self) -> str:
        return self._collection_name

    @property
    def max_page_size(self) -> int:
        return self._max_page_size

    def configure(self, config: Mapping[str, Any]) -> None:
        """Apply configuration; recognises ``options.max_page_size``.

        Values that are missing or not integers keep the current page size.
        """
        value = _lookup_option(config, MAX_PAGE_SIZE_OPTION)
        if value is None or isinstance(value, bool):
            return
        try:
            max_page_size = int(value)
        except (TypeError, ValueError):
            return
        if max_page_size > 0:
            self._max_page_size = max_page_size

    def _trace(self, correlation_id: str | None, message: str, *args: Any) -> None:
        with collection_context(self._collection_name):
            self._tracer.trace(correlation_id, message, *args)

    # Representation conversion

    def convert_to_public(self, value: Document | None) -> T | None:
        """Convert a stored document into an entity, mapping ``_id`` back to ``id``."""
        if value is None:
            return None
        fields = dict(value)
        if "_id" in fields:
            fields["id"] = fields.pop("_id")
        return self.model.model_validate(fields)

    def convert_from_public(self, value: T) -> Document:
        """Convert an entity into a stored document with its id under ``_id``.

        Every field is written, defaults included.
        """
        document = value.model_dump()
        document.pop("id", None)
        return {"_id": value.id, **document}

    def convert_from_public_partial(self, value: Mapping[str, Any]) -> Document:
        """Convert a sparse field map the same way ``convert_from_public`` does."""
        document = dict(value)
        if "id" in document:
            document["_id"] = document.pop("id")
        return document

    # Filter seams for subclasses

    @abstractmethod
    def compose_filter(self, filter_params: FilterParams) -> FilterDocument | None:
        """Translate typed filter parameters into a store filter document."""

    def compose_sort(self) -> SortSpec | None:
        """Default sort applied by ``get_page`` and ``get_list``."""
        return None

    async def get_page(
        self,
        correlation_id: str | None,
        filter_params: FilterParams | Mapping[str, Any] | None = None,
        paging: PagingParams | None = None,
    ) -> DataPage[T]:
        """Get a page of entities matching ``filter_params``."""
        return await self.get_page_by_filter(
            correlation_id,
            self.compose_filter(FilterParams.from_value(filter_params)),
            paging,
            self.compose_sort(),
        )

    async def get_list(
        self,
        correlation_id: str | None,
        filter_params: FilterParams | Mapping[str, Any] | None = None,
    ) -> list[T]:
        """Get every entity matching ``filter_params``."""
        return await self.get_list_by_filter(
            correlation_id,
            self.compose_filter(FilterParams.from_value(filter_params)),
            self.compose_sort(),
        )

    async def get_random(
        self,
        correlation_id: str | None,
        filter_params: FilterParams | Mapping[str, Any] | None = None,
    ) -> T | None:
        """Get one random entity matching ``filter_params``."""
        return await self.get_one_random(
            correlation_id, self.compose_filter(FilterParams.from_value(filter_params))
        )

    async def delete_matching(
        self,
        correlation_id: str | None,
        filter_params: FilterParams | Mapping[str, Any] | None = None,
    ) -> int:
        """Delete every entity matching ``filter_params``."""
        return await self.delete_by_filter(
            correlation_id, self.compose_filter(FilterParams.from_value(filter_params))
        )

    # Paging engine

    async def get_page_by_filter(
        self,
        correlation_id: str | None,
        filter: FilterDocument | None,  # pylint: disable=redefined-builtin
        paging: PagingParams | None = None,
        sort: SortSpec | None = None,
        select: Projection | None = None,
    ) -> DataPage[T]:
        """Get a page of entities matching a store filter.

        ``paging.take`` defaults to and is capped at the max page size; a negative
        ``skip`` means no skip. The total is counted only when ``paging.total`` is
        set, with a separate query that is not atomic with the page fetch.
        """
        paging = paging or PagingParams()
        skip = paging.get_skip(-1)
        take = paging.get_take(self._max_page_size)

        documents = await self._collection.find(
            filter,
            skip=skip if skip >= 0 else None,
            limit=take,
            sort=sort or None,
            select=select or None,
        )
        items = [self.convert_to_public(document) for document in documents]

        total = await self._collection.count_documents(filter) if paging.total else None
        self._trace(correlation_id, "Retrieved %d from %s", len(items), self._collection_name)
        return DataPage[self.model](data=items, total=total)  # type: ignore[name-defined]

    async def get_list_by_filter(
        self,
        correlation_id: str | None,
        filter: FilterDocument | None,  # pylint: disable=redefined-builtin
        sort: SortSpec | None = None,
        select: Projection | None = None,
    ) -> list[T]:
        """Get every entity matching a store filter, in store order unless sorted."""
        documents = await self._collection.find(
            filter, sort=sort or None, select=select or None
        )
        self._trace(correlation_id, "Retrieved %d from %s", len(documents), self._collection_name)
        return [self.convert_to_public(document) for document in documents]  # type: ignore[misc]

    async def get_one_random(
        self,
        correlation_id: str | None,
        filter: FilterDocument | None,  # pylint: disable=redefined-builtin
    ) -> T | None:
        """Get a random entity matching a store filter, or ``None``.

        Counts first, then fetches one item at a random offset. Concurrent writes
        between the two calls can skew the pick or make it come back empty.
        """
        count = await self._collection.count_documents(filter)
        position = random.randint(0, count - 1) if count > 0 else 0
        documents = await self._collection.find(filter, skip=position, limit=1)
        item = self.convert_to_public(documents[0]) if documents else None
        self._trace(
            correlation_id,
            "Retrieved random item from %s at position %d",
            self._collection_name,
            position,
        )
        return item

    # Lookup engine

    async def get_list_by_ids(self, correlation_id: str | None, ids: Sequence[Any]) -> list[T]:
        """Get entities by ids; result order is defined by the store, not ``ids``."""
        return await self.get_list_by_filter(correlation_id, {"_id": {"$in": list(ids)}})

    async def get_one_by_id(self, correlation_id: str | None, id: Any) -> T | None:  # pylint: disable=redefined-builtin
        """Get an entity by id, or ``None`` when it does not exist."""
        document = await self._collection.find_one({"_id": id})
        self._trace(correlation_id, "Retrieved from %s by id = %s", self._collection_name, id)
        return self.convert_to_public(document)

    # Mutation engine

    def _with_id(self, item: T) -> T:
        if item.id:
            return item
        return item.model_copy(update={"id": self._id_generator.next_id()})

    async def create(self, correlation_id: str | None, item: T | None) -> T | None:
        """Insert ``item``, generating an id when it has none.

        Raises ``DuplicateKeyError`` when the id is already taken.
        """
        if item is None:
            return None
        document = self.convert_from_public(self._with_id(item))
        stored = await self._collection.insert_one(document)
        self._trace(correlation_id, "Created in %s with id = %s", self._collection_name, stored["_id"])
        return self.convert_to_public(stored)

    async def set(self, correlation_id: str | None, item: T | None) -> T | None:
        """Replace the entity with ``item``'s id, inserting it when absent."""
        if item is None:
            return None
        document = self.convert_from_public(self._with_id(item))
        stored = await self._collection.find_one_and_replace(
            {"_id": document["_id"]}, document, upsert=True
        )
        self._trace(correlation_id, "Set in %s with id = %s", self._collection_name, document["_id"])
        return self.convert_to_public(stored)

    async def update(self, correlation_id: str | None, item: T | None) -> T | None:
        """Merge the fields set on ``item`` into the stored entity with the same id.

        Fields left at their defaults keep their stored values. Returns ``None``
        when ``item`` or its id is missing, or nothing matched.
        """
        if item is None or item.id is None:
            return None
        fields = self.convert_from_public_partial(item.model_dump(exclude_unset=True))
        fields.pop("_id", None)
        stored = await self._collection.find_one_and_update({"_id": item.id}, {"$set": fields})
        self._trace(correlation_id, "Updated in %s with id = %s", self._collection_name, item.id)
        return self.convert_to_public(stored)

    async def update_partially(
        self,
        correlation_id: str | None,
        id: Any,  # pylint: disable=redefined-builtin
        data: Mapping[str, Any] | None,
    ) -> T | None:
        """Set only the fields named in ``data`` on the entity with ``id``."""
        if data is None or id is None:
            return None
        fields = self.convert_from_public_partial(data)
        fields.pop("_id", None)
        stored = await self._collection.find_one_and_update({"_id": id}, {"$set": fields})
        self._trace(correlation_id, "Updated partially in %s with id = %s", self._collection_name, id)
        return self.convert_to_public(stored)

    async def delete_by_id(self, correlation_id: str | None, id: Any) -> T | None:  # pylint: disable=redefined-builtin
        """Delete the entity with ``id`` and return it, or ``None`` when absent."""
        document = await self._collection.find_one_and_delete({"_id": id})
        self._trace(correlation_id, "Deleted from %s with id = %s", self._collection_name, id)
        return self.convert_to_public(document)

    async def delete_by_filter(
        self,
        correlation_id: str | None,
        filter: FilterDocument | None,  # pylint: disable=redefined-builtin
    ) -> int:
        """Delete every entity matching a store filter and return the count."""
        count = await self._collection.delete_many(filter)
        self._trace(correlation_id, "Deleted %d items from %s", count, self._collection_name)
        return count

    async def delete_by_ids(self, correlation_id: str | None, ids: Sequence[Any]) -> int:
        """Delete the entities with the given ids and return the count."""
        return await self.delete_by_filter(correlation_id, {"_id": {"$in": list(ids)}})


__all__ = ["IdentifiableRepository", "MAX_PAGE_SIZE_OPTION"]
