"""Identity-keyed CRUD repositories over schemaless document stores."""

from doc_repository.core.exceptions import DuplicateKeyError, StoreError
from doc_repository.core.models import DataPage, FilterParams, IdentifiableModel, PagingParams
from doc_repository.services.identifiable_repository import IdentifiableRepository

__all__ = [
    "DataPage",
    "DuplicateKeyError",
    "FilterParams",
    "IdentifiableModel",
    "IdentifiableRepository",
    "PagingParams",
    "StoreError",
]
