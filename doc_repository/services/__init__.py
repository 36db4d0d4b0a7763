"""Service layer: repository engines built on the core ports."""

from .identifiable_repository import IdentifiableRepository

__all__ = ["IdentifiableRepository"]
