"""Core exception types shared across layers."""


class StoreError(Exception):
    """Raised when the underlying document store fails a query or transport call."""


class DuplicateKeyError(StoreError):
    """Raised when an insert or upsert collides with an existing identifier."""

    def __init__(self, key: object, collection: str | None = None) -> None:
        self.key = key
        self.collection = collection
        where = f" in {collection}" if collection else ""
        super().__init__(f"duplicate key{where}: {key!r}")


class UnsupportedOperatorError(StoreError):
    """Raised when a filter or update document uses an operator the store cannot apply."""


__all__ = [
    "StoreError",
    "DuplicateKeyError",
    "UnsupportedOperatorError",
]
