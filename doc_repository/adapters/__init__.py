"""Infrastructure adapter exports."""

from .mongo_store import MongoSession, MongoStore
from .tinydb_store import TinyDBSession, TinyDBStore

__all__ = [
    "MongoSession",
    "MongoStore",
    "TinyDBSession",
    "TinyDBStore",
]
