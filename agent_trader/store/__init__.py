from .base import PersistenceStore
from .memory import InMemoryStore
from .sql import SqlAlchemyStore

__all__ = ["PersistenceStore", "InMemoryStore", "SqlAlchemyStore"]
