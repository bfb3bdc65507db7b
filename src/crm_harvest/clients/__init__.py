"""
Store clients for persisted collections.
"""

from .base import Store, StoredDocument
from .memory_store import MemoryStore
from .sql_store import SqlStore


def create_store(url: str | None = None) -> Store:
    """Build a store from a URL; an empty URL selects the in-process store."""
    if not url:
        return MemoryStore()
    return SqlStore(url)


__all__ = ['Store', 'StoredDocument', 'MemoryStore', 'SqlStore', 'create_store']
