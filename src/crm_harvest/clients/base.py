"""
Store boundary for persisted collections.

A store keeps one versioned JSON document per record type. Writes are
compare-and-set: ``set`` succeeds only if the stored version still equals
the version the caller read, otherwise it raises ``StoreConflictError``.
This gives concurrent read-modify-write transactions at most one winner
even when several processes share the store.
"""

from dataclasses import dataclass
from typing import Any, Protocol

from ..models.records import RecordType


@dataclass(frozen=True)
class StoredDocument:
    """A record type's payload plus the version it was read at (0 = never written)."""

    payload: dict[str, Any] | None
    version: int


class Store(Protocol):
    """Versioned key-value store keyed by record type."""

    async def get(self, record_type: RecordType) -> StoredDocument:
        """Read the current document for a record type."""
        ...

    async def set(
        self,
        record_type: RecordType,
        payload: dict[str, Any],
        expected_version: int,
    ) -> int:
        """
        Write a document if the stored version equals ``expected_version``.

        Returns:
            The new version

        Raises:
            StoreConflictError: If another writer got there first
            StoreError: On any other backend failure
        """
        ...

    async def close(self) -> None:
        """Release backend resources."""
        ...
