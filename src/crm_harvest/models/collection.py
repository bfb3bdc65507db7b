"""
Persisted collection model.

A Collection holds the deduplicated records of every type plus the time of
the last successful merge. The store persists one document per record type
(see ``TypedCollection``); ``Collection`` is the combined read view handed
to callers.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from ..errors import StoreDecodeError
from .records import (
    Contact,
    Deal,
    Record,
    RecordType,
    Task,
    record_from_dict,
    record_to_dict,
)


def to_epoch_ms(value: datetime | None) -> int | None:
    """Convert an aware datetime to epoch milliseconds."""
    if value is None:
        return None
    return int(value.timestamp() * 1000)


def from_epoch_ms(value: int | None) -> datetime | None:
    """Convert epoch milliseconds to an aware UTC datetime."""
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


class TypedCollection(BaseModel):
    """
    The persisted records of a single type, unique by id, plus its sync time.

    This is the unit of a store transaction: merges and deletes read one
    TypedCollection, derive a new one and write it back in full.
    """

    record_type: RecordType
    records: list[Record] = Field(default_factory=list)
    last_sync: datetime | None = None

    def ids(self) -> list[str]:
        return [r.id for r in self.records]

    def get(self, record_id: str) -> Record | None:
        for record in self.records:
            if record.id == record_id:
                return record
        return None

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the stored JSON layout."""
        return {
            'records': [record_to_dict(r) for r in self.records],
            'lastSync': to_epoch_ms(self.last_sync),
        }

    @classmethod
    def from_payload(
        cls,
        record_type: RecordType,
        payload: dict[str, Any] | None,
    ) -> 'TypedCollection':
        """
        Rebuild from the stored JSON layout; a missing payload is empty.

        Raises:
            StoreDecodeError: If the payload does not hold valid records
        """
        if not payload:
            return cls(record_type=record_type)
        try:
            return cls(
                record_type=record_type,
                records=[record_from_dict(record_type, r) for r in payload.get('records', [])],
                last_sync=from_epoch_ms(payload.get('lastSync')),
            )
        except (ValueError, TypeError, AttributeError, OverflowError) as exc:
            # pydantic ValidationError is a ValueError
            raise StoreDecodeError(
                f"Stored {record_type.value} document is malformed",
                context={'record_type': record_type.value, 'error_type': type(exc).__name__},
            ) from exc


class Collection(BaseModel):
    """Combined view of all persisted records."""

    contacts: list[Contact] = Field(default_factory=list)
    deals: list[Deal] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    last_sync: datetime | None = None

    def records(self, record_type: RecordType) -> list[Record]:
        return list(getattr(self, record_type.value))

    def counts(self) -> dict[str, int]:
        return {t.value: len(getattr(self, t.value)) for t in RecordType}

    @classmethod
    def from_typed(cls, parts: list[TypedCollection]) -> 'Collection':
        """Assemble the combined view; last_sync is the latest across types."""
        data: dict[str, Any] = {}
        syncs = []
        for part in parts:
            data[part.record_type.value] = part.records
            if part.last_sync is not None:
                syncs.append(part.last_sync)
        return cls(**data, last_sync=max(syncs) if syncs else None)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the stored JSON layout of the whole collection."""
        return {
            'contacts': [record_to_dict(r) for r in self.contacts],
            'deals': [record_to_dict(r) for r in self.deals],
            'tasks': [record_to_dict(r) for r in self.tasks],
            'lastSync': to_epoch_ms(self.last_sync),
        }
