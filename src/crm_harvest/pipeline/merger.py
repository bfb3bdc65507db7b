"""
Merge engine: reconcile an extracted batch with the persisted records.

The merge is an id-keyed overlay. Persisted records keep their order, a
batch record with a known id replaces the persisted one wholesale, and new
ids are appended in batch order. Nothing is ever removed here. The input
collection is not mutated; a new TypedCollection is returned so the caller
can write it in one transaction or discard it.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Sequence

import structlog

from ..errors import MergeError
from ..models.collection import TypedCollection
from ..models.records import RECORD_MODELS, Record, RecordType

logger = structlog.get_logger(__name__)


@dataclass
class MergeResult:
    """Outcome of merging one batch into one record type's collection."""

    record_type: RecordType
    collection: TypedCollection
    created: list[str]
    updated: list[str]

    @property
    def total(self) -> int:
        return len(self.collection.records)


def merge_records(
    batch: Sequence[Record],
    persisted: TypedCollection,
    now: datetime | None = None,
) -> MergeResult:
    """
    Overlay a batch onto the persisted records of the same type.

    Args:
        batch: Validated records from one extraction pass
        persisted: Current persisted collection for the batch's type
        now: Merge time (defaults to current UTC time)

    Returns:
        MergeResult with the new collection and created/updated ids

    Raises:
        MergeError: If a batch record is not of the collection's type
    """
    record_type = persisted.record_type
    model = RECORD_MODELS[record_type]
    for record in batch:
        if not isinstance(record, model):
            raise MergeError(
                f"Cannot merge {type(record).__name__} into {record_type.value}",
                context={'record_id': getattr(record, 'id', None)},
            )

    by_id: dict[str, Record] = {r.id: r for r in persisted.records}
    created: list[str] = []
    updated: list[str] = []

    for record in batch:
        if record.id in by_id:
            if record.id not in created and record.id not in updated:
                updated.append(record.id)
        else:
            created.append(record.id)
        # dict keeps first-insertion position, so replacements stay in place
        by_id[record.id] = record

    now = now or datetime.now(tz=timezone.utc)
    last_sync = now
    if persisted.last_sync is not None and persisted.last_sync > now:
        last_sync = persisted.last_sync

    merged = TypedCollection(
        record_type=record_type,
        records=list(by_id.values()),
        last_sync=last_sync,
    )

    logger.debug(
        'merger.merged',
        record_type=record_type.value,
        batch_size=len(batch),
        created=len(created),
        updated=len(updated),
        total=len(merged.records),
    )

    return MergeResult(
        record_type=record_type,
        collection=merged,
        created=created,
        updated=updated,
    )


def delete_record(persisted: TypedCollection, record_id: str) -> TypedCollection | None:
    """
    Remove exactly one record by id.

    Returns:
        The new collection, or None when the id is not present
    """
    remaining = [r for r in persisted.records if r.id != record_id]
    if len(remaining) == len(persisted.records):
        return None
    return TypedCollection(
        record_type=persisted.record_type,
        records=remaining,
        last_sync=persisted.last_sync,
    )
