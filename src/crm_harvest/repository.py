"""
Collection repository: transactional access to persisted records.

Every mutation is a read-modify-write against the store for one record
type, committed with compare-and-set. A lost race re-reads and re-applies
the mutation (bounded attempts with exponential backoff), so two
concurrent merges or a merge racing a delete can never overwrite each
other's work. Any other store failure propagates unchanged and nothing is
written.
"""

from collections.abc import Callable, Sequence
from typing import Any, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .clients.base import Store
from .config import config
from .errors import StoreConflictError
from .models.collection import Collection, TypedCollection
from .models.records import Record, RecordType
from .pipeline.merger import MergeResult, delete_record, merge_records

logger = structlog.get_logger(__name__)

T = TypeVar('T')

# A mutation returns the collection to write (None = leave untouched) and a value for the caller
Mutation = Callable[[TypedCollection], tuple[TypedCollection | None, T]]


def _log_conflict(retry_state: RetryCallState) -> None:
    logger.info(
        'repository.merge_conflict',
        attempt=retry_state.attempt_number,
        error=str(retry_state.outcome.exception()) if retry_state.outcome else None,
    )


class CollectionRepository:
    """
    Transactional operations on persisted collections.

    All writes go through ``transact`` so merges and deletes share the same
    at-most-one-winner guarantee.
    """

    def __init__(self, store: Store, max_attempts: int | None = None):
        """
        Args:
            store: Versioned store backend
            max_attempts: Compare-and-set attempts per transaction
                          (defaults to config.MERGE_MAX_ATTEMPTS)
        """
        self.store = store
        self.max_attempts = max_attempts or config.MERGE_MAX_ATTEMPTS

    async def get_typed(self, record_type: RecordType) -> TypedCollection:
        """Read the persisted collection of one record type."""
        document = await self.store.get(record_type)
        return TypedCollection.from_payload(record_type, document.payload)

    async def get_collection(self) -> Collection:
        """Read the combined collection across all record types."""
        parts = [await self.get_typed(t) for t in RecordType]
        return Collection.from_typed(parts)

    async def transact(self, record_type: RecordType, mutate: Mutation) -> Any:
        """
        Run one read-modify-write transaction on a record type.

        Args:
            record_type: Store key to transact on
            mutate: Pure function of the current collection; may be re-run
                    on conflict

        Returns:
            The value produced by the winning attempt's mutation

        Raises:
            StoreConflictError: If every attempt lost its compare-and-set
            StoreError: On any other store failure (not retried)
        """
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=0.02, min=0.01, max=0.5),
            retry=retry_if_exception_type(StoreConflictError),
            before_sleep=_log_conflict,
            reraise=True,
        ):
            with attempt:
                document = await self.store.get(record_type)
                current = TypedCollection.from_payload(record_type, document.payload)
                updated, value = mutate(current)
                if updated is not None:
                    await self.store.set(record_type, updated.to_payload(), document.version)
                return value

    async def merge_batch(
        self,
        record_type: RecordType,
        batch: Sequence[Record],
    ) -> MergeResult:
        """
        Merge a validated batch into the persisted collection.

        Returns:
            MergeResult from the committed attempt
        """

        def _merge(current: TypedCollection) -> tuple[TypedCollection, MergeResult]:
            result = merge_records(batch, current)
            return result.collection, result

        result: MergeResult = await self.transact(record_type, _merge)
        logger.info(
            'repository.merged',
            record_type=record_type.value,
            created=len(result.created),
            updated=len(result.updated),
            total=result.total,
        )
        return result

    async def delete(self, record_type: RecordType, record_id: str) -> bool:
        """
        Remove exactly one record by id.

        Returns:
            True if the record existed and was removed
        """

        def _delete(current: TypedCollection) -> tuple[TypedCollection | None, bool]:
            updated = delete_record(current, record_id)
            return updated, updated is not None

        deleted: bool = await self.transact(record_type, _delete)
        logger.info(
            'repository.deleted',
            record_type=record_type.value,
            record_id=record_id,
            deleted=deleted,
        )
        return deleted
