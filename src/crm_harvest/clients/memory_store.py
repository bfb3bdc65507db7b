"""
In-process store.

Used for tests and single-process runs. Documents are deep-copied on the
way in and out so callers can never mutate stored state in place.
"""

import copy
from typing import Any

import structlog

from ..errors import StoreConflictError
from ..models.records import RecordType
from .base import StoredDocument

logger = structlog.get_logger(__name__)


class MemoryStore:
    """Versioned dict-backed store with compare-and-set writes."""

    def __init__(self):
        self._documents: dict[RecordType, tuple[dict[str, Any], int]] = {}

    async def get(self, record_type: RecordType) -> StoredDocument:
        entry = self._documents.get(record_type)
        if entry is None:
            return StoredDocument(payload=None, version=0)
        payload, version = entry
        return StoredDocument(payload=copy.deepcopy(payload), version=version)

    async def set(
        self,
        record_type: RecordType,
        payload: dict[str, Any],
        expected_version: int,
    ) -> int:
        current = self._documents.get(record_type)
        current_version = current[1] if current else 0
        if current_version != expected_version:
            raise StoreConflictError(
                'Stored version changed since read',
                context={
                    'record_type': record_type.value,
                    'expected_version': expected_version,
                    'current_version': current_version,
                },
            )
        new_version = current_version + 1
        self._documents[record_type] = (copy.deepcopy(payload), new_version)
        logger.debug('memory_store.set', record_type=record_type.value, version=new_version)
        return new_version

    async def close(self) -> None:
        return None
