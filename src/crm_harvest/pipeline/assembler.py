"""
Record assembly and validation gating.

An assembler turns one candidate element into a record of its type:
resolve every field through the type's chains, build the model, and apply
the minimal-completeness gate. Each candidate produces a ``CandidateOutcome``
rather than raising, so one malformed element never aborts a batch.

Gates:
- Contact: name or email present
- Deal: title present and value > 0
- Task: title of at least 3 characters, and (title, type) unique within
  the batch (later duplicates dropped)
"""

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog
from bs4 import Tag

from ..errors import CandidateExtractionError, PartialSuccessResult
from ..models.records import Contact, Deal, Record, RecordType, Task
from .fields import CONTACT_FIELDS, DEAL_FIELDS, TASK_FIELDS
from .resolvers import FieldSpec, ResolveContext, resolve_fields

logger = structlog.get_logger(__name__)

PLACEHOLDER = 'N/A'


# =============================================================================
# Data Structures
# =============================================================================


class OutcomeStatus(str, Enum):
    """What happened to a single candidate."""

    ACCEPTED = 'accepted'
    REJECTED = 'rejected'  # failed the completeness gate
    DUPLICATE = 'duplicate'  # repeated (title, type) within a task batch
    FAILED = 'failed'  # field resolution raised


@dataclass
class CandidateOutcome:
    """Result of assembling one candidate element."""

    position: int
    status: OutcomeStatus
    record: Record | None = None
    error: CandidateExtractionError | None = None

    @property
    def accepted(self) -> bool:
        return self.status == OutcomeStatus.ACCEPTED


@dataclass
class ExtractedBatch:
    """Validated records of one type from a single extraction pass."""

    record_type: RecordType
    records: list[Record] = field(default_factory=list)
    outcomes: list[CandidateOutcome] = field(default_factory=list)

    @property
    def candidate_count(self) -> int:
        return len(self.outcomes)

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    def failures(self) -> PartialSuccessResult:
        """Per-candidate success/failure view for diagnostics."""
        result = PartialSuccessResult()
        for outcome in self.outcomes:
            if outcome.status == OutcomeStatus.FAILED and outcome.error is not None:
                result.add_failure(outcome.error, data={'position': outcome.position})
            elif outcome.accepted and outcome.record is not None:
                result.add_success(item_id=outcome.record.id)
        return result


# =============================================================================
# RecordAssembler
# =============================================================================


class RecordAssembler:
    """
    Builds and gates records of a single type.

    Responsibilities:
    - Resolve fields via the type's resolver chains
    - Build the record model and apply its completeness gate
    - Enforce within-batch (title, type) uniqueness for tasks
    - Isolate per-candidate failures
    """

    def __init__(
        self,
        record_type: RecordType,
        fields: tuple[FieldSpec, ...],
        model: type[Record],
        finalize: Callable[[dict[str, Any]], dict[str, Any]] | None = None,
        dedup_within_batch: bool = False,
    ):
        """
        Initialize the assembler.

        Args:
            record_type: Record type produced
            fields: Resolver chains, in resolution order
            model: Record model class
            finalize: Transform applied to resolved fields after the gate passes
            dedup_within_batch: Drop later candidates repeating an accepted dedup key
        """
        self.record_type = record_type
        self.fields = fields
        self.model = model
        self.finalize = finalize
        self.dedup_within_batch = dedup_within_batch

    def assemble(
        self,
        element: Tag,
        position: int,
        timestamp_ms: int,
        seen: set[tuple[str, str]] | None = None,
    ) -> CandidateOutcome:
        """
        Assemble one candidate.

        Args:
            element: Candidate element
            position: Index of the candidate within the located sequence
            timestamp_ms: Pass timestamp used by fallback ids
            seen: Dedup keys already accepted in this batch (updated in place)

        Returns:
            CandidateOutcome describing what happened
        """
        ctx = ResolveContext(position=position, timestamp_ms=timestamp_ms)
        try:
            values = resolve_fields(self.fields, element, ctx)
            record = self.model.model_validate(values)
        except Exception as exc:
            error = CandidateExtractionError(
                f"Failed to extract {self.record_type.value} candidate: {exc}",
                context={
                    'record_type': self.record_type.value,
                    'position': position,
                    'error_type': type(exc).__name__,
                },
            )
            logger.warning(
                'assembler.candidate_failed',
                record_type=self.record_type.value,
                position=position,
                error=str(exc),
            )
            return CandidateOutcome(position=position, status=OutcomeStatus.FAILED, error=error)

        if not record.is_complete():
            return CandidateOutcome(position=position, status=OutcomeStatus.REJECTED)

        if self.dedup_within_batch and seen is not None:
            key = record.dedup_key
            if key in seen:
                return CandidateOutcome(position=position, status=OutcomeStatus.DUPLICATE)
            seen.add(key)

        if self.finalize is not None:
            record = self.model.model_validate(self.finalize(record.model_dump(by_alias=True)))

        return CandidateOutcome(position=position, status=OutcomeStatus.ACCEPTED, record=record)

    def assemble_batch(
        self,
        elements: Iterable[Tag],
        timestamp_ms: int | None = None,
    ) -> ExtractedBatch:
        """
        Assemble every located candidate into a validated batch.

        Args:
            elements: Candidate elements (typically a locator generator)
            timestamp_ms: Pass timestamp; defaults to now

        Returns:
            ExtractedBatch with accepted records and all outcomes
        """
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)

        batch = ExtractedBatch(record_type=self.record_type)
        seen: set[tuple[str, str]] = set()

        for position, element in enumerate(elements):
            outcome = self.assemble(element, position, timestamp_ms, seen)
            batch.outcomes.append(outcome)
            if outcome.accepted:
                batch.records.append(outcome.record)

        logger.info(
            'assembler.batch_complete',
            record_type=self.record_type.value,
            candidates=batch.candidate_count,
            accepted=len(batch.records),
            rejected=batch.count(OutcomeStatus.REJECTED),
            duplicates=batch.count(OutcomeStatus.DUPLICATE),
            failed=batch.count(OutcomeStatus.FAILED),
        )
        return batch


def _contact_placeholders(values: dict[str, Any]) -> dict[str, Any]:
    values['name'] = values.get('name') or PLACEHOLDER
    values['email'] = values.get('email') or PLACEHOLDER
    return values


ASSEMBLERS: dict[RecordType, RecordAssembler] = {
    RecordType.CONTACTS: RecordAssembler(
        RecordType.CONTACTS,
        CONTACT_FIELDS,
        Contact,
        finalize=_contact_placeholders,
    ),
    RecordType.DEALS: RecordAssembler(RecordType.DEALS, DEAL_FIELDS, Deal),
    RecordType.TASKS: RecordAssembler(
        RecordType.TASKS,
        TASK_FIELDS,
        Task,
        dedup_within_batch=True,
    ),
}
