"""
Custom exceptions and error handling for the CRM harvest pipeline.

Provides:
- Typed exception hierarchy for different failure modes
- Error context preservation for debugging
- Partial success handling for per-candidate extraction
"""

from dataclasses import dataclass, field
from typing import Any


class CrmHarvestError(Exception):
    """Base exception for all CRM harvest errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


# =============================================================================
# Store Errors
# =============================================================================


class StoreError(CrmHarvestError):
    """Failure reading from or writing to the collection store."""

    pass


class StoreUnavailableError(StoreError):
    """The store backend could not be reached."""

    pass


class StoreConflictError(StoreError):
    """A compare-and-set write lost against a concurrent writer."""

    pass


class StoreDecodeError(StoreError):
    """A stored document could not be decoded into records."""

    pass


# =============================================================================
# Pipeline Errors
# =============================================================================


class PipelineError(CrmHarvestError):
    """Base class for pipeline-related errors."""

    pass


class CandidateExtractionError(PipelineError):
    """Field resolution failed for a single candidate element."""

    pass


class MergeError(PipelineError):
    """Error reconciling a batch with the persisted collection."""

    pass


# =============================================================================
# Partial Success Handling
# =============================================================================


@dataclass
class ItemResult:
    """Result for a single item in a batch operation."""

    item_id: str | None
    success: bool
    error: CrmHarvestError | None = None
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class PartialSuccessResult:
    """
    Result of a batch operation that may partially succeed.

    Allows processing to continue even when some items fail,
    while preserving error context for debugging.
    """

    succeeded: list[ItemResult] = field(default_factory=list)
    failed: list[ItemResult] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def total_count(self) -> int:
        return self.success_count + self.failure_count

    @property
    def all_succeeded(self) -> bool:
        return self.failure_count == 0

    def add_success(
        self,
        item_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Record a successful item."""
        self.succeeded.append(
            ItemResult(item_id=item_id, success=True, data=data or {})
        )

    def add_failure(
        self,
        error: CrmHarvestError,
        item_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Record a failed item."""
        self.failed.append(
            ItemResult(item_id=item_id, success=False, error=error, data=data or {})
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'success_count': self.success_count,
            'failure_count': self.failure_count,
            'total_count': self.total_count,
            'all_succeeded': self.all_succeeded,
            'succeeded_ids': [r.item_id for r in self.succeeded if r.item_id],
            'errors': [
                {'item_id': r.item_id, 'error': str(r.error)}
                for r in self.failed
                if r.error
            ],
        }


# =============================================================================
# Error Handling Utilities
# =============================================================================


def wrap_store_error(exc: Exception, context: dict[str, Any] | None = None) -> StoreError:
    """
    Wrap a store backend exception in our typed error hierarchy.

    Args:
        exc: The original exception
        context: Additional context for debugging

    Returns:
        Typed StoreError subclass
    """
    if isinstance(exc, StoreError):
        return exc

    error_str = str(exc).lower()
    ctx = context or {}
    ctx['original_error'] = str(exc)
    ctx['error_type'] = type(exc).__name__

    if 'connection' in error_str or 'connect' in error_str:
        return StoreUnavailableError(
            f"Store unavailable: {exc}",
            context=ctx,
        )
    elif 'conflict' in error_str or 'unique' in error_str:
        return StoreConflictError(
            f"Store write conflict: {exc}",
            context=ctx,
        )
    else:
        return StoreError(
            f"Store error: {exc}",
            context=ctx,
        )
