"""
Extraction pipeline orchestrator.

Runs one extraction pass over a page:
1. Wait for load-complete, then a fixed settle delay
2. Classify the view from the location path
3. Locate, resolve and gate candidates for each implied record type
4. Merge each non-empty batch through the repository (one transaction per type)
5. Report per-type stored counts

A pipeline instance runs exactly one pass: idle → extracting → done | failed.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog

from ..config import config
from ..errors import PipelineError, StoreError
from ..logging import PipelineTimer, logging_context
from ..models.records import RecordType
from ..page import ContentChangeDetector, PageSource
from .assembler import ASSEMBLERS, ExtractedBatch
from .locator import LOCATORS, parse_document
from .progress import ProgressReporter, ProgressStatus
from .view import View, classify_view, record_types_for

if TYPE_CHECKING:
    from ..repository import CollectionRepository

logger = structlog.get_logger(__name__)


# =============================================================================
# Result Model
# =============================================================================


class PipelineState(str, Enum):
    IDLE = 'idle'
    EXTRACTING = 'extracting'
    DONE = 'done'
    FAILED = 'failed'


@dataclass
class ExtractionResult:
    """
    Outcome of one extraction pass.

    ``counts`` holds the stored total per record type after the pass;
    ``extracted`` holds how many records this pass produced per type.
    ``candidate_report`` holds, per extracted type, the accepted ids and the
    candidates whose field resolution failed.
    """

    success: bool
    counts: dict[str, int] = field(default_factory=dict)
    error: str | None = None

    view: str | None = None
    extracted: dict[str, int] = field(default_factory=dict)
    message: str = ''
    content_changed: bool | None = None
    candidate_report: dict[str, dict[str, Any]] = field(default_factory=dict)
    stage_timings: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Wire form: ``{success, counts}`` or ``{success, error}``."""
        if self.success:
            return {'success': True, 'counts': dict(self.counts)}
        return {'success': False, 'error': self.error or 'Unknown error'}


def summary_message(extracted: dict[str, int]) -> str:
    if sum(extracted.values()) == 0:
        return 'No data found on this page'
    return (
        f"Extracted: {extracted.get('contacts', 0)} contacts, "
        f"{extracted.get('deals', 0)} deals, {extracted.get('tasks', 0)} tasks"
    )


# =============================================================================
# ExtractionPipeline
# =============================================================================


class ExtractionPipeline:
    """
    Orchestrates a single extraction pass.

    Responsibilities:
    - Own the pass lifecycle and its progress reporter
    - Bound the wait for dynamic content to one fixed settle delay
    - Route the view to the locators and assemblers it implies
    - Merge batches through the repository and summarize counts
    - Turn store failures into a failed result without partial writes
    """

    def __init__(
        self,
        page: PageSource,
        repository: 'CollectionRepository',
        settle_delay: float | None = None,
        change_detector: ContentChangeDetector | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize the pipeline for one pass.

        Args:
            page: Page to extract from
            repository: Transactional access to persisted collections
            settle_delay: Seconds to wait after load-complete
                          (defaults to config.SETTLE_DELAY_SECONDS)
            change_detector: Optional detector carried across passes
            sleep: Awaitable sleep used for the settle delay
        """
        self.page = page
        self.repository = repository
        self.settle_delay = config.SETTLE_DELAY_SECONDS if settle_delay is None else settle_delay
        self.change_detector = change_detector
        self._sleep = sleep
        self._state = PipelineState.IDLE
        self.reporter: ProgressReporter | None = None

    @property
    def state(self) -> PipelineState:
        return self._state

    async def extract(self) -> ExtractionResult:
        """
        Run the pass.

        Returns:
            ExtractionResult (success=False when the store fails)

        Raises:
            PipelineError: If this pipeline has already run
        """
        if self._state != PipelineState.IDLE:
            raise PipelineError(
                'Extraction pass already started',
                context={'state': self._state.value},
            )

        self._state = PipelineState.EXTRACTING
        pass_id = uuid4().hex
        timer = PipelineTimer()
        self.reporter = ProgressReporter(pass_id)
        self.reporter.show('Extracting data...', ProgressStatus.EXTRACTING)

        try:
            with logging_context(pass_id=pass_id):
                result = await self._run(timer)
            self._state = PipelineState.DONE
            self.reporter.show(result.message, ProgressStatus.SUCCESS)
            return result
        except (StoreError, PipelineError) as exc:
            self._state = PipelineState.FAILED
            self.reporter.show(f'Extraction failed: {exc.message}', ProgressStatus.ERROR)
            logger.error('extraction_pipeline.failed', pass_id=pass_id, error=str(exc))
            return ExtractionResult(
                success=False,
                error=exc.message,
                stage_timings=timer.summary(),
            )
        except Exception:
            self._state = PipelineState.FAILED
            self.reporter.show('Extraction failed', ProgressStatus.ERROR)
            raise
        finally:
            self.reporter.close()

    async def _run(self, timer: PipelineTimer) -> ExtractionResult:
        with timer.stage('settle'):
            await self.page.wait_until_loaded()
            if self.settle_delay > 0:
                await self._sleep(self.settle_delay)

        html = await self.page.html()
        document = parse_document(html)
        content_changed = (
            self.change_detector.observe(html) if self.change_detector is not None else None
        )

        view = classify_view(self.page.path)
        logger.info('extraction_pipeline.started', view=view.value, path=self.page.path)

        with logging_context(view=view.value):
            batches = self._extract_batches(document, view, timer)

            counts: dict[str, int] = {}
            for record_type in RecordType:
                batch = batches.get(record_type)
                with timer.stage(f'merge_{record_type.value}'):
                    if batch is not None and batch.records:
                        merged = await self.repository.merge_batch(record_type, batch.records)
                        counts[record_type.value] = merged.total
                    else:
                        stored = await self.repository.get_typed(record_type)
                        counts[record_type.value] = len(stored.records)

        extracted = {
            t.value: len(batches[t].records) if t in batches else 0 for t in RecordType
        }
        candidate_report = {t.value: batch.failures().to_dict() for t, batch in batches.items()}
        result = ExtractionResult(
            success=True,
            counts=counts,
            view=view.value,
            extracted=extracted,
            message=summary_message(extracted),
            content_changed=content_changed,
            candidate_report=candidate_report,
            stage_timings=timer.summary(),
        )
        logger.info(
            'extraction_pipeline.complete',
            extracted=extracted,
            counts=counts,
            failed_candidates={t: r['failure_count'] for t, r in candidate_report.items()},
            timings=result.stage_timings,
        )
        return result

    def _extract_batches(
        self,
        document: Any,
        view: View,
        timer: PipelineTimer,
    ) -> dict[RecordType, ExtractedBatch]:
        timestamp_ms = int(time.time() * 1000)
        batches: dict[RecordType, ExtractedBatch] = {}
        for record_type in record_types_for(view):
            with timer.stage(f'locate_{record_type.value}'):
                candidates = LOCATORS[record_type].locate(document)
                batches[record_type] = ASSEMBLERS[record_type].assemble_batch(
                    candidates, timestamp_ms
                )
        return batches
