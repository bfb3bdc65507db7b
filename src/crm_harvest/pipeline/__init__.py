"""
Pipeline components for view classification, candidate location, field
resolution, record assembly, merging and pass orchestration.
"""

from .view import View, classify_view, record_types_for
from .locator import CandidateLocator, LOCATORS, parse_document
from .resolvers import FieldSpec, ResolveContext, resolve_chain, resolve_fields
from .assembler import (
    ASSEMBLERS,
    CandidateOutcome,
    ExtractedBatch,
    OutcomeStatus,
    RecordAssembler,
)
from .merger import MergeResult, merge_records, delete_record
from .progress import ProgressReporter, ProgressStatus
from .pipeline import ExtractionPipeline, ExtractionResult, PipelineState

__all__ = [
    # Main Pipeline
    'ExtractionPipeline',
    'ExtractionResult',
    'PipelineState',
    # View
    'View',
    'classify_view',
    'record_types_for',
    # Location
    'CandidateLocator',
    'LOCATORS',
    'parse_document',
    # Field resolution
    'FieldSpec',
    'ResolveContext',
    'resolve_chain',
    'resolve_fields',
    # Assembly
    'ASSEMBLERS',
    'CandidateOutcome',
    'ExtractedBatch',
    'OutcomeStatus',
    'RecordAssembler',
    # Merging
    'MergeResult',
    'merge_records',
    'delete_record',
    # Progress
    'ProgressReporter',
    'ProgressStatus',
]
