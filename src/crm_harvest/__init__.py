"""
CRM Harvest

Heuristic extraction of contacts, deals and tasks from CRM web pages, with a
deduplicated, incrementally updated local collection.
"""

__version__ = '0.1.0'

# Re-export key classes for convenience
from .pipeline import (
    ExtractionPipeline,
    ExtractionResult,
    PipelineState,
    View,
    classify_view,
    merge_records,
    MergeResult,
)
from .repository import CollectionRepository
from .page import PageSource, StaticPage, ContentChangeDetector
from .clients import MemoryStore, SqlStore, create_store
from .models import Contact, Deal, Task, TaskType, RecordType, Collection, TypedCollection
from .logging import (
    configure_logging,
    get_logger,
    logging_context,
    PipelineTimer,
)
from .errors import (
    CrmHarvestError,
    PipelineError,
    CandidateExtractionError,
    MergeError,
    StoreError,
    StoreConflictError,
    StoreDecodeError,
    StoreUnavailableError,
    PartialSuccessResult,
)

__all__ = [
    # Version
    '__version__',
    # Main Pipeline
    'ExtractionPipeline',
    'ExtractionResult',
    'PipelineState',
    'View',
    'classify_view',
    'merge_records',
    'MergeResult',
    # Repository and stores
    'CollectionRepository',
    'MemoryStore',
    'SqlStore',
    'create_store',
    # Pages
    'PageSource',
    'StaticPage',
    'ContentChangeDetector',
    # Models
    'Contact',
    'Deal',
    'Task',
    'TaskType',
    'RecordType',
    'Collection',
    'TypedCollection',
    # Logging
    'configure_logging',
    'get_logger',
    'logging_context',
    'PipelineTimer',
    # Errors
    'CrmHarvestError',
    'PipelineError',
    'CandidateExtractionError',
    'MergeError',
    'StoreError',
    'StoreConflictError',
    'StoreDecodeError',
    'StoreUnavailableError',
    'PartialSuccessResult',
]
