"""
Data models for the CRM harvest pipeline.

Provides record models (Contact, Deal, Task) and the persisted
collection models.
"""

from .records import (
    Contact,
    Deal,
    Task,
    TaskType,
    RecordType,
    Record,
    record_to_dict,
    record_from_dict,
)
from .collection import Collection, TypedCollection

__all__ = [
    # Records
    'Contact',
    'Deal',
    'Task',
    'TaskType',
    'RecordType',
    'Record',
    'record_to_dict',
    'record_from_dict',
    # Collections
    'Collection',
    'TypedCollection',
]
