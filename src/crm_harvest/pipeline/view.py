"""
View classification from the page location.

The current path decides which record types a pass extracts. Markers are
checked in a fixed priority order (contacts, deals, tasks) so a path such
as ``/contacts/12/deals`` is still a contacts view.
"""

from enum import Enum

from ..models.records import RecordType


class View(str, Enum):
    """Classification of the current page."""

    CONTACTS = 'contacts'
    DEALS = 'deals'
    TASKS = 'tasks'
    UNKNOWN = 'unknown'


VIEW_MARKERS: list[tuple[View, tuple[str, ...]]] = [
    (View.CONTACTS, ('/contacts', '/contact')),
    (View.DEALS, ('/deals', '/deal', '/pipeline')),
    (View.TASKS, ('/tasks', '/task')),
]


def classify_view(path: str) -> View:
    """Map a location path to a view tag; first matching marker wins."""
    for view, markers in VIEW_MARKERS:
        if any(marker in path for marker in markers):
            return view
    return View.UNKNOWN


def record_types_for(view: View) -> list[RecordType]:
    """Record types extracted for a view; an unknown view extracts all of them."""
    if view == View.UNKNOWN:
        return list(RecordType)
    return [RecordType(view.value)]
