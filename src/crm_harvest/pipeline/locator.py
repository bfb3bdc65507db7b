"""
Candidate location: find the elements likely to hold one record each.

A locator tries its structural queries in order and uses the first one that
returns anything; later queries are never run. A row filter then drops
header, spacer and boilerplate rows. Missing or unexpected markup simply
yields no candidates.
"""

import re
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass

from bs4 import BeautifulSoup, Tag

from ..models.records import RecordType
from .resolvers import cells_of, element_text

TASK_KEYWORDS = ('call', 'email', 'meeting', 'task', 'incomplete', 'complete')
DEAL_KEYWORDS = ('deal', 'pipeline')
DEAL_VALUE_HINT = re.compile(r'\$[0-9,]+')


def _contact_row(element: Tag) -> bool:
    # Header rows have no email and at most a couple of cells
    return '@' in element_text(element) or len(cells_of(element)) > 2


def _deal_fallback(element: Tag) -> bool:
    text = element_text(element)
    lowered = text.lower()
    return bool(DEAL_VALUE_HINT.search(text)) or any(k in lowered for k in DEAL_KEYWORDS)


def _task_row(element: Tag) -> bool:
    text = element_text(element).lower()
    return any(k in text for k in TASK_KEYWORDS) and len(text) > 10


@dataclass(frozen=True)
class CandidateLocator:
    """
    Ordered selector fallback for one record type.

    Attributes:
        record_type: Record type the candidates belong to
        selectors: CSS queries tried in order; first non-empty result is used
        row_filter: Optional predicate every candidate must pass
        fallback_selector: Broad query scanned only when every selector is empty
        fallback_filter: Predicate applied to the broad scan
    """

    record_type: RecordType
    selectors: Sequence[str]
    row_filter: Callable[[Tag], bool] | None = None
    fallback_selector: str | None = None
    fallback_filter: Callable[[Tag], bool] | None = None

    def _first_match(self, document: Tag) -> list[Tag]:
        for selector in self.selectors:
            found = document.select(selector)
            if found:
                return found
        return []

    def locate(self, document: Tag) -> Iterator[Tag]:
        """Lazily yield candidate elements in document order."""
        elements = self._first_match(document)
        row_filter = self.row_filter

        if not elements and self.fallback_selector:
            elements = document.select(self.fallback_selector)
            row_filter = self.fallback_filter

        for element in elements:
            if row_filter is None or row_filter(element):
                yield element


CONTACT_LOCATOR = CandidateLocator(
    record_type=RecordType.CONTACTS,
    selectors=(
        'table tbody tr',
        '[role="row"], .contact-row, [data-contact-id]',
    ),
    row_filter=_contact_row,
)

DEAL_LOCATOR = CandidateLocator(
    record_type=RecordType.DEALS,
    selectors=(
        '[data-deal-id]',
        '.deal-card',
        '[class*="deal"][class*="card"]',
        '[class*="deal"][class*="item"]',
        'tr[data-deal]',
        '[data-pipeline-item]',
    ),
    fallback_selector='[class*="card"], [class*="item"], tr',
    fallback_filter=_deal_fallback,
)

TASK_LOCATOR = CandidateLocator(
    record_type=RecordType.TASKS,
    selectors=('table tbody tr, [role="row"]',),
    row_filter=_task_row,
)

LOCATORS: dict[RecordType, CandidateLocator] = {
    RecordType.CONTACTS: CONTACT_LOCATOR,
    RecordType.DEALS: DEAL_LOCATOR,
    RecordType.TASKS: TASK_LOCATOR,
}


def parse_document(html: str) -> BeautifulSoup:
    """Parse page HTML into a queryable document tree."""
    return BeautifulSoup(html or '', 'html.parser')
