"""
Resolver chains for contact, deal and task fields.

Each ``*_FIELDS`` tuple lists the fields of one record type in resolution
order. Chains are tried front to back; see ``resolvers.resolve_chain``.
"""

import re

from bs4 import Tag

from ..models.records import TaskType
from .resolvers import (
    EMAIL_PATTERN,
    CURRENCY_PATTERN,
    Attribute,
    CellPattern,
    ClosestAttribute,
    Computed,
    FieldRef,
    FieldSpec,
    FirstCell,
    LastCell,
    NthCell,
    ResolveContext,
    SelectAttribute,
    SelectText,
    TextPattern,
)

# Phone shapes in priority order; digits are ASCII only
PHONE_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r'\+[0-9]{1,3}\s?[0-9]{4,5}\s?[0-9]{4,5}'),  # +91 70275 17327
    re.compile(r'\([0-9]{3}\)\s?[0-9]{3}-?[0-9]{4}'),  # (123) 456-7890
    re.compile(r'[0-9]{3}[-.\s]?[0-9]{3}[-.\s]?[0-9]{4}'),  # 123-456-7890
    re.compile(r'\+[0-9]{10,15}'),  # +919876543210
    re.compile(r'[0-9]{10,15}'),  # 9876543210
)

# Due-date shapes in priority order
DUE_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r'[0-9]+\s+(minute|hour|day|week|month)s?\s+ago', re.IGNORECASE),
    re.compile(r'[0-9]{1,2}/[0-9]{1,2}/[0-9]{2,4}'),
    re.compile(r'[0-9]{4}-[0-9]{2}-[0-9]{2}'),
    re.compile(r'(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\s+[0-9]{1,2}', re.IGNORECASE),
)

STATUS_PATTERN = re.compile(r'(incomplete|complete|pending)', re.IGNORECASE)
DIGITS_ONLY = re.compile(r'^[0-9]+$')

TAG_SELECTOR = '.badge, .tag, [class*="tag"], .label, [class*="badge"]'
TASK_BADGE_SELECTOR = '.badge, [class*="badge"], .label'
CONTACT_LINK = 'a[href*="/contact/"]'
DEAL_LINK = 'a[href*="/deal/"]'

TASK_TYPE_KEYWORDS: tuple[TaskType, ...] = (TaskType.CALL, TaskType.EMAIL, TaskType.MEETING)


# =============================================================================
# Fallback Ids
# =============================================================================


def positional_id(prefix: str) -> Computed:
    """Fallback id from the candidate position and the pass timestamp."""
    return Computed(lambda element, ctx: f'{prefix}-{ctx.position}-{ctx.timestamp_ms}')


def _task_title_id(element: Tag, ctx: ResolveContext) -> str:
    slug = re.sub(r'\s+', '-', ctx.resolved.get('title', ''))
    return f'task-{slug}-{ctx.position}-{ctx.timestamp_ms}'


# =============================================================================
# Predicates and Converters
# =============================================================================


def _looks_like_name(text: str, ctx: ResolveContext) -> bool:
    return '@' not in text and not DIGITS_ONLY.match(text) and len(text) > 1


def _looks_like_assignee(text: str, ctx: ResolveContext) -> bool:
    return (
        2 <= len(text) < 50
        and text != ctx.resolved.get('title')
        and 'minute' not in text
        and 'hour' not in text
        and not STATUS_PATTERN.search(text)
    )


def _collect_tags(element: Tag, ctx: ResolveContext) -> list[str]:
    tags = [el.get_text().strip() for el in element.select(TAG_SELECTOR)]
    return [t for t in tags if t]


def _task_type(element: Tag, ctx: ResolveContext) -> str | None:
    badge = element.select_one(TASK_BADGE_SELECTOR)
    source = (badge.get_text() if badge is not None else '') or ctx.resolved.get('title', '')
    source = source.lower()
    for task_type in TASK_TYPE_KEYWORDS:
        if task_type.value in source:
            return task_type.value
    return None


def parse_amount(text: str) -> float:
    """Parse a currency string such as ``$12,500.00``; unparseable text is 0."""
    if not text:
        return 0.0
    try:
        return float(re.sub(r'[$,]', '', text))
    except ValueError:
        return 0.0


# =============================================================================
# Contacts
# =============================================================================


CONTACT_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec('id', (
        Attribute('data-contact-id'),
        Attribute('data-id'),
        Attribute('id'),
        positional_id('contact'),
    )),
    FieldSpec('name', (
        SelectText(CONTACT_LINK),
        FirstCell(_looks_like_name, limit=3),
    )),
    FieldSpec('email', (
        SelectAttribute('a[href^="mailto:"]', 'href', strip_prefix='mailto:'),
        TextPattern((EMAIL_PATTERN,)),
    )),
    FieldSpec('phone', (
        SelectText('a[href^="tel:"]'),
        CellPattern(PHONE_PATTERNS),
        TextPattern(PHONE_PATTERNS[:3]),
    )),
    FieldSpec('tags', (Computed(_collect_tags),), default=(), convert=list),
    FieldSpec('owner', (
        SelectText('[class*="owner"], [class*="user"], .avatar + span, [title*="owner"]'),
        LastCell(max_length=50),
    )),
)


# =============================================================================
# Deals
# =============================================================================


DEAL_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec('id', (
        Attribute('data-deal-id'),
        Attribute('data-id'),
        positional_id('deal'),
    )),
    FieldSpec('title', (
        SelectText('[data-title], .title, [class*="title"], h3, h4, [class*="deal-title"]'),
    )),
    FieldSpec('value', (TextPattern((CURRENCY_PATTERN,)),), convert=parse_amount),
    FieldSpec('pipeline', (
        SelectText('[data-pipeline], [class*="pipeline"]'),
        ClosestAttribute('[data-pipeline-name]', 'data-pipeline-name'),
    )),
    FieldSpec('stage', (
        SelectText('[data-stage], [class*="stage"], [class*="status"]'),
        ClosestAttribute('[data-stage-name]', 'data-stage-name'),
    )),
    FieldSpec('contact', (
        SelectText('[data-contact], [class*="contact"], [href*="contact"]'),
    )),
    FieldSpec('owner', (
        SelectText('[data-owner], [class*="owner"], [class*="user"]'),
    )),
)


# =============================================================================
# Tasks
# =============================================================================


# Title first: the id fallback, type, and assignee chains all read it.
TASK_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec('title', (
        SelectText('a[href*="/task"], a[href*="Call"], a[href*="Email"]'),
        NthCell(1),
    )),
    FieldSpec('type', (Computed(_task_type),), default=TaskType.OTHER.value),
    FieldSpec('id', (
        Attribute('data-task-id'),
        Attribute('data-id'),
        Attribute('id'),
        Computed(_task_title_id),
    )),
    FieldSpec('due', (CellPattern(DUE_PATTERNS, whole_cell=True),)),
    FieldSpec('assignee', (
        SelectText(CONTACT_LINK),
        FirstCell(_looks_like_assignee),
    )),
    FieldSpec('linkedTo', (
        SelectText(DEAL_LINK),
        FieldRef('assignee'),
    )),
)
