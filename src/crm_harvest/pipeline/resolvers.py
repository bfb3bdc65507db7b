"""
Field resolution strategies and the fallback-chain runner.

Every field of a record is described by a ``FieldSpec``: an ordered list of
strategies, each able to pull a value out of one candidate element. The
generic ``resolve_chain`` runner applies them in order and keeps the first
non-empty value, so the heuristics for a field are data rather than nested
branching.

Strategies are read-only. They see the candidate element and a
``ResolveContext`` holding the candidate's position, the pass timestamp and
the fields already resolved for this candidate (used by fields that depend
on earlier ones, e.g. a task's linked record defaulting to its assignee).
"""

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from bs4 import Tag

# Cell-like children of a row
CELL_SELECTOR = 'td, [role="cell"]'

EMAIL_PATTERN = re.compile(r'[\w.-]+@[\w.-]+\.\w+', re.ASCII)
CURRENCY_PATTERN = re.compile(r'\$[0-9,]+\.?[0-9]*')


# =============================================================================
# DOM Helpers
# =============================================================================


def element_text(element: Tag) -> str:
    """Concatenated text of the element and its descendants, untrimmed."""
    return element.get_text()


def cells_of(element: Tag) -> list[Tag]:
    """Cell-like descendants in document order."""
    return element.select(CELL_SELECTOR)


def cell_texts(element: Tag) -> list[str]:
    return [c.get_text().strip() for c in cells_of(element)]


# =============================================================================
# Strategy Protocol
# =============================================================================


@dataclass
class ResolveContext:
    """Per-candidate inputs shared by all strategies of one record."""

    position: int
    timestamp_ms: int
    resolved: dict[str, Any] = field(default_factory=dict)


class Strategy(Protocol):
    """A single way of resolving a field from one element."""

    def resolve(self, element: Tag, ctx: ResolveContext) -> Any | None: ...


# =============================================================================
# Strategies
# =============================================================================


@dataclass(frozen=True)
class Attribute:
    """Value of an attribute on the candidate element itself."""

    name: str

    def resolve(self, element: Tag, ctx: ResolveContext) -> str | None:
        value = element.get(self.name)
        if isinstance(value, list):
            value = ' '.join(value)
        return value.strip() if value else None


@dataclass(frozen=True)
class SelectText:
    """Trimmed text of the first descendant matching a CSS selector."""

    selector: str

    def resolve(self, element: Tag, ctx: ResolveContext) -> str | None:
        found = element.select_one(self.selector)
        return found.get_text().strip() if found is not None else None


@dataclass(frozen=True)
class SelectAttribute:
    """Attribute of the first matching descendant, with an optional prefix removed."""

    selector: str
    attribute: str
    strip_prefix: str = ''

    def resolve(self, element: Tag, ctx: ResolveContext) -> str | None:
        found = element.select_one(self.selector)
        if found is None:
            return None
        value = found.get(self.attribute) or ''
        if self.strip_prefix and value.startswith(self.strip_prefix):
            value = value[len(self.strip_prefix):]
        return value.strip()


@dataclass(frozen=True)
class ClosestAttribute:
    """Attribute of the nearest ancestor-or-self matching a CSS selector."""

    selector: str
    attribute: str

    def resolve(self, element: Tag, ctx: ResolveContext) -> str | None:
        found = element.css.closest(self.selector)
        if found is None:
            return None
        value = found.get(self.attribute)
        return value.strip() if value else None


@dataclass(frozen=True)
class TextPattern:
    """First match of any pattern, tried in order, against the element's full text."""

    patterns: tuple[re.Pattern, ...]

    def resolve(self, element: Tag, ctx: ResolveContext) -> str | None:
        text = element_text(element)
        for pattern in self.patterns:
            match = pattern.search(text)
            if match:
                return match.group(0).strip()
        return None


@dataclass(frozen=True)
class CellPattern:
    """
    Scan cells in order against a pattern battery; the first cell with any
    match wins.

    Returns the matched substring, or the whole cell text when
    ``whole_cell`` is set.
    """

    patterns: tuple[re.Pattern, ...]
    whole_cell: bool = False

    def resolve(self, element: Tag, ctx: ResolveContext) -> str | None:
        for text in cell_texts(element):
            for pattern in self.patterns:
                match = pattern.search(text)
                if match:
                    return text if self.whole_cell else match.group(0).strip()
        return None


@dataclass(frozen=True)
class NthCell:
    """Trimmed text of the cell at a fixed position."""

    index: int

    def resolve(self, element: Tag, ctx: ResolveContext) -> str | None:
        texts = cell_texts(element)
        return texts[self.index] if len(texts) > self.index else None


@dataclass(frozen=True)
class FirstCell:
    """First cell, among the first ``limit`` cells, whose text satisfies a predicate."""

    predicate: Callable[[str, ResolveContext], bool]
    limit: int | None = None

    def resolve(self, element: Tag, ctx: ResolveContext) -> str | None:
        texts = cell_texts(element)
        if self.limit is not None:
            texts = texts[: self.limit]
        for text in texts:
            if text and self.predicate(text, ctx):
                return text
        return None


@dataclass(frozen=True)
class LastCell:
    """Text of the last cell when shorter than ``max_length``."""

    max_length: int

    def resolve(self, element: Tag, ctx: ResolveContext) -> str | None:
        texts = cell_texts(element)
        if texts and len(texts[-1]) < self.max_length:
            return texts[-1]
        return None


@dataclass(frozen=True)
class FieldRef:
    """Reuse a field already resolved for this candidate."""

    name: str

    def resolve(self, element: Tag, ctx: ResolveContext) -> Any | None:
        return ctx.resolved.get(self.name)


@dataclass(frozen=True)
class Computed:
    """Arbitrary resolver function."""

    func: Callable[[Tag, ResolveContext], Any | None]

    def resolve(self, element: Tag, ctx: ResolveContext) -> Any | None:
        return self.func(element, ctx)


# =============================================================================
# Chain Runner
# =============================================================================


@dataclass(frozen=True)
class FieldSpec:
    """An ordered resolver chain for one field."""

    name: str
    strategies: tuple[Strategy, ...]
    default: Any = ''
    convert: Callable[[Any], Any] | None = None


def resolve_chain(
    strategies: Sequence[Strategy],
    element: Tag,
    ctx: ResolveContext,
    default: Any = '',
) -> Any:
    """Apply strategies in order; the first non-empty result wins."""
    for strategy in strategies:
        value = strategy.resolve(element, ctx)
        if value:
            return value
    return default


def resolve_fields(
    specs: Sequence[FieldSpec],
    element: Tag,
    ctx: ResolveContext,
) -> dict[str, Any]:
    """
    Resolve every field of a record, in declaration order.

    Each resolved value is stored in ``ctx.resolved`` before the next field
    runs, so later chains can refer back to it.
    """
    for spec in specs:
        value = resolve_chain(spec.strategies, element, ctx, spec.default)
        if spec.convert is not None:
            value = spec.convert(value)
        ctx.resolved[spec.name] = value
    return dict(ctx.resolved)
