"""
Page sources: the document and location an extraction pass reads from.

A page exposes its location path, a load-complete signal and its current
HTML. ``StaticPage`` wraps HTML that has already been captured (a saved
file, a browser snapshot). ``ContentChangeDetector`` fingerprints page
structure so a caller can tell whether a page changed between passes.
"""

import hashlib
from pathlib import Path
from typing import Protocol
from urllib.parse import urlparse

from bs4 import BeautifulSoup


class PageSource(Protocol):
    """A document plus its location."""

    @property
    def path(self) -> str: ...

    async def wait_until_loaded(self) -> None:
        """Return once the document reports load-complete."""
        ...

    async def html(self) -> str:
        """Current serialized document."""
        ...


class StaticPage:
    """An already-captured document; always loaded."""

    def __init__(self, html: str, url: str = '/'):
        self._html = html
        self.url = url

    @property
    def path(self) -> str:
        return urlparse(self.url).path

    async def wait_until_loaded(self) -> None:
        return None

    async def html(self) -> str:
        return self._html

    @classmethod
    def from_file(cls, file_path: str | Path, url: str = '/') -> 'StaticPage':
        return cls(Path(file_path).read_text(encoding='utf-8'), url=url)


class ContentChangeDetector:
    """
    Detects structural content changes between passes over the same page.

    The fingerprint covers tag names and trimmed text in document order, so
    attribute churn (e.g. client-side class toggles) does not count as a
    change while added or removed rows do.
    """

    def __init__(self):
        self._last_digest: str | None = None

    @staticmethod
    def fingerprint(html: str) -> str:
        soup = BeautifulSoup(html or '', 'html.parser')
        digest = hashlib.sha256()
        for element in soup.find_all(True):
            digest.update(element.name.encode())
            own_text = ''.join(element.find_all(string=True, recursive=False)).strip()
            digest.update(own_text.encode())
        return digest.hexdigest()

    def observe(self, html: str) -> bool:
        """
        Record the page's fingerprint.

        Returns:
            True if the content differs from the previous observation
            (always False on the first observation)
        """
        digest = self.fingerprint(html)
        changed = self._last_digest is not None and digest != self._last_digest
        self._last_digest = digest
        return changed
