"""
Pass-scoped progress reporting.

One reporter is created per extraction pass and closed when the pass
ends. It keeps the messages shown during the pass and mirrors them to the
structured log.
"""

from dataclasses import dataclass
from enum import Enum

import structlog

logger = structlog.get_logger(__name__)


class ProgressStatus(str, Enum):
    EXTRACTING = 'extracting'
    SUCCESS = 'success'
    ERROR = 'error'


@dataclass(frozen=True)
class ProgressMessage:
    message: str
    status: ProgressStatus


class ProgressReporter:
    """Progress messages for a single extraction pass."""

    def __init__(self, pass_id: str):
        self.pass_id = pass_id
        self.messages: list[ProgressMessage] = []
        self.closed = False

    @property
    def current(self) -> ProgressMessage | None:
        return self.messages[-1] if self.messages else None

    def show(self, message: str, status: ProgressStatus = ProgressStatus.EXTRACTING) -> None:
        """Replace the current message."""
        if self.closed:
            return
        self.messages.append(ProgressMessage(message=message, status=status))
        log = logger.error if status == ProgressStatus.ERROR else logger.info
        log('progress.update', message=message, status=status.value)

    def close(self) -> None:
        self.closed = True
