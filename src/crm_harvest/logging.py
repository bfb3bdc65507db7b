"""
Structured logging for extraction passes.

structlog renders console output during development and JSON in
production. Every event logged while a pass runs carries the pass-scoped
fields bound through ``logging_context`` (the pass id and, once the page is
classified, its view), so interleaved passes can be told apart in one log
stream. ``PipelineTimer`` collects per-stage durations for the pass result.
"""

import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Generator

import structlog
from structlog.types import Processor

from .config import config

# Pass-scoped fields injected into every event while bound
PASS_FIELDS = ('pass_id', 'view')

_pass_fields: dict[str, ContextVar[str | None]] = {
    name: ContextVar(name, default=None) for name in PASS_FIELDS
}


def get_pass_id() -> str | None:
    """Id of the extraction pass running in this context, if any."""
    return _pass_fields['pass_id'].get()


def get_view() -> str | None:
    """View tag of the extraction pass running in this context, if any."""
    return _pass_fields['view'].get()


def add_pass_fields(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Processor: copy bound pass fields onto the event, never overriding explicit keys."""
    for name, var in _pass_fields.items():
        value = var.get()
        if value is not None:
            event_dict.setdefault(name, value)
    return event_dict


def configure_logging(
    json_output: bool = False,
    log_level: str | None = None,
) -> None:
    """
    Configure structlog for extraction passes.

    Args:
        json_output: Render JSON lines instead of colored console output
        log_level: Override log level (defaults to config.LOG_LEVEL)
    """
    level_num = getattr(logging, (log_level or config.LOG_LEVEL).upper(), logging.INFO)

    logging.basicConfig(format='%(message)s', stream=sys.stdout, level=level_num)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_pass_fields,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def logging_context(**fields: str | None) -> Generator[None, None, None]:
    """
    Bind pass-scoped fields for the duration of a block.

    Fields passed as None keep their current value. Every bound field is
    restored on exit, including when the block raises.

    Usage:
        with logging_context(pass_id=pass_id):
            with logging_context(view='contacts'):
                logger.info('assembler.batch_complete')  # carries pass_id and view

    Raises:
        ValueError: For a field name outside PASS_FIELDS
    """
    unknown = set(fields) - set(PASS_FIELDS)
    if unknown:
        raise ValueError(f'Unknown pass fields: {sorted(unknown)}')

    tokens = [
        (_pass_fields[name], _pass_fields[name].set(value))
        for name, value in fields.items()
        if value is not None
    ]
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


class PipelineTimer:
    """
    Wall-clock durations of the stages of one pass, in milliseconds.

    Stage names used by the pipeline: ``settle``, ``locate_<type>`` and
    ``merge_<type>``.
    """

    def __init__(self):
        self.stages: dict[str, float] = {}
        self.start_time: float = time.perf_counter()

    @contextmanager
    def stage(self, name: str) -> Generator[None, None, None]:
        """Time a block; the duration is recorded even if the block raises."""
        started = time.perf_counter()
        try:
            yield
        finally:
            self.stages[name] = (time.perf_counter() - started) * 1000

    def record(self, name: str, duration_ms: float) -> None:
        self.stages[name] = duration_ms

    @property
    def total_ms(self) -> float:
        return (time.perf_counter() - self.start_time) * 1000

    def summary(self) -> dict[str, Any]:
        """Rounded timings plus the slowest stage, for results and logs."""
        slowest = max(self.stages, key=self.stages.get) if self.stages else None
        return {
            'total_ms': round(self.total_ms, 2),
            'stages': {k: round(v, 2) for k, v in self.stages.items()},
            'slowest_stage': slowest,
        }


# Development output by default; deployments call configure_logging(json_output=True)
configure_logging(json_output=False)
