"""Job correlation logging context for tracing a booking through the engine.

Provides a job-aware logger that attaches the current job id to every log
record, so a single job's dispatch, responses and cascade can be followed
across the selector, dispatcher and resolver.

Usage:
    from assignment_engine.logging_context import get_job_logger, set_job_id

    set_job_id("JOB-42")
    logger = get_job_logger(__name__)
    logger.info("Dispatching")  # record.job_id == "JOB-42"
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

_job_id: ContextVar[str] = ContextVar("job_id", default="NO_JOB")


def set_job_id(job_id: str) -> None:
    """Set the correlation ID for the current context."""
    _job_id.set(job_id)


def get_job_id() -> str:
    """Retrieve the current correlation ID."""
    return _job_id.get()


@contextmanager
def job_context(job_id: str) -> Iterator[None]:
    """Bind ``job_id`` for the duration of a block, restoring the previous one."""
    token = _job_id.set(job_id)
    try:
        yield
    finally:
        _job_id.reset(token)


class JobIdFilter(logging.Filter):
    """Injects job_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.job_id = _job_id.get()  # type: ignore[attr-defined]
        return True


def get_job_logger(name: str) -> logging.Logger:
    """Return a logger with the JobIdFilter attached.

    The filter adds ``job_id`` to each record so formatters can
    include ``%(job_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, JobIdFilter) for f in logger.filters):
        logger.addFilter(JobIdFilter())
    return logger


def install_job_filter(logger: Optional[logging.Logger] = None) -> None:
    """Attach a JobIdFilter to every handler of ``logger`` (the root by default).

    Handler filters also see records propagated from loggers that never
    went through ``get_job_logger``, so ``%(job_id)s`` is safe to format.
    """
    target = logger if logger is not None else logging.getLogger()
    for handler in target.handlers:
        if not any(isinstance(f, JobIdFilter) for f in handler.filters):
            handler.addFilter(JobIdFilter())
