"""Logging setup for the Character Studio API server.

Module loggers stay plain ``logging.getLogger(__name__)`` loggers; their
records are rendered by structlog so that fields bound for the running
composition job (``job_id``, ``layers``) show up on every line.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Iterator

import structlog

QUIET_LOGGERS = ("httpx", "httpcore", "google_genai", "PIL", "urllib3", "multipart")


def _drop_empty_fields(_logger, _method_name, event_dict):
    return {key: value for key, value in event_dict.items() if value is not None}


def setup_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Route stdlib logging through structlog renderers.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        json_output: Emit one JSON object per line instead of colored console text
    """
    pre_chain = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        _drop_empty_fields,
    ]
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def job_log_context(job_id: str, **fields) -> Iterator[None]:
    """Bind a composition job's id (and any extra fields) to log lines in this task."""
    with structlog.contextvars.bound_contextvars(job_id=job_id, **fields):
        yield
