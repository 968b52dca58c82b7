"""
Structured logging configuration using structlog.

Every stdlib ``logging`` record is rendered as one JSON line carrying a
timestamp, level, logger name and the service name, so that contract,
tier and billing events from the API and the Celery workers land in the
same format.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

# ======================================================================
# Constants
# ======================================================================

SERVICE_NAME: str = "contract-billing"


# ======================================================================
# Custom processors
# ======================================================================


def add_service_name(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Inject the service name into every log event."""
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


# ======================================================================
# Setup
# ======================================================================


def setup_logging(log_level: str = "INFO", *, json_output: bool = True) -> None:
    """
    Configure structlog and the stdlib logging bridge.

    Call once per process: at API startup and in the Celery worker
    ``setup_logging`` signal.

    Parameters
    ----------
    log_level:
        Minimum severity level as a string (``DEBUG``, ``INFO``, ...).
    json_output:
        Render JSON lines; ``False`` switches to the console renderer for
        local development.
    """

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_name,  # type: ignore[list-item]
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )

    # Records from plain ``logging.getLogger`` callers go through the same chain.
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)


# ======================================================================
# Logger factory
# ======================================================================


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Return a bound structlog logger for *name*.

    ::

        log = get_logger("contracts").bind(customer_id="c-123")
        log.info("tier refreshed", package_type="navigator")
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]
