"""Celery application configuration for the contract billing engine.

Sets up the broker, result backend, serialisation, task routing and retry
policies. Tier refreshes and per-contract aggregations are fanned out as
one task per unit of work on the ``contracts`` queue.
"""

from __future__ import annotations

from celery import Celery
from celery.signals import setup_logging as celery_setup_logging

from infrastructure.settings import get_settings

_settings = get_settings()

app = Celery("contract_billing")

# ---------------------------------------------------------------------------
# Broker and result backend
# ---------------------------------------------------------------------------

app.conf.broker_url = _settings.celery_broker_url
app.conf.result_backend = _settings.celery_result_backend

# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------

app.conf.accept_content = ["json"]
app.conf.task_serializer = "json"
app.conf.result_serializer = "json"

# ---------------------------------------------------------------------------
# Task routing
# ---------------------------------------------------------------------------

app.conf.task_routes = {
    "application.tasks.contract_tasks.*": {"queue": _settings.contracts_queue},
}

# ---------------------------------------------------------------------------
# Default retry policy
# ---------------------------------------------------------------------------

app.conf.task_annotations = {
    "*": {
        "max_retries": 3,
        "default_retry_delay": 60,
        "retry_backoff": True,
        "retry_backoff_max": 600,
        "retry_jitter": True,
    },
}

# ---------------------------------------------------------------------------
# Miscellaneous
# ---------------------------------------------------------------------------

app.conf.task_acks_late = True
app.conf.worker_prefetch_multiplier = 1
app.conf.task_track_started = True
app.conf.task_time_limit = 900  # hard limit: 15 minutes
app.conf.task_soft_time_limit = 840
app.conf.timezone = "UTC"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@celery_setup_logging.connect
def _configure_worker_logging(**_: object) -> None:
    from infrastructure.observability.logging_config import setup_logging

    setup_logging(_settings.log_level)


# ---------------------------------------------------------------------------
# Task modules
# ---------------------------------------------------------------------------

app.conf.imports = ("application.tasks.contract_tasks",)
