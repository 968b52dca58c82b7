"""Celery-backed implementation of the Scheduler port."""

from __future__ import annotations

import logging
from typing import Any

from application.services.ports import UnitOfWork

logger = logging.getLogger(__name__)


class CeleryScheduler:
    """Sends each unit of work as a Celery task message.

    Errors from the broker propagate to the caller.
    """

    def __init__(self, celery_app: Any | None = None) -> None:
        if celery_app is None:
            from application.tasks.celery_app import app as celery_app

        self._app = celery_app

    def enqueue(self, unit: UnitOfWork) -> None:
        result = self._app.send_task(unit.task, kwargs=unit.kwargs, queue=unit.queue)
        logger.info("Task %s queued on %s as %s", unit.task, unit.queue, result.id)
