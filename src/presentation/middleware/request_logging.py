"""
Structured request logging middleware.

Each request is logged once as an ``http_request`` event. The request id
and the acting user (``X-User-Email``) are bound to structlog's context
variables for the duration of the request, so service and repository log
lines emitted while handling it carry the same correlation fields.
"""

from __future__ import annotations

import time
import uuid
from typing import Any

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

logger: structlog.stdlib.BoundLogger = structlog.get_logger("contract_billing.request")

REQUEST_ID_HEADER = "X-Request-ID"
USER_EMAIL_HEADER = "X-User-Email"

# Path parameters copied onto the request event when the route has them.
_LOGGED_PATH_PARAMS = ("contract_id", "customer_id")


def _level_for(status_code: int) -> str:
    if status_code >= 500:
        return "error"
    if status_code >= 400:
        return "warning"
    return "info"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every HTTP request with its outcome and correlation fields."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        context: dict[str, Any] = {"request_id": request_id}
        user_email = request.headers.get(USER_EMAIL_HEADER)
        if user_email:
            context["user_email"] = user_email
        structlog.contextvars.bind_contextvars(**context)

        start = time.perf_counter()
        try:
            response: Response = await call_next(request)
        except Exception:
            self._log(request, 500, start, **context)
            raise
        finally:
            structlog.contextvars.unbind_contextvars(*context)

        response.headers[REQUEST_ID_HEADER] = request_id
        self._log(request, response.status_code, start, **context)
        return response

    @staticmethod
    def _log(request: Request, status_code: int, start: float, **fields: Any) -> None:
        event: dict[str, Any] = {
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            **fields,
        }
        if request.url.query:
            event["query"] = request.url.query
        for name in _LOGGED_PATH_PARAMS:
            if name in request.path_params:
                event[name] = request.path_params[name]

        getattr(logger, _level_for(status_code))("http_request", **event)
