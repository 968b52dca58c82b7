"""FastAPI application factory for the contract billing engine."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from domain.exceptions import DomainError
from infrastructure.container import get_container
from infrastructure.observability.logging_config import get_logger, setup_logging
from infrastructure.observability.metrics import setup_metrics
from infrastructure.settings import get_settings

from .api.v1 import contracts
from .middleware.request_logging import RequestLoggingMiddleware

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = get_logger(__name__)

APP_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging(get_settings().log_level)
    container = get_container()
    app.state.container = container
    yield


# ---------------------------------------------------------------------------
# Exception handlers (RFC 9457 Problem Details)
# ---------------------------------------------------------------------------


def _problem_json(
    status_code: int,
    title: str,
    detail: str,
    *,
    error_type: str = "about:blank",
    instance: str | None = None,
    errors: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    body: dict[str, Any] = {
        "type": error_type,
        "title": title,
        "status": status_code,
        "detail": detail,
    }
    if instance:
        body["instance"] = instance
    if errors:
        body["errors"] = errors
    return JSONResponse(
        status_code=status_code,
        content=body,
        media_type="application/problem+json",
    )


async def _domain_exception_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("domain_error", path=str(request.url.path), detail=exc.detail)
    return _problem_json(
        status_code=exc.status_code,
        title=exc.title,
        detail=exc.detail,
        error_type=exc.error_type,
        instance=str(request.url.path),
    )


async def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = []
    for err in exc.errors():
        errors.append(
            {
                "field": " -> ".join(str(loc) for loc in err.get("loc", [])),
                "message": err.get("msg", ""),
                "type": err.get("type", ""),
            }
        )
    return _problem_json(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        title="Validation Error",
        detail="The request body or parameters failed validation.",
        error_type="https://api.contracts.example/problems/validation-error",
        instance=str(request.url.path),
        errors=errors,
    )


async def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=str(request.url.path))
    return _problem_json(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        title="Internal Server Error",
        detail="An unexpected error occurred. Please try again later.",
        instance=str(request.url.path),
    )


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

API_V1_PREFIX = "/api/v1"


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="Contract Billing Engine",
        version=APP_VERSION,
        description=(
            "Contract lifecycle, customer tier entitlement and monthly "
            "invoice aggregation for navigator, solve and accelerator contracts."
        ),
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=_lifespan,
    )

    # -- CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    # -- Custom middleware
    app.add_middleware(RequestLoggingMiddleware)
    setup_metrics(app)

    # -- API routers
    app.include_router(contracts.router, prefix=API_V1_PREFIX)

    # -- Exception handlers
    app.add_exception_handler(DomainError, _domain_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)

    return app


app = create_app()


@app.get("/health", tags=["Operations"], summary="Health check", response_model=dict)
async def health_check() -> dict[str, Any]:
    return {
        "status": "healthy",
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
    }
