"""Background Celery tasks for contract tiers, billing aggregation and support tiers."""

from __future__ import annotations

import logging
from typing import Any

from application.tasks.celery_app import app
from domain.exceptions import DomainError

logger = logging.getLogger(__name__)


@app.task(  # type: ignore[untyped-decorator]
    name="application.tasks.contract_tasks.refresh_customer_tiers",
    bind=True,
    max_retries=3,
    default_retry_delay=30,
)
def refresh_customer_tiers(self: Any, customer_id: str) -> dict[str, Any]:
    """Recompute one customer's navigator and solve tiers."""
    from infrastructure.container import get_container
    from infrastructure.observability.metrics import customer_tier_updates_total

    logger.info("Refreshing tiers for customer %s", customer_id)

    try:
        result = get_container().contract_service.refresh_customer_tiers(customer_id)
    except DomainError as exc:
        logger.error("Tier refresh for customer %s failed: %s", customer_id, exc.detail)
        return {"customer_id": customer_id, "error": exc.detail}
    except Exception as exc:
        logger.exception("Tier refresh for customer %s failed", customer_id)
        raise self.retry(exc=exc) from exc

    for package_type in result.tiers_updated:
        customer_tier_updates_total.labels(package_type=package_type.value).inc()

    return {
        "customer_id": customer_id,
        "active_flags_changed": result.active_flags_changed,
        "tiers_updated": [p.value for p in result.tiers_updated],
        "skipped_contracts": result.skipped_contracts,
    }


@app.task(  # type: ignore[untyped-decorator]
    name="application.tasks.contract_tasks.refresh_all_customer_tiers",
    bind=True,
    max_retries=3,
    default_retry_delay=120,
)
def refresh_all_customer_tiers(self: Any) -> dict[str, Any]:
    """Fan out one tier refresh per customer."""
    from infrastructure.container import get_container

    try:
        enqueued = get_container().contract_service.refresh_all_customer_tiers()
    except Exception as exc:
        logger.exception("Listing customers for tier refresh failed")
        raise self.retry(exc=exc) from exc

    return {"customers_enqueued": enqueued}


@app.task(  # type: ignore[untyped-decorator]
    name="application.tasks.contract_tasks.aggregate_invoice_data",
    bind=True,
    max_retries=3,
    default_retry_delay=120,
)
def aggregate_invoice_data(self: Any, invoice_month: str = "") -> dict[str, Any]:
    """Fan out one aggregation per billable contract."""
    from infrastructure.container import get_container

    try:
        summary = get_container().invoice_aggregation_service.aggregate_invoice_data(invoice_month)
    except DomainError as exc:
        logger.error("Invoice aggregation for %r rejected: %s", invoice_month, exc.detail)
        return {"invoice_month": invoice_month, "error": exc.detail}
    except Exception as exc:
        logger.exception("Invoice aggregation fan-out for %r failed", invoice_month)
        raise self.retry(exc=exc) from exc

    return {"month": summary.month, "contracts_enqueued": summary.enqueued}


@app.task(  # type: ignore[untyped-decorator]
    name="application.tasks.contract_tasks.aggregate_contract_invoice_data",
    bind=True,
    max_retries=5,
    default_retry_delay=60,
)
def aggregate_contract_invoice_data(self: Any, invoice_month: str, contract_id: str) -> dict[str, Any]:
    """Aggregate and store one contract's billing snapshot."""
    from infrastructure.container import get_container
    from infrastructure.observability.metrics import contract_billing_snapshots_total

    try:
        summary = get_container().invoice_aggregation_service.aggregate_invoice_data(
            invoice_month, contract_id
        )
    except DomainError as exc:
        logger.error("Aggregation of contract %s for %s failed: %s", contract_id, invoice_month, exc.detail)
        return {"contract_id": contract_id, "month": invoice_month, "error": exc.detail}
    except Exception as exc:
        logger.exception("Aggregation of contract %s for %s failed", contract_id, invoice_month)
        raise self.retry(exc=exc) from exc

    for aggregation in summary.results:
        contract_billing_snapshots_total.labels(final=str(aggregation.final).lower()).inc()

    return {
        "contract_id": contract_id,
        "month": summary.month,
        "written": bool(summary.results),
    }


@app.task(  # type: ignore[untyped-decorator]
    name="application.tasks.contract_tasks.classify_support_tiers",
    bind=True,
    max_retries=2,
    default_retry_delay=300,
)
def classify_support_tiers(self: Any) -> dict[str, Any]:
    """Record the original support tier of active Google Cloud contracts."""
    from infrastructure.container import get_container
    from infrastructure.observability.metrics import support_tier_excluded_contracts_total

    try:
        result = get_container().support_tier_service.classify_support_tiers()
    except Exception as exc:
        logger.exception("Support tier classification failed")
        raise self.retry(exc=exc) from exc

    support_tier_excluded_contracts_total.inc(len(result.excluded_contracts))

    return {
        "contracts_classified": len(result.classified),
        "assets_classified": sum(len(items) for items in result.classified.values()),
        "contracts_excluded": len(result.excluded_contracts),
    }
