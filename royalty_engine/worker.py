"""Background task definitions for post-commit audit processing."""

import logging

from celery import Task

from royalty_engine.core.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="audit_ledger_event", bind=True)
def audit_ledger_event(self: Task, event: str, data: dict) -> dict:
    """
    Write a committed ledger event to the audit log.

    Queued by the API only after the database transaction that produced the
    event has committed, so a rolled back action never leaves an audit entry.

    Args:
        event: Event name, e.g. "order.buy" or "transaction.status_updated"
        data: JSON-serializable event payload. Carries at least a
            "reference" key naming the order or transaction.

    Returns:
        dict: Result with success status, the event name and the reference
    """
    reference = data.get("reference")
    logger.info("AUDIT event=%s reference=%s data=%s", event, reference, data)

    return {
        "success": True,
        "event": event,
        "reference": reference,
        "task_id": self.request.id,
    }
