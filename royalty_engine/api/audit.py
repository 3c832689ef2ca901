"""Post-commit audit publishing for API routes."""

import logging

from royalty_engine.models.order import Order
from royalty_engine.models.royalty import RoyaltyEarning
from royalty_engine.models.transaction import Transaction
from royalty_engine.worker import audit_ledger_event

logger = logging.getLogger(__name__)


def order_payload(order: Order) -> dict:
    return {
        "reference": order.reference,
        "order_id": str(order.id),
        "user_id": str(order.user_id),
        "asset_id": str(order.asset_id),
        "order_type": order.order_type.value,
        "status": order.status.value,
        "quantity": order.quantity,
        "price": str(order.price),
        "total": str(order.total),
        "realized_gain": None if order.realized_gain is None else str(order.realized_gain),
    }


def transaction_payload(transaction: Transaction) -> dict:
    return {
        "reference": transaction.reference,
        "transaction_id": str(transaction.id),
        "user_id": str(transaction.user_id),
        "wallet_id": str(transaction.wallet_id),
        "kind": transaction.kind.value,
        "status": transaction.status.value,
        "amount": str(transaction.amount),
        "method": transaction.method.value,
    }


def royalty_payload(earning: RoyaltyEarning) -> dict:
    return {
        "reference": earning.reference,
        "earning_id": str(earning.id),
        "user_id": str(earning.user_id),
        "wallet_id": str(earning.wallet_id),
        "asset_id": str(earning.asset_id),
        "period": earning.period,
        "royalty_type": earning.royalty_type.value,
        "status": earning.status.value,
        "shares": earning.shares,
        "amount": str(earning.amount),
    }


def publish(event: str, data: dict) -> None:
    """Queue an audit event. Call only after the action's commit."""
    audit_ledger_event.delay(event=event, data=data)
    logger.debug("Queued audit event %s for %s", event, data.get("reference"))
