"""Client-displayable references for orders, transactions and royalty earnings."""

import uuid

ORDER_PREFIX = "ORD"
TRANSACTION_PREFIX = "TXN"
ROYALTY_PREFIX = "RYL"


def new_reference(prefix: str) -> str:
    """Return a unique reference such as ``ORD-9F2C61A0B4D7E3C1``."""
    return f"{prefix}-{uuid.uuid4().hex[:16].upper()}"


def new_order_reference() -> str:
    return new_reference(ORDER_PREFIX)


def new_transaction_reference() -> str:
    return new_reference(TRANSACTION_PREFIX)


def new_royalty_reference() -> str:
    return new_reference(ROYALTY_PREFIX)
