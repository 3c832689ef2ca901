"""Fixed-point helpers for monetary and price values.

Balances and amounts are stored as NUMERIC(18, 4); unit prices and average
costs as NUMERIC(18, 8). Values are always ``Decimal``, never float.
"""

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal

MONEY_PLACES = Decimal("0.0001")
PRICE_PLACES = Decimal("0.00000001")
ZERO = Decimal("0.0000")


def to_money(value: Decimal | int | str) -> Decimal:
    """Round to the ledger's 4 decimal places."""
    return Decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def floor_money(value: Decimal | int | str) -> Decimal:
    """Truncate to 4 decimal places; allocations never round up past their pool."""
    return Decimal(value).quantize(MONEY_PLACES, rounding=ROUND_DOWN)


def to_price(value: Decimal | int | str) -> Decimal:
    """Round a unit price or average cost to 8 decimal places."""
    return Decimal(value).quantize(PRICE_PLACES, rounding=ROUND_HALF_UP)


def line_total(price: Decimal, quantity: int) -> Decimal:
    """Total for ``quantity`` shares at ``price``, rounded to money."""
    return to_money(price * quantity)


def weighted_average_price(
    old_quantity: int,
    old_price: Decimal,
    added_quantity: int,
    added_price: Decimal,
) -> Decimal:
    """Average cost after adding ``added_quantity`` shares at ``added_price``."""
    new_quantity = old_quantity + added_quantity
    if new_quantity == 0:
        return to_price(added_price)
    return to_price(
        (old_quantity * old_price + added_quantity * added_price) / new_quantity
    )


def proportional_basis(cost_basis: Decimal, held: int, sold: int) -> Decimal:
    """Share of ``cost_basis`` attributable to ``sold`` out of ``held`` shares.

    Selling the whole position returns the exact stored basis so repeated
    partial sells can never leave a rounding residue behind.
    """
    if sold >= held:
        return cost_basis
    return to_money(cost_basis * sold / held)
