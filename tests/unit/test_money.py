"""Unit tests for fixed-point money helpers."""

from decimal import Decimal

import pytest

from royalty_engine.core.money import (
    line_total,
    proportional_basis,
    to_money,
    to_price,
    weighted_average_price,
)


def test_to_money_rounds_half_up() -> None:
    assert to_money(Decimal("1.00005")) == Decimal("1.0001")
    assert to_money(Decimal("1.00004")) == Decimal("1.0000")
    assert str(to_money(7)) == "7.0000"


def test_to_price_keeps_eight_places() -> None:
    assert str(to_price(Decimal("0.123456789"))) == "0.12345679"


def test_line_total() -> None:
    assert line_total(Decimal("0.33333333"), 3) == Decimal("1.0000")
    assert line_total(Decimal("5"), 10) == Decimal("50.0000")


@pytest.mark.parametrize(
    "old_q, old_p, add_q, add_p, expected",
    [
        (0, Decimal("0"), 10, Decimal("5"), Decimal("5")),
        (10, Decimal("5"), 10, Decimal("7"), Decimal("6")),
        (3, Decimal("1"), 1, Decimal("2"), Decimal("1.25")),
        (1, Decimal("1"), 2, Decimal("1"), Decimal("1")),
    ],
)
def test_weighted_average_price(old_q, old_p, add_q, add_p, expected) -> None:
    assert weighted_average_price(old_q, old_p, add_q, add_p) == expected


def test_proportional_basis_partial_and_full() -> None:
    basis = Decimal("10.0000")
    assert proportional_basis(basis, 3, 1) == Decimal("3.3333")
    assert proportional_basis(basis, 3, 3) == basis


def test_partial_sells_never_leave_residue() -> None:
    """Selling 1 share at a time removes exactly the stored basis in total."""
    basis, held = Decimal("10.0000"), 3
    removed = Decimal("0")
    while held:
        part = proportional_basis(basis, held, 1)
        removed += part
        basis -= part
        held -= 1
    assert removed == Decimal("10.0000")
    assert basis == Decimal("0")
