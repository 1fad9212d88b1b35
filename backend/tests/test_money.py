from __future__ import annotations

from decimal import Decimal

import pytest

from ledgr.core.errors import InvalidAmount
from ledgr.schemas.invoice import LineItem
from ledgr.services.money import compute_totals, require_positive_amount


def _item(quantity, rate, description="Work"):
    return LineItem(description=description, quantity=quantity, rate=rate)


def test_totals_with_tax():
    totals = compute_totals([_item(2, 10.5)], 10)
    assert totals.subtotal == Decimal("21.0")
    assert totals.subtotal_minor_units == 2100
    assert totals.tax_minor_units == 210
    assert totals.total_minor_units == 2310
    assert totals.total == Decimal("23.10")


def test_totals_without_tax_default():
    totals = compute_totals([_item(3, 1.25), _item(1, 0.5)])
    assert totals.total_minor_units == 425
    assert totals.tax_minor_units == 0


def test_total_rounds_once_half_up():
    # 0.125 * 1 with 0% tax is exactly half a cent and rounds up.
    assert compute_totals([_item(1, 0.125)], 0).total_minor_units == 13
    # Float artefacts from binary arithmetic must not leak: 1.1 * 3 is 3.3 exactly.
    assert compute_totals([_item(3, 1.1)], 0).total_minor_units == 330


def test_single_rounding_point_not_per_component():
    # subtotal 0.333 and tax 0.0333 round to 0.37 together; rounding each first gives 0.36.
    totals = compute_totals([_item(1, 0.333)], 10)
    assert totals.total_minor_units == 37
    assert totals.subtotal_minor_units + totals.tax_minor_units == totals.total_minor_units


def test_tax_rate_none_is_zero():
    assert compute_totals([_item(1, 5)], None).total_minor_units == 500


@pytest.mark.parametrize("amount", [None, 0, -5, 1.5, True, "100"])
def test_require_positive_amount_rejects(amount):
    with pytest.raises(InvalidAmount):
        require_positive_amount(amount)


def test_require_positive_amount_accepts_int():
    assert require_positive_amount(1500) == 1500
