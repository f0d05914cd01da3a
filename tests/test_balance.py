from decimal import Decimal

import pytest

from reparto.models import PaymentMode
from reparto.services.balance import mode_for_delivery, settle_balance


def test_unpaid_adds_delivery_to_debt():
    t = settle_balance(Decimal("100"), Decimal("100"), PaymentMode.UNPAID)
    assert t.new_balance == Decimal("200.00")
    assert t.amount_paid == Decimal("0.00")
    assert t.total_owed == Decimal("200.00")


def test_full_payment_clears_previous_debt_too():
    t = settle_balance(Decimal("100"), Decimal("50"), PaymentMode.PAID_FULL)
    assert t.new_balance == Decimal("0.00")
    assert t.amount_paid == Decimal("150.00")


def test_partial_payment_pays_oldest_debt_first():
    t = settle_balance(Decimal("0"), Decimal("300"), PaymentMode.PAID_PARTIAL, Decimal("100"))
    assert t.new_balance == Decimal("200.00")
    assert t.amount_paid == Decimal("100.00")

    t = settle_balance(Decimal("80"), Decimal("50"), PaymentMode.PAID_PARTIAL, Decimal("100"))
    assert t.new_balance == Decimal("30.00")


@pytest.mark.parametrize("prior,total,paid", [
    ("0", "50", "500"),
    ("10", "0", "10.01"),
    ("0", "0", "1"),
])
def test_partial_overpayment_never_goes_negative(prior, total, paid):
    t = settle_balance(Decimal(prior), Decimal(total), PaymentMode.PAID_PARTIAL, Decimal(paid))
    assert t.new_balance == Decimal("0.00")


def test_empty_unpaid_delivery_keeps_balance():
    t = settle_balance(Decimal("75.50"), Decimal("0"), PaymentMode.UNPAID)
    assert t.new_balance == Decimal("75.50")


def test_float_inputs_are_rounded_to_cents():
    t = settle_balance(0.1, 0.2, PaymentMode.UNPAID)
    assert t.new_balance == Decimal("0.30")


def test_legacy_deliveries_map_pagado_flag():
    assert mode_for_delivery(None, True) == PaymentMode.PAID_FULL
    assert mode_for_delivery(None, False) == PaymentMode.UNPAID
    assert mode_for_delivery(PaymentMode.PAID_PARTIAL, True) == PaymentMode.PAID_PARTIAL


def test_unknown_mode_is_rejected():
    with pytest.raises(ValueError):
        settle_balance(Decimal("0"), Decimal("10"), "fiado")
