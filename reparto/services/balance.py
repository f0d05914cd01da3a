# reparto/services/balance.py
"""
Regla única de transición del saldo de un cliente.

La usan la liquidación síncrona de entregas, el trigger de conciliación y los
pagos a cuenta; no debe existir otra implementación.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from reparto.models.payments import PaymentMode
from reparto.utils.money import to_money, ZERO


@dataclass(frozen=True)
class BalanceTransition:
    prior_balance: Decimal
    total: Decimal
    total_owed: Decimal
    amount_paid: Decimal
    new_balance: Decimal


def settle_balance(
    prior_balance,
    total,
    payment_mode: PaymentMode,
    partial_amount=None,
) -> BalanceTransition:
    """
    La entrega nueva se suma a la deuda previa ANTES de aplicar el pago:
    el pago cancela primero la deuda más antigua.
    """
    prior = to_money(prior_balance)
    total = to_money(total)
    owed = prior + total

    if payment_mode == PaymentMode.UNPAID:
        paid = ZERO
        new_balance = owed
    elif payment_mode == PaymentMode.PAID_FULL:
        paid = owed
        new_balance = ZERO
    elif payment_mode == PaymentMode.PAID_PARTIAL:
        paid = to_money(partial_amount)
        new_balance = max(ZERO, owed - paid)
    else:
        raise ValueError(f"Tipo de pago desconocido: {payment_mode!r}")

    return BalanceTransition(
        prior_balance=prior,
        total=total,
        total_owed=owed,
        amount_paid=paid,
        new_balance=new_balance,
    )


def mode_for_delivery(tipo_pago: Optional[PaymentMode], pagado: bool) -> PaymentMode:
    # Entregas anteriores al campo tipo_pago solo tienen el booleano
    if tipo_pago is not None:
        return tipo_pago
    return PaymentMode.PAID_FULL if pagado else PaymentMode.UNPAID
