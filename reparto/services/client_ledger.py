# reparto/services/client_ledger.py
"""
Movimientos del saldo de un cliente: aplicar una transición de saldo,
actualizar la foto de la última entrega y registrar pagos a cuenta.
"""
import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from reparto.crud.clients import get_client_for_update
from reparto.exceptions import NotFoundError, ValidationError
from reparto.models import Client, ClientLedgerEntry, ClientPayment, Delivery, PaymentMode
from reparto.schemas.clients import ClientPaymentCreate
from reparto.services.balance import BalanceTransition, settle_balance
from reparto.services.transactions import run_in_transaction
from reparto.utils.dates import as_utc_naive, utcnow
from reparto.utils.money import to_money, ZERO

logger = logging.getLogger(__name__)


def apply_balance(
    db: Session,
    client: Client,
    transition: BalanceTransition,
    description: str,
    delivery_id: Optional[int] = None,
    payment_id: Optional[int] = None,
) -> ClientLedgerEntry:
    client.saldo_pendiente = transition.new_balance
    client.updated_at = utcnow()

    entry = ClientLedgerEntry(
        tenant_id=client.tenant_id,
        client_id=client.id,
        delivery_id=delivery_id,
        payment_id=payment_id,
        amount=transition.new_balance - transition.prior_balance,
        balance_after=transition.new_balance,
        description=description,
    )
    db.add(entry)
    return entry


def apply_delivery_snapshot(client: Client, delivery: Delivery) -> bool:
    """
    Copia al cliente los datos de la entrega. No pisa una entrega más nueva
    (un trigger atrasado no debe volver la foto hacia atrás).
    """
    last = client.ultima_entrega_fecha
    if last is not None and as_utc_naive(delivery.fecha) < as_utc_naive(last):
        return False

    client.sodas = delivery.sodas or 0
    client.bidones10 = delivery.bidones10 or 0
    client.bidones20 = delivery.bidones20 or 0
    client.envases_devueltos = delivery.envases_devueltos or 0
    client.ultimo_total = delivery.total
    client.ultimo_pagado = bool(delivery.pagado)
    client.ultima_entrega_fecha = delivery.fecha
    client.updated_at = utcnow()
    return True


def delivery_description(delivery: Delivery) -> str:
    mode = delivery.tipo_pago.value if delivery.tipo_pago else ("pagado" if delivery.pagado else "no_pagado")
    return f"Entrega #{delivery.id} ({mode})"


def register_payment(
    db: Session,
    tenant_id: int,
    client_id: int,
    payment_in: ClientPaymentCreate,
    user_id: Optional[int] = None,
) -> Tuple[ClientPayment, BalanceTransition]:
    """
    Pago a cuenta sin entrega: equivale a un pago parcial de una entrega de $0.
    """
    amount = to_money(payment_in.amount)
    if amount <= ZERO:
        raise ValidationError("El monto del pago debe ser mayor a cero")
    if payment_in.medio_pago is None:
        raise ValidationError("El medio de pago es obligatorio")

    def work():
        # Un cliente dado de baja puede seguir pagando lo que debe
        client = get_client_for_update(db, tenant_id, client_id, active_only=False)
        if not client:
            raise NotFoundError("Cliente no encontrado")

        transition = settle_balance(client.saldo_pendiente, ZERO, PaymentMode.PAID_PARTIAL, amount)

        payment = ClientPayment(
            tenant_id=tenant_id,
            client_id=client.id,
            created_by_id=user_id,
            amount=amount,
            medio_pago=payment_in.medio_pago,
            nota=payment_in.nota,
            fecha=utcnow(),
        )
        db.add(payment)
        db.flush()

        apply_balance(
            db, client, transition,
            description=f"PAGO RECIBIDO: {payment_in.nota or payment_in.medio_pago.value}",
            payment_id=payment.id,
        )
        db.flush()
        return payment, transition

    payment, transition = run_in_transaction(db, work, description="el pago")
    logger.info(
        "Pago de $%s registrado para cliente %s (saldo %s -> %s)",
        amount, client_id, transition.prior_balance, transition.new_balance,
    )
    return payment, transition
