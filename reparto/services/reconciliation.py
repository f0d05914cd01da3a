# reparto/services/reconciliation.py
"""
Conciliación de una entrega ya guardada: descuenta el inventario del vehículo
y, si todavía no se hizo, aplica el saldo del cliente.

Cada efecto se marca en ``DeliveryReconciliation`` dentro de la misma
transacción, así que correrlo de nuevo sobre la misma entrega no cambia nada.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from reparto.crud.clients import get_client_for_update
from reparto.exceptions import NotFoundError, RepartoError
from reparto.models import Delivery, DeliveryReconciliation, PaymentMode
from reparto.services.balance import mode_for_delivery, settle_balance
from reparto.services.client_ledger import apply_balance, apply_delivery_snapshot, delivery_description
from reparto.services.inventory_ledger import deplete_for_delivery
from reparto.services.transactions import run_in_transaction
from reparto.utils.dates import utcnow

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationResult:
    delivery_id: int
    balance_applied: bool
    inventory_applied: bool
    changed: bool
    new_balance: Optional[Decimal] = None
    skipped_products: List[int] = field(default_factory=list)


def _get_or_create_record(db: Session, delivery: Delivery) -> DeliveryReconciliation:
    record = db.query(DeliveryReconciliation).filter(
        DeliveryReconciliation.delivery_id == delivery.id
    ).first()
    if record is None:
        record = DeliveryReconciliation(
            tenant_id=delivery.tenant_id,
            delivery_id=delivery.id,
            balance_applied=False,
            inventory_applied=False,
            attempts=0,
        )
        db.add(record)
    return record


def reconcile_delivery(
    db: Session,
    tenant_id: int,
    delivery_id: int,
    *,
    max_attempts: Optional[int] = None,
) -> ReconciliationResult:

    def work():
        delivery = db.query(Delivery).filter(
            Delivery.id == delivery_id,
            Delivery.tenant_id == tenant_id,
        ).first()
        if not delivery:
            raise NotFoundError(f"Entrega {delivery_id} no encontrada")

        record = _get_or_create_record(db, delivery)
        if record.balance_applied and record.inventory_applied:
            return ReconciliationResult(delivery.id, True, True, changed=False)

        record.attempts = (record.attempts or 0) + 1

        client = get_client_for_update(db, tenant_id, delivery.client_id, active_only=False)
        if not client:
            raise NotFoundError(f"Cliente {delivery.client_id} de la entrega {delivery.id} no encontrado")

        new_balance = None
        if not record.balance_applied:
            mode = mode_for_delivery(delivery.tipo_pago, delivery.pagado)
            partial = delivery.monto_pagado if mode == PaymentMode.PAID_PARTIAL else None
            transition = settle_balance(client.saldo_pendiente, delivery.total, mode, partial)
            apply_balance(db, client, transition, description=delivery_description(delivery), delivery_id=delivery.id)
            record.balance_applied = True
            new_balance = transition.new_balance

        apply_delivery_snapshot(client, delivery)

        skipped = []
        if not record.inventory_applied:
            skipped = deplete_for_delivery(db, delivery)
            record.inventory_applied = True

        record.processed_at = utcnow()
        record.last_error = None
        db.flush()
        return ReconciliationResult(
            delivery_id=delivery.id,
            balance_applied=True,
            inventory_applied=True,
            changed=True,
            new_balance=new_balance,
            skipped_products=skipped,
        )

    return run_in_transaction(db, work, description=f"la conciliación de la entrega {delivery_id}", max_attempts=max_attempts)


def record_failure(db: Session, delivery_id: int, error: Exception) -> None:
    """
    Anota un intento fallido (``attempts`` y ``last_error``) y hace commit.
    Se llama después del rollback del intento, con la sesión limpia.
    """
    record = db.query(DeliveryReconciliation).filter(
        DeliveryReconciliation.delivery_id == delivery_id
    ).first()
    if record is None:
        delivery = db.get(Delivery, delivery_id)
        if delivery is None:
            return
        record = _get_or_create_record(db, delivery)
    record.attempts = (record.attempts or 0) + 1
    record.last_error = str(error)[:500]
    db.commit()


def pending_deliveries(db: Session, tenant_id: int, limit: int = 100) -> List[Delivery]:
    """
    Entregas sin registro de conciliación o con algún efecto sin aplicar.
    Primero las que menos veces se intentaron: las que fallan siempre no
    tapan a las demás.
    """
    return db.query(Delivery).outerjoin(
        DeliveryReconciliation, DeliveryReconciliation.delivery_id == Delivery.id
    ).filter(
        Delivery.tenant_id == tenant_id,
        or_(
            DeliveryReconciliation.id == None,
            DeliveryReconciliation.balance_applied == False,
            DeliveryReconciliation.inventory_applied == False,
        ),
    ).order_by(
        func.coalesce(DeliveryReconciliation.attempts, 0).asc(),
        Delivery.fecha.asc(),
        Delivery.id.asc(),
    ).limit(limit).all()


def reconcile_pending(db: Session, tenant_id: int, limit: int = 100) -> List[ReconciliationResult]:
    """
    Vuelve a correr la conciliación de las entregas pendientes.
    Una entrega que falla no frena a las demás; el fallo queda anotado.
    """
    delivery_ids = [d.id for d in pending_deliveries(db, tenant_id, limit)]
    results = []
    for delivery_id in delivery_ids:
        try:
            results.append(reconcile_delivery(db, tenant_id, delivery_id))
        except RepartoError as exc:
            logger.error("No se pudo conciliar la entrega %s: %s", delivery_id, exc.message)
            try:
                record_failure(db, delivery_id, exc)
            except SQLAlchemyError:
                db.rollback()
                logger.exception("No se pudo registrar el error de la entrega %s", delivery_id)
    if delivery_ids:
        logger.info("Conciliación pendiente (tenant %s): %s de %s entregas", tenant_id, len(results), len(delivery_ids))
    return results
