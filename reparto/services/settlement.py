# reparto/services/settlement.py
"""
Liquidación de una entrega.

A partir de las cantidades, el tipo de pago y el cliente calcula el total, lo
cobrado y el nuevo saldo, y guarda la entrega y la actualización del cliente
en una sola transacción.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from reparto.config import settings
from reparto.crud.clients import get_client_for_update
from reparto.exceptions import NotFoundError, ValidationError
from reparto.models import (
    Delivery, DeliveryLine, DeliveryReconciliation, LegacySlot, PaymentMode, Product,
)
from reparto.schemas.deliveries import DeliveryCreate, StockWarning
from reparto.services.balance import BalanceTransition, settle_balance
from reparto.services.client_ledger import apply_balance, apply_delivery_snapshot, delivery_description
from reparto.services.inventory_ledger import product_for_slot
from reparto.services.stock_guard import check_stock
from reparto.services.transactions import run_in_transaction
from reparto.utils.dates import utcnow
from reparto.utils.money import to_money, ZERO

logger = logging.getLogger(__name__)

_SLOT_FIELDS = {
    LegacySlot.SODAS: "sodas",
    LegacySlot.BIDONES_10: "bidones10",
    LegacySlot.BIDONES_20: "bidones20",
}


@dataclass
class PricedLine:
    product: Product
    quantity: int
    unit_price: Decimal

    @property
    def subtotal(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


@dataclass
class SettlementResult:
    delivery: Delivery
    transition: BalanceTransition
    balance_applied: bool
    stock_warnings: List[StockWarning] = field(default_factory=list)


def validate_payment(delivery_in: DeliveryCreate) -> Optional[Decimal]:
    """
    Chequea que los datos de pago sean coherentes con el tipo de pago.
    Devuelve el monto parcial (o None).
    """
    mode = delivery_in.tipo_pago
    amount = delivery_in.monto_pagado

    if mode == PaymentMode.PAID_PARTIAL:
        if amount is None or to_money(amount) <= ZERO:
            raise ValidationError("Para un pago parcial el monto pagado es obligatorio y debe ser mayor a 0")
    elif amount is not None and to_money(amount) != ZERO:
        raise ValidationError("El monto pagado solo se indica en pagos parciales")

    if mode != PaymentMode.UNPAID and delivery_in.medio_pago is None:
        raise ValidationError("El medio de pago es obligatorio cuando hubo un pago")

    if mode == PaymentMode.PAID_PARTIAL:
        return to_money(amount)
    return None


def _active_product(db: Session, tenant_id: int, product_id: int) -> Product:
    product = db.query(Product).filter(
        Product.id == product_id,
        Product.tenant_id == tenant_id,
        Product.is_active == True,
    ).first()
    if not product:
        raise NotFoundError(f"Producto {product_id} no encontrado")
    return product


def price_lines(db: Session, tenant_id: int, delivery_in: DeliveryCreate):
    """
    Precios siempre del catálogo. Devuelve (líneas, es_esquema_antiguo).
    Las líneas en 0 no se guardan.
    """
    lines = []
    for item in delivery_in.items:
        if item.quantity <= 0:
            continue
        product = _active_product(db, tenant_id, item.product_id)
        lines.append(PricedLine(product=product, quantity=item.quantity, unit_price=to_money(product.unit_price)))
    if lines:
        return lines, False

    legacy = []
    for slot, attr in _SLOT_FIELDS.items():
        qty = getattr(delivery_in, attr)
        if qty <= 0:
            continue
        product = product_for_slot(db, tenant_id, slot)
        if product is None or not product.is_active:
            raise NotFoundError(f"No hay producto asociado a '{slot.value}'")
        legacy.append(PricedLine(product=product, quantity=qty, unit_price=to_money(product.unit_price)))
    return legacy, bool(legacy)


def build_delivery(
    tenant_id: int,
    delivery_in: DeliveryCreate,
    lines: List[PricedLine],
    legacy: bool,
    transition: BalanceTransition,
    fecha: datetime,
    user_id: Optional[int] = None,
) -> Delivery:
    mode = delivery_in.tipo_pago
    delivery = Delivery(
        tenant_id=tenant_id,
        client_id=delivery_in.client_id,
        created_by_id=user_id,
        fecha=fecha,
        envases_devueltos=delivery_in.envases_devueltos,
        total=transition.total,
        pagado=mode != PaymentMode.UNPAID,
        tipo_pago=mode,
        monto_pagado=transition.amount_paid,
        medio_pago=delivery_in.medio_pago if mode != PaymentMode.UNPAID else None,
        observaciones=delivery_in.observaciones,
        sodas=0,
        bidones10=0,
        bidones20=0,
    )

    # Cantidades fijas: las del formulario antiguo o derivadas de las líneas
    for line in lines:
        attr = _SLOT_FIELDS.get(line.product.legacy_slot)
        if attr:
            setattr(delivery, attr, getattr(delivery, attr) + line.quantity)

    # Las entregas del esquema antiguo no llevan líneas
    if not legacy:
        for position, line in enumerate(lines):
            delivery.lines.append(DeliveryLine(
                position=position,
                product_id=line.product.id,
                name=line.product.name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                subtotal=line.subtotal,
            ))
    return delivery


def settle_delivery(
    db: Session,
    tenant_id: int,
    delivery_in: DeliveryCreate,
    user_id: Optional[int] = None,
    *,
    enforce_stock: Optional[bool] = None,
    write_balance: Optional[bool] = None,
    max_attempts: Optional[int] = None,
) -> SettlementResult:
    """
    Registra una entrega y actualiza el saldo del cliente.

    1. total = suma de cantidad x precio
    2. saldo previo leído dentro de la transacción
    3-4. nuevo saldo con ``settle_balance``
    5-6. entrega + cliente + bitácora + registro de conciliación, un commit

    Con ``write_balance=False`` solo se guarda la entrega: el saldo lo aplica
    el trigger de conciliación.
    """
    if enforce_stock is None:
        enforce_stock = settings.ENFORCE_VEHICLE_STOCK
    if write_balance is None:
        write_balance = settings.SETTLEMENT_WRITES_BALANCE

    partial_amount = validate_payment(delivery_in)

    def work():
        client = get_client_for_update(db, tenant_id, delivery_in.client_id)
        if not client:
            raise NotFoundError("Cliente no encontrado")

        lines, legacy = price_lines(db, tenant_id, delivery_in)

        warnings = check_stock(db, tenant_id, [(line.product, line.quantity) for line in lines])
        if warnings and enforce_stock:
            detail = ", ".join(f"{w.name}: pedido {w.requested}, disponible {w.available}" for w in warnings)
            raise ValidationError(f"Stock insuficiente en el vehículo ({detail})")

        total = sum((line.subtotal for line in lines), ZERO)
        transition = settle_balance(client.saldo_pendiente, total, delivery_in.tipo_pago, partial_amount)

        delivery = build_delivery(tenant_id, delivery_in, lines, legacy, transition, utcnow(), user_id)
        db.add(delivery)
        db.flush()  # Obtenemos el ID de la entrega

        db.add(DeliveryReconciliation(
            tenant_id=tenant_id,
            delivery_id=delivery.id,
            balance_applied=write_balance,
            inventory_applied=False,
        ))

        if write_balance:
            apply_balance(db, client, transition, description=delivery_description(delivery), delivery_id=delivery.id)
            apply_delivery_snapshot(client, delivery)

        db.flush()
        return SettlementResult(
            delivery=delivery,
            transition=transition,
            balance_applied=write_balance,
            stock_warnings=warnings,
        )

    result = run_in_transaction(db, work, description="la entrega", max_attempts=max_attempts)
    db.refresh(result.delivery)

    logger.info(
        "Entrega %s registrada: cliente %s, total %s, %s, saldo %s -> %s",
        result.delivery.id, delivery_in.client_id, result.transition.total,
        delivery_in.tipo_pago.value, result.transition.prior_balance, result.transition.new_balance,
    )
    if result.stock_warnings:
        logger.warning(
            "Entrega %s supera el stock del vehículo en %s producto(s)",
            result.delivery.id, len(result.stock_warnings),
        )
    return result
