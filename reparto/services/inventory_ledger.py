# reparto/services/inventory_ledger.py
"""
Inventario del vehículo: lectura del estado actual, descuentos por entrega,
carga manual y sincronización con el depósito (plan individual).

Las funciones que reciben ``db`` y no dicen "commit" solo agregan a la sesión;
el commit lo hace quien orquesta la operación completa.
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from reparto.exceptions import NotFoundError, ValidationError
from reparto.models import (
    Delivery, InventoryMovement, LegacySlot, MovementType, Plan, Product, Tenant, VehicleStock,
)
from reparto.services.transactions import run_in_transaction

logger = logging.getLogger(__name__)


def get_stock_record(db: Session, tenant_id: int, product_id: int) -> Optional[VehicleStock]:
    return db.query(VehicleStock).filter(
        VehicleStock.tenant_id == tenant_id,
        VehicleStock.product_id == product_id,
    ).first()


def read_vehicle_inventory(db: Session, tenant_id: int) -> Dict[int, int]:
    rows = db.query(VehicleStock).filter(VehicleStock.tenant_id == tenant_id).all()
    return {row.product_id: row.quantity for row in rows}


def product_for_slot(db: Session, tenant_id: int, slot: LegacySlot) -> Optional[Product]:
    return db.query(Product).filter(
        Product.tenant_id == tenant_id,
        Product.legacy_slot == slot,
    ).first()


def _record_movement(db, stock, movement_type, before, user_id, reference, notes):
    movement = InventoryMovement(
        tenant_id=stock.tenant_id,
        product_id=stock.product_id,
        user_id=user_id,
        movement_type=movement_type,
        qty_change=stock.quantity - before,
        qty_before=before,
        qty_after=stock.quantity,
        reference=reference,
        notes=notes,
    )
    db.add(movement)
    return movement


def deplete(
    db: Session,
    tenant_id: int,
    product_id: int,
    quantity: int,
    reference: Optional[str] = None,
    user_id: Optional[int] = None,
) -> Optional[InventoryMovement]:
    """
    Descuenta ``quantity`` del vehículo. Nunca deja el stock negativo.
    Devuelve None si el producto no está cargado en el vehículo.
    """
    stock = get_stock_record(db, tenant_id, product_id)
    if stock is None:
        logger.warning("Producto %s sin inventario en el vehículo (tenant %s)", product_id, tenant_id)
        return None

    before = stock.quantity or 0
    stock.quantity = max(0, before - max(0, quantity))
    if before < quantity:
        logger.info(
            "Stock del vehículo insuficiente para producto %s: había %s, se entregaron %s",
            product_id, before, quantity,
        )
    return _record_movement(db, stock, MovementType.DELIVERY_OUT, before, user_id, reference, None)


def set_quantity(
    db: Session,
    tenant_id: int,
    product_id: int,
    quantity: int,
    movement_type: MovementType = MovementType.ADJUSTMENT,
    user_id: Optional[int] = None,
    reference: Optional[str] = None,
    notes: Optional[str] = None,
) -> Optional[InventoryMovement]:
    if quantity < 0:
        raise ValidationError(f"Cantidad negativa para el producto {product_id}")

    stock = get_stock_record(db, tenant_id, product_id)
    if stock is None:
        stock = VehicleStock(tenant_id=tenant_id, product_id=product_id, quantity=0)
        db.add(stock)

    before = stock.quantity or 0
    if before == quantity:
        return None
    stock.quantity = quantity
    return _record_movement(db, stock, movement_type, before, user_id, reference, notes)


def deplete_for_delivery(db: Session, delivery: Delivery) -> List[int]:
    """
    Descuenta del vehículo lo entregado. Usa las líneas de la entrega y, si no
    tiene (entregas del esquema antiguo), las cantidades fijas mapeadas por
    ``Product.legacy_slot``. Devuelve los productos que no se pudieron descontar.
    """
    reference = f"Entrega #{delivery.id}"
    pairs = []
    if delivery.lines:
        pairs = [(line.product_id, line.quantity) for line in delivery.lines]
    else:
        legacy = (
            (LegacySlot.SODAS, delivery.sodas),
            (LegacySlot.BIDONES_10, delivery.bidones10),
            (LegacySlot.BIDONES_20, delivery.bidones20),
        )
        for slot, qty in legacy:
            if not qty:
                continue
            product = product_for_slot(db, delivery.tenant_id, slot)
            if product is None:
                logger.warning(
                    "Entrega %s: el casillero '%s' no está asociado a ningún producto",
                    delivery.id, slot.value,
                )
                continue
            pairs.append((product.id, qty))

    skipped = []
    for product_id, qty in pairs:
        if qty <= 0:
            continue
        if deplete(db, delivery.tenant_id, product_id, qty, reference=reference) is None:
            skipped.append(product_id)
    return skipped


def write_vehicle_inventory(
    db: Session,
    tenant_id: int,
    quantities: Dict[int, int],
    user_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> Dict[int, int]:
    """Carga manual: fija las cantidades indicadas y hace commit."""

    def work():
        for product_id, qty in quantities.items():
            product = db.query(Product).filter(
                Product.id == product_id,
                Product.tenant_id == tenant_id,
            ).first()
            if not product:
                raise NotFoundError(f"Producto {product_id} no encontrado")
            set_quantity(
                db, tenant_id, product_id, qty,
                movement_type=MovementType.ADJUSTMENT,
                user_id=user_id,
                reference="Carga manual",
                notes=notes,
            )
        db.flush()
        return read_vehicle_inventory(db, tenant_id)

    return run_in_transaction(db, work, description="el inventario del vehículo")


def sync_from_catalog(db: Session, tenant: Tenant, user_id: Optional[int] = None) -> Dict[int, int]:
    """
    Plan individual: el vehículo ES el depósito, se copia el stock del catálogo.
    """
    if tenant.plan != Plan.INDIVIDUAL:
        raise ValidationError("La sincronización automática solo está disponible para el plan individual")

    def work():
        products = db.query(Product).filter(
            Product.tenant_id == tenant.id,
            Product.is_active == True,
        ).all()
        synced = {}
        for product in products:
            set_quantity(
                db, tenant.id, product.id, product.stock or 0,
                movement_type=MovementType.CATALOG_SYNC,
                user_id=user_id,
                reference="Sincronización con depósito",
            )
            synced[product.id] = product.stock or 0
        db.flush()
        return synced

    synced = run_in_transaction(db, work, description="la sincronización del inventario")
    logger.info("Inventario del vehículo sincronizado para tenant %s: %s productos", tenant.id, len(synced))
    return synced


def sync_product_stock(
    db: Session,
    tenant: Tenant,
    product: Product,
    user_id: Optional[int] = None,
) -> Optional[InventoryMovement]:
    """
    Plan individual: al editar el stock de un producto, el vehículo toma el
    mismo valor. No hace commit; va en la misma transacción que la edición.
    """
    if tenant.plan != Plan.INDIVIDUAL:
        return None
    movement = set_quantity(
        db, tenant.id, product.id, product.stock or 0,
        movement_type=MovementType.CATALOG_SYNC,
        user_id=user_id,
        reference="Edición de producto",
    )
    if movement is not None:
        logger.info(
            "Vehículo sincronizado con el producto %s: %s -> %s",
            product.id, movement.qty_before, movement.qty_after,
        )
    return movement


def get_movements(db: Session, tenant_id: int, product_id: int, limit: int = 100) -> List[InventoryMovement]:
    return db.query(InventoryMovement).filter(
        InventoryMovement.tenant_id == tenant_id,
        InventoryMovement.product_id == product_id,
    ).order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc()).limit(limit).all()
