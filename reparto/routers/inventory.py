# reparto/routers/inventory.py
from typing import List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from reparto.database import get_db
from reparto.models import Tenant, User, VehicleStock
from reparto.crud.products import get_product
from reparto.schemas.inventory import (
    AvailableQuantityRead, MovementRead, SyncResult, VehicleInventoryRead, VehicleInventoryUpdate,
)
from reparto.security import get_current_user, get_current_tenant
from reparto.services.inventory_ledger import (
    get_movements, read_vehicle_inventory, sync_from_catalog, write_vehicle_inventory,
)
from reparto.services.stock_guard import available_quantity

router = APIRouter()


def _last_update(db: Session, tenant_id: int):
    return db.query(func.max(VehicleStock.updated_at)).filter(VehicleStock.tenant_id == tenant_id).scalar()


@router.get("/vehicle", response_model=VehicleInventoryRead)
def get_vehicle_inventory(
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant)
):
    """Inventario actual del vehículo (producto -> unidades)."""
    return VehicleInventoryRead(
        quantities=read_vehicle_inventory(db, tenant.id),
        updated_at=_last_update(db, tenant.id),
    )


@router.put("/vehicle", response_model=VehicleInventoryRead)
def set_vehicle_inventory(
    inventory_in: VehicleInventoryUpdate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    current_user: User = Depends(get_current_user)
):
    """
    Carga o ajuste manual: fija las cantidades indicadas, deja el resto igual.
    """
    quantities = write_vehicle_inventory(
        db, tenant.id, inventory_in.quantities,
        user_id=current_user.id,
        notes=inventory_in.notes,
    )
    return VehicleInventoryRead(quantities=quantities, updated_at=_last_update(db, tenant.id))


@router.get("/vehicle/{product_id}/available", response_model=AvailableQuantityRead)
def get_available_quantity(
    product_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant)
):
    if not get_product(db, tenant.id, product_id):
        raise HTTPException(404, "Producto no encontrado")
    return AvailableQuantityRead(product_id=product_id, available=available_quantity(db, tenant.id, product_id))


@router.post("/vehicle/sync", response_model=SyncResult)
def sync_vehicle_inventory(
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    current_user: User = Depends(get_current_user)
):
    """Plan individual: copia el stock del depósito al vehículo."""
    synced = sync_from_catalog(db, tenant, user_id=current_user.id)
    return SyncResult(products_synced=len(synced), quantities=synced)


@router.get("/kardex/{product_id}", response_model=List[MovementRead])
def get_kardex(
    product_id: int,
    limit: int = 100,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant)
):
    """Obtiene el historial de movimientos de un producto"""
    movements = get_movements(db, tenant.id, product_id, limit=limit)

    # Mapeo manual rápido para incluir user_name
    return [
        MovementRead(
            id=m.id,
            product_id=m.product_id,
            movement_type=m.movement_type.value,
            qty_change=m.qty_change,
            qty_before=m.qty_before,
            qty_after=m.qty_after,
            reference=m.reference,
            notes=m.notes,
            created_at=m.created_at,
            user_name=m.user.username if m.user else "Sistema"
        ) for m in movements
    ]
