# reparto/routers/products.py
from typing import List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from reparto.database import get_db
from reparto.models import Tenant, User
from reparto.schemas.products import ProductCreate, ProductRead, ProductUpdate
from reparto.security import get_current_tenant, require_admin
from reparto.crud.products import create_product, get_product, get_product_by_slot, get_products
from reparto.services.inventory_ledger import sync_product_stock

router = APIRouter()


# --------------------------------------------------------------------------
# 1. LISTAR CATÁLOGO
# --------------------------------------------------------------------------
@router.get("/", response_model=List[ProductRead])
def list_products(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant)
):
    return get_products(db, tenant.id, include_inactive=include_inactive)


# --------------------------------------------------------------------------
# 2. CREAR PRODUCTO
# --------------------------------------------------------------------------
@router.post("/", response_model=ProductRead)
def add_product(
    product_in: ProductCreate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    current_user: User = Depends(require_admin)
):
    if product_in.legacy_slot and get_product_by_slot(db, tenant.id, product_in.legacy_slot):
        raise HTTPException(400, f"El casillero '{product_in.legacy_slot.value}' ya está asociado a otro producto")
    return create_product(db, tenant.id, product_in)


# --------------------------------------------------------------------------
# 3. ACTUALIZAR PRODUCTO (precio, stock del depósito, casillero, activo)
# --------------------------------------------------------------------------
@router.put("/{product_id}", response_model=ProductRead)
def update_product(
    product_id: int,
    product_in: ProductUpdate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    current_user: User = Depends(require_admin)
):
    product = get_product(db, tenant.id, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Producto no encontrado")

    update_data = product_in.model_dump(exclude_unset=True)

    slot = update_data.get("legacy_slot")
    if slot:
        owner = get_product_by_slot(db, tenant.id, slot)
        if owner and owner.id != product.id:
            raise HTTPException(400, f"El casillero '{slot.value}' ya está asociado a otro producto")

    for field, value in update_data.items():
        # legacy_slot=null libera el casillero; el resto no admite nulos
        if value is None and field != "legacy_slot":
            continue
        if hasattr(product, field):
            setattr(product, field, value)

    # Plan individual: el vehículo es el depósito
    if update_data.get("stock") is not None:
        sync_product_stock(db, tenant, product, user_id=current_user.id)

    db.commit()
    db.refresh(product)
    return product
