# reparto/routers/clients.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import desc
from typing import List

from reparto.database import get_db
from reparto.models import ClientLedgerEntry, Tenant, User
from reparto.schemas.clients import (
    ClientCreate, ClientRead, ClientUpdate, LedgerEntryResponse,
    ClientPaymentCreate, ClientPaymentResponse,
)
from reparto.security import get_current_user, get_current_tenant
from reparto.crud.clients import create_client, get_client, get_clients
from reparto.services.client_ledger import register_payment

router = APIRouter()

# --------------------------------------------------------------------------
# 1. LISTAR CLIENTES
# --------------------------------------------------------------------------
@router.get("/", response_model=List[ClientRead])
def list_clients(
    skip: int = 0,
    limit: int = 100,
    search: str = None,  # Buscar por nombre, dirección o teléfono
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant)
):
    return get_clients(db, tenant.id, search=search, skip=skip, limit=limit)

# --------------------------------------------------------------------------
# 2. OBTENER DETALLE (INDIVIDUAL)
# --------------------------------------------------------------------------
@router.get("/{client_id}", response_model=ClientRead)
def read_client(
    client_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant)
):
    client = get_client(db, tenant.id, client_id)
    if not client:
        raise HTTPException(status_code=404, detail="Cliente no encontrado")
    return client

# --------------------------------------------------------------------------
# 3. CREAR CLIENTE
# --------------------------------------------------------------------------
@router.post("/", response_model=ClientRead)
def add_client(
    client_in: ClientCreate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant)
):
    return create_client(db, tenant.id, client_in)

# --------------------------------------------------------------------------
# 4. ACTUALIZAR CLIENTE (PUT)
# --------------------------------------------------------------------------
@router.put("/{client_id}", response_model=ClientRead)
def update_client(
    client_id: int,
    client_in: ClientUpdate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant)
):
    client = get_client(db, tenant.id, client_id)
    if not client:
        raise HTTPException(status_code=404, detail="Cliente no encontrado")

    # Actualizamos campos dinámicamente (el saldo no está en ClientUpdate)
    update_data = client_in.model_dump(exclude_unset=True)

    # Desactivar es la baja lógica: misma regla que DELETE
    if update_data.get("is_active") is False and client.saldo_pendiente > 0:
        raise HTTPException(
            status_code=400,
            detail=f"No se puede desactivar. El cliente tiene una deuda pendiente de ${client.saldo_pendiente}"
        )

    for field, value in update_data.items():
        if field == "is_active" and value is None:
            continue
        if field == "name" and not value:
            continue
        if hasattr(client, field):
            setattr(client, field, value)

    db.commit()
    db.refresh(client)
    return client

# --------------------------------------------------------------------------
# 5. ELIMINAR (SOFT DELETE)
# --------------------------------------------------------------------------
@router.delete("/{client_id}", response_model=ClientRead)
def delete_client(
    client_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant)
):
    client = get_client(db, tenant.id, client_id)
    if not client:
        raise HTTPException(status_code=404, detail="Cliente no encontrado")

    # No eliminar si tiene deuda
    if client.saldo_pendiente > 0:
        raise HTTPException(
            status_code=400,
            detail=f"No se puede eliminar. El cliente tiene una deuda pendiente de ${client.saldo_pendiente}"
        )

    client.is_active = False  # Soft Delete
    db.commit()
    db.refresh(client)
    return client

# --------------------------------------------------------------------------
# 6. ESTADO DE CUENTA (MOVIMIENTOS)
# --------------------------------------------------------------------------
@router.get("/{client_id}/statement", response_model=List[LedgerEntryResponse])
def get_client_statement(
    client_id: int,
    limit: int = 50,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant)
):
    """
    Obtiene el historial de cargos y abonos del cliente.
    """
    client = get_client(db, tenant.id, client_id)
    if not client:
        raise HTTPException(status_code=404, detail="Cliente no encontrado")

    entries = db.query(ClientLedgerEntry)\
        .filter(ClientLedgerEntry.client_id == client_id, ClientLedgerEntry.tenant_id == tenant.id)\
        .order_by(desc(ClientLedgerEntry.created_at), desc(ClientLedgerEntry.id))\
        .limit(limit)\
        .all()

    return entries

# --------------------------------------------------------------------------
# 7. PAGO / ABONO A CUENTA
# --------------------------------------------------------------------------
@router.post("/{client_id}/payments", response_model=ClientPaymentResponse)
def register_client_payment(
    client_id: int,
    payment_in: ClientPaymentCreate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    current_user: User = Depends(get_current_user)
):
    """
    Registra un abono/pago de un cliente y actualiza su saldo.
    """
    payment, transition = register_payment(db, tenant.id, client_id, payment_in, user_id=current_user.id)
    return ClientPaymentResponse(
        payment_id=payment.id,
        client_id=client_id,
        amount_paid=transition.amount_paid,
        prior_balance=transition.prior_balance,
        new_balance=transition.new_balance,
    )
