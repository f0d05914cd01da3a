# reparto/routers/deliveries.py
from datetime import datetime, time
from typing import Callable, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from reparto.database import get_db, get_session_factory
from reparto.models import Delivery, Tenant, User
from reparto.schemas.deliveries import (
    DeliveryCreate, DeliveryRead, ReconciliationRead, SettlementResponse,
)
from reparto.security import get_current_user, get_current_tenant
from reparto.services.reconciliation import reconcile_delivery, reconcile_pending
from reparto.services.settlement import settle_delivery
from reparto.triggers.on_delivery_create import DeliveryCreatedEvent, on_delivery_create
from reparto.utils.dates import day_bounds, utcnow

router = APIRouter()


@router.post("/", response_model=SettlementResponse)
def create_delivery(
    delivery_in: DeliveryCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    current_user: User = Depends(get_current_user),
    session_factory: Callable[[], Session] = Depends(get_session_factory)
):
    """
    Registra una entrega: calcula total y saldo, guarda entrega + cliente en
    una sola transacción y deja la conciliación del inventario en segundo plano.
    """
    result = settle_delivery(db, tenant.id, delivery_in, user_id=current_user.id)

    # El trigger corre después de responder, con su propia sesión
    event = DeliveryCreatedEvent(tenant_id=tenant.id, delivery_id=result.delivery.id)
    background_tasks.add_task(on_delivery_create, event, session_factory)

    return SettlementResponse(
        delivery=DeliveryRead.model_validate(result.delivery),
        prior_balance=result.transition.prior_balance,
        amount_paid=result.transition.amount_paid,
        new_balance=result.transition.new_balance,
        balance_applied=result.balance_applied,
        stock_warnings=result.stock_warnings,
    )


@router.get("/", response_model=List[DeliveryRead])
def list_deliveries(
    client_id: Optional[int] = None,
    desde: Optional[datetime] = None,
    hasta: Optional[datetime] = None,
    limit: int = 100,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant)
):
    """
    ``desde`` y ``hasta`` son inclusivos. Una fecha sin hora en ``hasta``
    (o a las 00:00 exactas) cubre el día completo.
    """
    query = db.query(Delivery).filter(Delivery.tenant_id == tenant.id)
    if client_id is not None:
        query = query.filter(Delivery.client_id == client_id)
    if desde is not None:
        query = query.filter(Delivery.fecha >= desde)
    if hasta is not None:
        if hasta.time() == time(0, 0):
            _, hasta = day_bounds(hasta)
        query = query.filter(Delivery.fecha <= hasta)
    return query.order_by(Delivery.fecha.desc(), Delivery.id.desc()).limit(limit).all()


@router.get("/today", response_model=List[DeliveryRead])
def list_deliveries_today(
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant)
):
    start, end = day_bounds(utcnow())
    return db.query(Delivery).filter(
        Delivery.tenant_id == tenant.id,
        Delivery.fecha >= start,
        Delivery.fecha <= end,
    ).order_by(Delivery.fecha.desc()).all()


@router.post("/reconcile-pending", response_model=List[ReconciliationRead])
def reconcile_pending_deliveries(
    limit: int = 100,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant)
):
    """Vuelve a correr el trigger para las entregas con conciliación incompleta."""
    results = reconcile_pending(db, tenant.id, limit=limit)
    return [ReconciliationRead(**vars(r)) for r in results]


@router.get("/{delivery_id}", response_model=DeliveryRead)
def read_delivery(
    delivery_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant)
):
    delivery = db.query(Delivery).filter(
        Delivery.id == delivery_id,
        Delivery.tenant_id == tenant.id,
    ).first()
    if not delivery:
        raise HTTPException(status_code=404, detail="Entrega no encontrada")
    return delivery


@router.post("/{delivery_id}/reconcile", response_model=ReconciliationRead)
def reconcile_one(
    delivery_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant)
):
    result = reconcile_delivery(db, tenant.id, delivery_id)
    return ReconciliationRead(**vars(result))
