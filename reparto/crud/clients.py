from typing import Optional

from sqlalchemy.orm import Session

from reparto.models import Client
from reparto.schemas.clients import ClientCreate


def get_client(db: Session, tenant_id: int, client_id: int) -> Optional[Client]:
    return db.query(Client).filter(Client.id == client_id, Client.tenant_id == tenant_id).first()


def get_client_for_update(db: Session, tenant_id: int, client_id: int, active_only: bool = True) -> Optional[Client]:
    """Lee el cliente bloqueando la fila (FOR UPDATE donde el motor lo soporta)."""
    query = db.query(Client).filter(Client.id == client_id, Client.tenant_id == tenant_id)
    if active_only:
        query = query.filter(Client.is_active == True)
    return query.with_for_update().first()


def get_clients(db: Session, tenant_id: int, search: str = None, skip: int = 0, limit: int = 100):
    query = db.query(Client).filter(Client.tenant_id == tenant_id, Client.is_active == True)

    if search:
        # Búsqueda insensible a mayúsculas
        search_fmt = f"%{search}%"
        query = query.filter(
            (Client.name.ilike(search_fmt)) |
            (Client.address.ilike(search_fmt)) |
            (Client.phone.ilike(search_fmt))
        )

    return query.order_by(Client.name).offset(skip).limit(limit).all()


def create_client(db: Session, tenant_id: int, client: ClientCreate) -> Client:
    db_client = Client(
        tenant_id=tenant_id,
        name=client.name,
        address=client.address,
        phone=client.phone,
        visit_day=client.visit_day,
        visit_frequency=client.visit_frequency,
        notes=client.notes,
        is_active=client.is_active,
        saldo_pendiente=0  # Empieza en cero
    )
    db.add(db_client)
    db.commit()
    db.refresh(db_client)
    return db_client
