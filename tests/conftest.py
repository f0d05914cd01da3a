import os
import sys
from decimal import Decimal

# La BD de pruebas es SQLite en memoria; debe fijarse antes de importar reparto
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite://"
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from reparto.database import Base, SessionLocal, engine, get_db
from reparto.main import app
from reparto.models import (
    Client, LegacySlot, Plan, Product, Role, Tenant, User, VehicleStock,
)
from reparto.security import get_current_user


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def tenant(db):
    tenant = Tenant(name="Sodería Test", owner_email="test@reparto.local", plan=Plan.INDIVIDUAL, max_users=3)
    db.add(tenant)
    db.commit()
    db.refresh(tenant)
    return tenant


@pytest.fixture
def other_tenant(db):
    tenant = Tenant(name="Otra Sodería", owner_email="otra@reparto.local", plan=Plan.BUSINESS, max_users=5)
    db.add(tenant)
    db.commit()
    db.refresh(tenant)
    return tenant


@pytest.fixture
def user(db, tenant):
    user = User(tenant_id=tenant.id, username="sodero", password_hash="x", role=Role.ADMIN)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def products(db, tenant):
    data = {
        "soda": ("Soda 2L", Decimal("50.00"), 100, LegacySlot.SODAS),
        "bidon10": ("Bidón 10L", Decimal("300.00"), 40, LegacySlot.BIDONES_10),
        "bidon20": ("Bidón 20L", Decimal("500.00"), 40, LegacySlot.BIDONES_20),
    }
    created = {}
    for key, (name, price, stock, slot) in data.items():
        product = Product(tenant_id=tenant.id, name=name, unit_price=price, stock=stock, legacy_slot=slot)
        db.add(product)
        created[key] = product
    db.commit()
    for product in created.values():
        db.refresh(product)
    return created


@pytest.fixture
def vehicle(db, tenant, products):
    """10 unidades de cada producto en el vehículo."""
    for product in products.values():
        db.add(VehicleStock(tenant_id=tenant.id, product_id=product.id, quantity=10))
    db.commit()
    return {key: 10 for key in products}


@pytest.fixture
def make_client(db, tenant):
    def _make(saldo="0", name="Cliente Test", tenant_id=None):
        client = Client(
            tenant_id=tenant_id or tenant.id,
            name=name,
            address="Calle 123",
            saldo_pendiente=Decimal(saldo),
        )
        db.add(client)
        db.commit()
        db.refresh(client)
        return client
    return _make


@pytest.fixture
def fresh(db):
    """Relee un registro desde la BD (descarta lo que la sesión de prueba tenga en caché)."""
    def _fresh(model, pk):
        db.expire_all()
        return db.get(model, pk)
    return _fresh


@pytest.fixture
def api(user):
    user_id = user.id

    def _current_user(db: Session = Depends(get_db)):
        return db.query(User).filter(User.id == user_id).first()

    app.dependency_overrides[get_current_user] = _current_user
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()
