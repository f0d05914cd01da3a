import logging
from decimal import Decimal

from reparto.database import SessionLocal, engine, Base
from reparto.logging_config import configure_logging
from reparto.models import (
    Tenant, Plan, User, Role, Product, LegacySlot, VehicleStock, Client,
)
from reparto.security import get_password_hash

logger = logging.getLogger(__name__)

# Precios de lista de la sodería
PRODUCTS_DATA = [
    ("Soda 2L", Decimal("50.00"), 120, LegacySlot.SODAS),
    ("Bidón 10L", Decimal("300.00"), 40, LegacySlot.BIDONES_10),
    ("Bidón 20L", Decimal("500.00"), 40, LegacySlot.BIDONES_20),
]

CLIENTS_DATA = [
    ("Almacén Don Pedro", "Av. San Martín 1234", "351-555-0101", "lunes", "semanal"),
    ("Familia Gómez", "Belgrano 455", "351-555-0102", "lunes", "quincenal"),
    ("Oficina Centro", "27 de Abril 300, piso 2", "351-555-0103", "miércoles", "semanal"),
]


def init_db():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    logger.info("--- INICIANDO SEED ---")
    try:
        # 1. Crear Tenant
        tenant = db.query(Tenant).filter(Tenant.owner_email == "demo@reparto.local").first()
        if not tenant:
            tenant = Tenant(name="Sodería Demo", owner_email="demo@reparto.local", plan=Plan.INDIVIDUAL, max_users=1)
            db.add(tenant)
            db.commit()
            db.refresh(tenant)
            logger.info("Tenant creado.")
        else:
            logger.info("Tenant ya existe.")

        # 2. Crear Usuario Admin
        admin = db.query(User).filter(User.username == "admin").first()
        if not admin:
            admin = User(
                tenant_id=tenant.id,
                username="admin",
                password_hash=get_password_hash("admin123"),
                full_name="Administrador",
                role=Role.ADMIN,
            )
            db.add(admin)
            tenant.current_user_count = (tenant.current_user_count or 0) + 1
            db.commit()
            logger.info("Usuario admin creado.")
        else:
            logger.info("Usuario admin ya existe.")

        # 3. Productos + inventario del vehículo
        count_new = 0
        for name, price, stock, slot in PRODUCTS_DATA:
            product = db.query(Product).filter(Product.tenant_id == tenant.id, Product.legacy_slot == slot).first()
            if product:
                continue
            product = Product(tenant_id=tenant.id, name=name, unit_price=price, stock=stock, legacy_slot=slot)
            db.add(product)
            db.flush()
            db.add(VehicleStock(tenant_id=tenant.id, product_id=product.id, quantity=stock // 4))
            count_new += 1
        db.commit()

        # 4. Clientes
        if not db.query(Client).filter(Client.tenant_id == tenant.id).first():
            for name, address, phone, day, freq in CLIENTS_DATA:
                db.add(Client(
                    tenant_id=tenant.id, name=name, address=address, phone=phone,
                    visit_day=day, visit_frequency=freq, saldo_pendiente=0,
                ))
            db.commit()
            logger.info("Clientes creados.")

        logger.info("--- SEED TERMINADO ---. Productos nuevos: %s", count_new)
    finally:
        db.close()


if __name__ == "__main__":
    configure_logging()
    init_db()
