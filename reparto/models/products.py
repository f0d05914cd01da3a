# reparto/models/products.py
import enum
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Numeric, Enum, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from reparto.database import Base


class LegacySlot(str, enum.Enum):
    """
    Casilleros fijos del inventario antiguo (sodas / bidones de 10 y 20 L).
    Cada producto del catálogo puede quedar asociado a uno de forma explícita.
    """
    SODAS = "sodas"
    BIDONES_10 = "bidones10"
    BIDONES_20 = "bidones20"


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        # Un casillero antiguo apunta a un solo producto por tenant
        UniqueConstraint("tenant_id", "legacy_slot", name="uq_products_tenant_slot"),
        {'extend_existing': True},
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String, index=True, nullable=False)

    unit_price = Column(Numeric(10, 2), nullable=False, default=0)
    # Stock del depósito (catálogo), NO el del vehículo
    stock = Column(Integer, nullable=False, default=0)

    legacy_slot = Column(Enum(LegacySlot), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
