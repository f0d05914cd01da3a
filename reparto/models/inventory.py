from sqlalchemy import Column, Integer, String, ForeignKey, Enum, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from reparto.database import Base
import enum


class MovementType(str, enum.Enum):
    DELIVERY_OUT = "DELIVERY_OUT"    # Salida por entrega a cliente
    ADJUSTMENT = "ADJUSTMENT"        # Carga / ajuste manual del vehículo
    CATALOG_SYNC = "CATALOG_SYNC"    # Copia del stock del depósito (plan individual)


class VehicleStock(Base):
    """
    Inventario "actual" del vehículo: una fila por producto y tenant.
    """
    __tablename__ = "vehicle_stock"
    __table_args__ = (
        UniqueConstraint("tenant_id", "product_id", name="uq_vehicle_stock_tenant_product"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    quantity = Column(Integer, default=0, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("Product")

    __mapper_args__ = {"version_id_col": version}


class InventoryMovement(Base):
    __tablename__ = "inventory_movements"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    movement_type = Column(Enum(MovementType), nullable=False)
    qty_change = Column(Integer, nullable=False)  # +10 o -5
    qty_before = Column(Integer, nullable=False)
    qty_after = Column(Integer, nullable=False)

    reference = Column(String, nullable=True)  # Entrega #12, "Carga manual"...
    notes = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User")
    product = relationship("Product")
