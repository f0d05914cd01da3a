from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, Numeric, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from reparto.database import Base
from reparto.models.payments import PaymentMethod, PaymentMode


# --- Modelo 1: Encabezado de Entrega (inmutable) ---
class Delivery(Base):
    __tablename__ = "deliveries"
    __table_args__ = {'extend_existing': True}

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    fecha = Column(DateTime(timezone=True), nullable=False, index=True)

    # Campos fijos del esquema antiguo (se derivan de las líneas si hay)
    sodas = Column(Integer, default=0, nullable=False)
    bidones10 = Column(Integer, default=0, nullable=False)
    bidones20 = Column(Integer, default=0, nullable=False)
    envases_devueltos = Column(Integer, default=0, nullable=False)

    total = Column(Numeric(10, 2), default=0, nullable=False)
    pagado = Column(Boolean, default=False, nullable=False)
    tipo_pago = Column(Enum(PaymentMode), nullable=True)
    monto_pagado = Column(Numeric(10, 2), default=0, nullable=False)
    medio_pago = Column(Enum(PaymentMethod), nullable=True)
    observaciones = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    client = relationship("Client")
    lines = relationship(
        "DeliveryLine",
        back_populates="delivery",
        cascade="all, delete-orphan",
        order_by="DeliveryLine.position",
    )
    reconciliation = relationship("DeliveryReconciliation", back_populates="delivery", uselist=False)


# --- Modelo 2: Detalle (productos entregados) ---
class DeliveryLine(Base):
    __tablename__ = "delivery_lines"
    __table_args__ = {'extend_existing': True}

    id = Column(Integer, primary_key=True, index=True)
    delivery_id = Column(Integer, ForeignKey("deliveries.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    name = Column(String)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)

    delivery = relationship("Delivery", back_populates="lines")
    product = relationship("Product")


# --- Modelo 3: Efectos ya aplicados por entrega ---
class DeliveryReconciliation(Base):
    """
    Registro de qué efectos de una entrega ya se aplicaron (saldo, inventario).
    Se escribe en la misma transacción que los efectos.
    """
    __tablename__ = "delivery_reconciliations"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    delivery_id = Column(Integer, ForeignKey("deliveries.id"), nullable=False, unique=True)

    balance_applied = Column(Boolean, default=False, nullable=False)
    inventory_applied = Column(Boolean, default=False, nullable=False)

    attempts = Column(Integer, default=0, nullable=False)
    last_error = Column(String, nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)

    delivery = relationship("Delivery", back_populates="reconciliation")

    @property
    def is_complete(self):
        return bool(self.balance_applied and self.inventory_applied)
