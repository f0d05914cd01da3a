import enum
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, Numeric
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from reparto.database import Base


class PaymentMethod(str, enum.Enum):
    EFECTIVO = "efectivo"
    TRANSFERENCIA = "transferencia"
    TARJETA = "tarjeta"


class PaymentMode(str, enum.Enum):
    """Tipo de pago de una entrega."""
    UNPAID = "no_pagado"
    PAID_FULL = "pagado_completo"
    PAID_PARTIAL = "pago_parcial"


# --- Pago / abono a cuenta (sin entrega) ---
class ClientPayment(Base):
    __tablename__ = "client_payments"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    amount = Column(Numeric(10, 2), nullable=False)
    medio_pago = Column(Enum(PaymentMethod), nullable=False)
    nota = Column(String, nullable=True)

    fecha = Column(DateTime(timezone=True), server_default=func.now())

    client = relationship("Client")
