# reparto/models/crm.py
from sqlalchemy import Column, Integer, String, Boolean, Numeric, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from reparto.database import Base


class Client(Base):
    __tablename__ = "clients"
    __table_args__ = {'extend_existing': True}

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String, index=True, nullable=False)

    address = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    visit_day = Column(String, nullable=True)         # lunes, martes...
    visit_frequency = Column(String, nullable=True)   # semanal, quincenal, mensual
    notes = Column(String, nullable=True)

    is_active = Column(Boolean, default=True)

    # Cuánto nos debe (nunca negativo)
    saldo_pendiente = Column(Numeric(10, 2), default=0, nullable=False)

    # --- Foto de la última entrega ---
    sodas = Column(Integer, default=0)
    bidones10 = Column(Integer, default=0)
    bidones20 = Column(Integer, default=0)
    envases_devueltos = Column(Integer, default=0)
    ultimo_total = Column(Numeric(10, 2), default=0)
    ultimo_pagado = Column(Boolean, default=False)
    ultima_entrega_fecha = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    ledger_entries = relationship("ClientLedgerEntry", back_populates="client")

    # Dos escritores concurrentes sobre el mismo cliente -> StaleDataError
    __mapper_args__ = {"version_id_col": version}


class ClientLedgerEntry(Base):
    """
    Bitácora financiera del cliente (Kardex de dinero).
    Positivo (+) = Deuda aumenta (entrega no cobrada)
    Negativo (-) = Deuda baja (pago / abono)
    """
    __tablename__ = "client_ledger_entries"
    __table_args__ = {'extend_existing': True}

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    delivery_id = Column(Integer, ForeignKey("deliveries.id"), nullable=True)
    payment_id = Column(Integer, ForeignKey("client_payments.id"), nullable=True)

    amount = Column(Numeric(10, 2), nullable=False)
    balance_after = Column(Numeric(10, 2), nullable=False)
    description = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    client = relationship("Client", back_populates="ledger_entries")
