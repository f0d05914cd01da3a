from pydantic import BaseModel
from typing import Optional
from decimal import Decimal
from datetime import datetime

from reparto.models.payments import PaymentMethod

# --- CLASES BASE ---

class ClientBase(BaseModel):
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    visit_day: Optional[str] = None         # lunes ... domingo
    visit_frequency: Optional[str] = None   # semanal, quincenal, mensual
    notes: Optional[str] = None
    is_active: bool = True

# --- CREACIÓN ---
class ClientCreate(ClientBase):
    pass

# --- ACTUALIZACIÓN ---
# El saldo NO se edita a mano: solo cambia por entregas y pagos
class ClientUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    visit_day: Optional[str] = None
    visit_frequency: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None

# --- ESTADO DE CUENTA (Movimientos) ---
class LedgerEntryResponse(BaseModel):
    id: int
    created_at: Optional[datetime] = None
    amount: Decimal          # Positivo = Cargo (Deuda), Negativo = Abono (Pago)
    balance_after: Decimal
    description: Optional[str] = None
    delivery_id: Optional[int] = None
    payment_id: Optional[int] = None

    class Config:
        from_attributes = True

# --- PAGOS A CUENTA ---
class ClientPaymentCreate(BaseModel):
    amount: Decimal
    medio_pago: Optional[PaymentMethod] = None
    nota: Optional[str] = None

class ClientPaymentResponse(BaseModel):
    payment_id: int
    client_id: int
    amount_paid: Decimal
    prior_balance: Decimal
    new_balance: Decimal

# --- LECTURA (RESPONSE) ---
class ClientRead(ClientBase):
    id: int
    saldo_pendiente: Decimal = Decimal("0.00")

    # Última entrega
    sodas: Optional[int] = 0
    bidones10: Optional[int] = 0
    bidones20: Optional[int] = 0
    envases_devueltos: Optional[int] = 0
    ultimo_total: Optional[Decimal] = None
    ultimo_pagado: Optional[bool] = None
    ultima_entrega_fecha: Optional[datetime] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
