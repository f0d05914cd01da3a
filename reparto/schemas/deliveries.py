from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from decimal import Decimal
from datetime import datetime

from reparto.models.payments import PaymentMethod, PaymentMode


def normalize_quantity(value) -> int:
    """
    Lo que no sea un número entero no negativo cuenta como 0
    (un campo vacío en el formulario no debe bloquear la entrega).
    """
    if value is None or isinstance(value, bool):
        return 0
    try:
        qty = int(Decimal(str(value).strip()))
    except (ArithmeticError, ValueError):
        return 0
    return qty if qty > 0 else 0


# --- Models for Creation ---

class DeliveryItemCreate(BaseModel):
    product_id: int
    quantity: int = 0

    @field_validator("quantity", mode="before")
    @classmethod
    def _normalize_quantity(cls, value):
        return normalize_quantity(value)


class DeliveryCreate(BaseModel):
    client_id: int
    items: List[DeliveryItemCreate] = []

    # Esquema antiguo: cantidades fijas, solo si no vienen items
    sodas: int = 0
    bidones10: int = 0
    bidones20: int = 0

    envases_devueltos: int = 0
    tipo_pago: PaymentMode = PaymentMode.UNPAID
    monto_pagado: Optional[Decimal] = None
    medio_pago: Optional[PaymentMethod] = None
    observaciones: Optional[str] = None

    @field_validator("sodas", "bidones10", "bidones20", "envases_devueltos", mode="before")
    @classmethod
    def _normalize_counts(cls, value):
        return normalize_quantity(value)


# --- Models for Reading ---

class DeliveryLineRead(BaseModel):
    product_id: int
    name: Optional[str] = None
    quantity: int
    unit_price: Decimal
    subtotal: Decimal

    class Config:
        from_attributes = True


class DeliveryRead(BaseModel):
    id: int
    client_id: int
    fecha: datetime

    lines: List[DeliveryLineRead] = []
    sodas: int = 0
    bidones10: int = 0
    bidones20: int = 0
    envases_devueltos: int = 0

    total: Decimal
    pagado: bool
    tipo_pago: Optional[PaymentMode] = None
    monto_pagado: Decimal = Decimal("0.00")
    medio_pago: Optional[PaymentMethod] = None
    observaciones: Optional[str] = None

    class Config:
        from_attributes = True


class StockWarning(BaseModel):
    product_id: int
    name: Optional[str] = None
    requested: int
    available: int


class SettlementResponse(BaseModel):
    delivery: DeliveryRead
    prior_balance: Decimal
    amount_paid: Decimal
    new_balance: Decimal
    # False cuando el saldo lo escribe solo el trigger
    balance_applied: bool = True
    stock_warnings: List[StockWarning] = Field(default_factory=list)


class ReconciliationRead(BaseModel):
    delivery_id: int
    balance_applied: bool
    inventory_applied: bool
    changed: bool
    new_balance: Optional[Decimal] = None
    skipped_products: List[int] = Field(default_factory=list)
