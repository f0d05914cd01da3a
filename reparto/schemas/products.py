from typing import Optional
from pydantic import BaseModel, Field
from decimal import Decimal
from datetime import datetime

from reparto.models.products import LegacySlot


# --- Producto Crear/Editar (Input) ---
class ProductCreate(BaseModel):
    name: str
    unit_price: Decimal = Field(ge=0)
    stock: int = Field(default=0, ge=0)
    legacy_slot: Optional[LegacySlot] = None


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    unit_price: Optional[Decimal] = Field(default=None, ge=0)
    stock: Optional[int] = Field(default=None, ge=0)
    legacy_slot: Optional[LegacySlot] = None
    is_active: Optional[bool] = None


# --- Producto Lectura (Output) ---
class ProductRead(BaseModel):
    id: int
    name: str
    unit_price: Decimal
    stock: int
    legacy_slot: Optional[LegacySlot] = None
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
