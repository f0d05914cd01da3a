from pydantic import BaseModel, field_validator
from typing import Optional, Dict
from datetime import datetime


# Input para fijar el inventario actual del vehículo (carga manual)
class VehicleInventoryUpdate(BaseModel):
    quantities: Dict[int, int]   # product_id -> unidades en el vehículo
    notes: Optional[str] = None

    @field_validator("quantities")
    @classmethod
    def _non_negative(cls, value):
        for product_id, qty in value.items():
            if qty < 0:
                raise ValueError(f"Cantidad negativa para el producto {product_id}")
        return value


class VehicleInventoryRead(BaseModel):
    quantities: Dict[int, int]
    updated_at: Optional[datetime] = None


class AvailableQuantityRead(BaseModel):
    product_id: int
    available: int


class SyncResult(BaseModel):
    products_synced: int
    quantities: Dict[int, int]


# Output para leer el Kardex
class MovementRead(BaseModel):
    id: int
    product_id: int
    movement_type: str
    qty_change: int
    qty_before: int
    qty_after: int
    reference: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    user_name: str  # Extraemos el nombre del usuario

    class Config:
        from_attributes = True
