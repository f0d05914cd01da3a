from collections import OrderedDict
from typing import Iterable, List, Tuple

from sqlalchemy.orm import Session

from reparto.models import Product
from reparto.schemas.deliveries import StockWarning
from reparto.services.inventory_ledger import get_stock_record


def available_quantity(db: Session, tenant_id: int, product_id: int) -> int:
    """Unidades del producto en el vehículo según el último registro (0 si no hay)."""
    stock = get_stock_record(db, tenant_id, product_id)
    if stock is None:
        return 0
    return max(0, stock.quantity or 0)


def check_stock(db: Session, tenant_id: int, lines: Iterable[Tuple[Product, int]]) -> List[StockWarning]:
    """
    Una advertencia por producto cuya cantidad pedida supera lo que lleva el
    vehículo. Solo informa: rechazar o no es decisión de quien llama.
    """
    requested = OrderedDict()
    for product, qty in lines:
        if qty <= 0:
            continue
        if product.id in requested:
            requested[product.id] = (product, requested[product.id][1] + qty)
        else:
            requested[product.id] = (product, qty)

    warnings = []
    for product_id, (product, qty) in requested.items():
        available = available_quantity(db, tenant_id, product_id)
        if qty > available:
            warnings.append(StockWarning(
                product_id=product_id,
                name=product.name,
                requested=qty,
                available=available,
            ))
    return warnings
