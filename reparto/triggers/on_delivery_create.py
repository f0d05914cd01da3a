# reparto/triggers/on_delivery_create.py
"""
Trigger que se ejecuta cuando se crea una entrega.

Corre en segundo plano, después de responder al usuario, con su propia sesión
de base de datos. Los errores solo se registran: la entrega ya existe y es la
fuente de verdad; lo pendiente se recupera con ``reconcile_pending``.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from reparto.database import SessionLocal
from reparto.services.reconciliation import ReconciliationResult, reconcile_delivery, record_failure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryCreatedEvent:
    tenant_id: int
    delivery_id: int


def _record_failure(session_factory: Callable[[], Session], event: DeliveryCreatedEvent, error: Exception) -> None:
    db = session_factory()
    try:
        record_failure(db, event.delivery_id, error)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("No se pudo registrar el error de la entrega %s", event.delivery_id)
    finally:
        db.close()


def on_delivery_create(
    event: DeliveryCreatedEvent,
    session_factory: Optional[Callable[[], Session]] = None,
) -> Optional[ReconciliationResult]:
    factory = session_factory or SessionLocal
    db = factory()
    try:
        logger.info("Procesando entrega %s (tenant %s)", event.delivery_id, event.tenant_id)
        result = reconcile_delivery(db, event.tenant_id, event.delivery_id)
        if result.skipped_products:
            logger.warning(
                "Entrega %s: productos sin inventario en el vehículo %s",
                event.delivery_id, result.skipped_products,
            )
        logger.info("Entrega %s procesada correctamente", event.delivery_id)
        return result
    except Exception as exc:
        logger.exception("Error procesando entrega %s", event.delivery_id)
        _record_failure(factory, event, exc)
        return None
    finally:
        db.close()
