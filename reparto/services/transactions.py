import logging
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from reparto.config import settings
from reparto.exceptions import RepartoError, ConflictError, PersistenceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_in_transaction(
    db: Session,
    work: Callable[[], T],
    *,
    description: str = "la operación",
    max_attempts: Optional[int] = None,
) -> T:
    """
    Ejecuta ``work`` y hace UN commit. Todo o nada.

    Si otro escritor modificó una fila versionada (cliente, stock del vehículo)
    se revierte y se vuelve a ejecutar ``work`` desde cero, releyendo los datos.
    """
    attempts = settings.SETTLEMENT_MAX_RETRIES if max_attempts is None else max_attempts
    attempts = max(1, attempts)

    for attempt in range(1, attempts + 1):
        try:
            result = work()
            db.commit()
            return result
        except StaleDataError:
            db.rollback()
            logger.warning("Conflicto de concurrencia en %s (intento %s/%s)", description, attempt, attempts)
        except RepartoError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Error de base de datos en %s", description)
            raise PersistenceError(f"No se pudo guardar {description}") from exc

    raise ConflictError(f"No se pudo guardar {description}: los datos cambiaron mientras se guardaba, reintente")
