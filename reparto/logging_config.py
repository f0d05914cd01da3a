"""
reparto/logging_config.py

Configuración única del logging de la aplicación. Cada módulo usa su propio
``logging.getLogger(__name__)``; aquí solo se instala el handler raíz.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, Union

__all__ = ["configure_logging"]

_LOGGER_NAME = "reparto"
_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[Union[int, str]] = None) -> logging.Logger:
    """
    Devuelve el logger del paquete; la primera vez le agrega un handler a stderr.
    Llamarla de nuevo reutiliza el mismo logger (sin handlers duplicados).
    """
    from reparto.config import settings

    if level is None:
        level = settings.LOG_LEVEL
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
