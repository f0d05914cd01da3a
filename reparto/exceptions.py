# reparto/exceptions.py
"""
Errores de dominio de la liquidación de entregas.

Los servicios los lanzan; ``main.py`` los traduce a respuestas JSON con el
código HTTP de ``status_code``.
"""


class RepartoError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RepartoError):
    """Datos mal formados o inconsistentes con el tipo de pago."""
    status_code = 400


class NotFoundError(RepartoError):
    """Cliente, producto o entrega inexistente en el tenant."""
    status_code = 404


class ConflictError(RepartoError):
    """Se agotaron los reintentos por escritura concurrente."""
    status_code = 409


class PersistenceError(RepartoError):
    """Falló el commit; la transacción se revirtió completa."""
    status_code = 503
