from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """
    Convierte a Decimal con dos decimales.
    Los float pasan por str() para no arrastrar errores de punto flotante.
    """
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f"Monto inválido: {value!r}")
    return value.quantize(CENT, rounding=ROUND_HALF_UP)
