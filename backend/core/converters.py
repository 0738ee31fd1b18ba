from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
from uuid import UUID

from core.errors import InvalidIdError

QUANTITY_STEP = Decimal("0.0001")
PERCENT_STEP = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """Convert a wire/DB number to Decimal without picking up float noise."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def round4(value) -> Decimal:
    """Quantities and money are kept at 4 fractional digits at every step."""
    return to_decimal(value).quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)


def round2(value) -> Decimal:
    return to_decimal(value).quantize(PERCENT_STEP, rounding=ROUND_HALF_UP)


def as_float(value) -> Optional[float]:
    if value is None:
        return None
    return float(round4(value))


def format_quantity(value) -> str:
    """Human-readable quantity for error details: 6.0000 -> '6', 2.5000 -> '2.5'."""
    return format(round4(value).normalize(), "f")


def parse_uuid(value: str, label: str = "id") -> UUID:
    try:
        return UUID(str(value).strip())
    except (TypeError, ValueError, AttributeError):
        raise InvalidIdError(f"Invalid {label}")
