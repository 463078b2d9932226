"""Fixed-point money helpers.

All amounts are ``Decimal`` with two fractional digits. Rounding is
round-half-up (``1.005 -> 1.01``); floats are converted through their
shortest string form first so binary representation error never decides
the rounding direction.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from storefront.domain.errors import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

_PRICE_MESSAGE = "Price must exactly have two decimal places"


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValidationError(f"Invalid amount: {value!r}") from exc


def round2(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value) -> str:
    return f"{round2(value):.2f}"


def parse_money(value) -> Decimal:
    """Parse a non-negative price with at most two decimal places."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(_PRICE_MESSAGE)
    try:
        amount = to_decimal(value)
    except ValidationError:
        raise ValidationError(_PRICE_MESSAGE) from None
    if not amount.is_finite() or amount < 0 or amount != amount.quantize(CENT):
        raise ValidationError(_PRICE_MESSAGE)
    return amount.quantize(CENT)
