"""
Amounts -- Decimal money and hour values at the ledger boundary.

Responsibility:
    Convert caller-supplied values into quantized ``Decimal`` amounts,
    rejecting floats, booleans, non-numeric strings and negatives.

Invariants enforced:
    - Money is never a float.  ``Decimal(0.1)`` carries binary noise, so
      floats are refused outright rather than converted.
    - Quantization is ROUND_HALF_UP to the configured number of places.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from labour_kernel.exceptions import InvalidAmountError

ZERO = Decimal("0")


def quantum(places: int) -> Decimal:
    return Decimal(1).scaleb(-places)


def quantize(value: Decimal, places: int = 2) -> Decimal:
    """Round ``value`` half-up to ``places`` decimal places."""
    return value.quantize(quantum(places), rounding=ROUND_HALF_UP)


def to_amount(
    value: object,
    field: str,
    places: int = 2,
    allow_negative: bool = False,
) -> Decimal:
    """
    Parse ``value`` into a quantized Decimal.

    ``None`` is treated as zero, so optional components (overtime, bonus)
    may be omitted.

    Raises:
        InvalidAmountError: float/bool input, unparseable string,
            non-finite value, or negative when not allowed.
    """
    if value is None:
        return quantize(ZERO, places)
    if isinstance(value, (bool, float)):
        raise InvalidAmountError(field, value, "must be a Decimal, int or numeric string, not float")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidAmountError(field, value, "is not a number") from None
    else:
        raise InvalidAmountError(field, value, f"unsupported type {type(value).__name__}")

    if not amount.is_finite():
        raise InvalidAmountError(field, value, "must be finite")
    if amount < 0 and not allow_negative:
        raise InvalidAmountError(field, value)
    return quantize(amount, places)
