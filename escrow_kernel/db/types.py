"""
Module: escrow_kernel.db.types
Responsibility: Amount coercion and precision checks shared by models,
    domain functions and services.  Centralizes the "no floats" rule so that
    every entry point converts caller input the same way.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    CRITICAL: No floats anywhere in the escrow kernel.  All monetary amounts
    use Decimal; float input is rejected rather than converted.

Failure modes:
    - TypeError on float or non-numeric input to to_amount().
    - ValueError on NaN / infinite Decimal input.
"""

from decimal import Decimal, InvalidOperation

# Storage precision of AmountType on PostgreSQL (Numeric(38, 9)).
MAX_AMOUNT_DECIMAL_PLACES = 9


def to_amount(value: Decimal | int | str) -> Decimal:
    """
    Coerce caller input to a finite Decimal amount.

    Preconditions: value is a Decimal, an int, or a numeric string.
    Postconditions: Returns a finite Decimal equal to the input.

    Raises:
        TypeError: If value is a float, a bool, or another unsupported type.
        ValueError: If value is not a finite number.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Amounts must not be {type(value).__name__}: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(value)
        except InvalidOperation as exc:
            raise ValueError(f"Not a number: {value!r}") from exc
    else:
        raise TypeError(f"Unsupported amount type {type(value).__name__}")

    if not result.is_finite():
        raise ValueError(f"Amount must be finite: {value!r}")
    return result


def decimal_places(amount: Decimal) -> int:
    """Number of significant fractional digits in ``amount``."""
    exponent = amount.normalize().as_tuple().exponent
    return -exponent if isinstance(exponent, int) and exponent < 0 else 0


def fits_precision(amount: Decimal, places: int) -> bool:
    """True if ``amount`` has no more than ``places`` fractional digits."""
    return decimal_places(amount) <= min(places, MAX_AMOUNT_DECIMAL_PLACES)


def require_amount(
    field: str,
    value: Decimal | int | str,
    places: int,
    *,
    allow_zero: bool = False,
) -> Decimal:
    """
    Validate a caller-supplied amount at a service boundary.

    Raises:
        InvalidAmountError: value is not a finite non-float number, is
            negative, is zero when ``allow_zero`` is False, or carries more
            than ``places`` fractional digits.
    """
    from escrow_kernel.exceptions import InvalidAmountError

    try:
        amount = to_amount(value)
    except (TypeError, ValueError) as exc:
        raise InvalidAmountError(field, repr(value), str(exc)) from exc

    if amount < 0:
        raise InvalidAmountError(field, amount, "must not be negative")
    if amount == 0 and not allow_zero:
        raise InvalidAmountError(field, amount, "must be positive")
    if not fits_precision(amount, places):
        raise InvalidAmountError(
            field, amount, f"more than {places} decimal places"
        )
    return amount
