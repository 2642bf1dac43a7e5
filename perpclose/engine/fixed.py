"""Fixed-point integer arithmetic for USD, basis-point and token amounts.

Every monetary value in perpclose is a plain Python ``int`` carrying an
implied scale:

- USD amounts and prices: 30 decimals (``PRECISION``)
- basis points: ``BASIS_POINTS_DIVISOR``
- funding-rate accumulators: ``FUNDING_RATE_PRECISION``
- token amounts: the token's own ``decimals``

Python integers never overflow, so the helpers here check results against
the signed 256-bit range the on-chain contracts work in and raise
``ArithmeticOverflow`` instead of silently producing a value the protocol
could never hold.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional

USD_DECIMALS = 30
PRECISION = 10**USD_DECIMALS
BASIS_POINTS_DIVISOR = 10_000
FUNDING_RATE_PRECISION = 1_000_000

INT256_MAX = 2**255 - 1
INT256_MIN = -(2**255)


class ArithmeticOverflow(ArithmeticError):
    """Raised when a fixed-point result leaves the signed 256-bit range."""


def checked(value: int) -> int:
    """Return ``value`` unchanged if it fits in a signed 256-bit integer."""
    if value > INT256_MAX or value < INT256_MIN:
        raise ArithmeticOverflow(f"fixed-point value out of range: {value}")
    return value


def expand_decimals(n: int, decimals: int) -> int:
    """Scale a whole number ``n`` up by ``10**decimals``."""
    return checked(n * 10**decimals)


def add(a: int, b: int) -> int:
    return checked(a + b)


def sub(a: int, b: int) -> int:
    return checked(a - b)


def div(a: int, b: int) -> int:
    """Integer division truncating toward zero (not Python's floor)."""
    if b == 0:
        raise ZeroDivisionError("fixed-point division by zero")
    quotient = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        quotient = -quotient
    return checked(quotient)


def mul_div(a: int, b: int, c: int) -> int:
    """Compute ``a * b / c`` with a checked intermediate product."""
    return div(checked(a * b), c)


def parse_value(text: Optional[str], decimals: int) -> Optional[int]:
    """Parse a human-entered decimal string into a scaled integer.

    Fraction digits beyond ``decimals`` are truncated. Blank or
    non-numeric input yields None.

    Examples:
        >>> parse_value("1.5", 2)
        150
        >>> parse_value("", 30) is None
        True
    """
    if text is None:
        return None
    text = str(text).strip().replace(",", "")
    if not text:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    # as_tuple() is exact; Decimal arithmetic would round at 28 digits
    sign, digits, exponent = value.as_tuple()
    coefficient = int("".join(str(d) for d in digits) or "0")
    shift = exponent + decimals
    if shift >= 0:
        scaled = coefficient * 10**shift
    else:
        scaled = coefficient // 10**-shift
    return checked(-scaled if sign else scaled)


def _split(amount: int, decimals: int, display_decimals: int) -> tuple[str, str]:
    whole, remainder = divmod(abs(amount), 10**decimals)
    fraction = str(remainder).rjust(decimals, "0")[:display_decimals] if decimals else ""
    return str(whole), fraction


def format_amount_free(amount: Optional[int], decimals: int, display_decimals: int = 2) -> str:
    """Format without padding or thousands separators (input-field style)."""
    if amount is None:
        return ""
    whole, fraction = _split(amount, decimals, display_decimals)
    fraction = fraction.rstrip("0")
    text = f"{whole}.{fraction}" if fraction else whole
    return f"-{text}" if amount < 0 else text


def format_amount(
    amount: Optional[int],
    decimals: int,
    display_decimals: int = 2,
    use_commas: bool = False,
    default_value: str = "...",
) -> str:
    """Format a scaled integer for display.

    Args:
        amount: Scaled amount, or None when not yet computable.
        decimals: Scale of ``amount``.
        display_decimals: Fraction digits to show (truncated, zero padded).
        use_commas: Group thousands with commas.
        default_value: Text returned for an absent amount.

    Returns:
        Display string such as ``"1,234.50"``.
    """
    if amount is None:
        return default_value
    whole, fraction = _split(amount, decimals, display_decimals)
    fraction = fraction.ljust(display_decimals, "0")
    if use_commas:
        whole = f"{int(whole):,}"
    text = f"{whole}.{fraction}" if display_decimals > 0 else whole
    return f"-{text}" if amount < 0 else text
