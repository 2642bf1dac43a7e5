"""Conversion between USD amounts and token-native amounts."""

from typing import Optional

from perpclose.engine.fixed import PRECISION, mul_div
from perpclose.models import Token

USD_PEGGED_DECIMALS = 18


def _is_usd_pegged(token: Token, usd_pegged_address: Optional[str]) -> bool:
    return bool(usd_pegged_address) and token.address.lower() == usd_pegged_address.lower()


def _price(token: Token, use_ask_price: bool) -> Optional[int]:
    return token.max_price if use_ask_price else token.min_price


def usd_to_token(
    usd_amount: Optional[int],
    token: Token,
    use_ask_price: bool = False,
    usd_pegged_address: Optional[str] = None,
) -> Optional[int]:
    """Convert a USD amount into token units.

    Args:
        usd_amount: Amount in USD (30 decimals).
        token: Token to convert into.
        use_ask_price: Divide by the ask (max) price instead of the bid.
        usd_pegged_address: Address of the USD-pegged pseudo-token, which
            converts at a fixed 1:1 rate without a price lookup.

    Returns:
        Amount in token units, or None when the amount is zero/absent or
        the required price is not loaded yet.
    """
    if not usd_amount:
        return None
    if _is_usd_pegged(token, usd_pegged_address):
        return mul_div(usd_amount, 10**USD_PEGGED_DECIMALS, PRECISION)

    price = _price(token, use_ask_price)
    if not price:
        return None
    return mul_div(usd_amount, 10**token.decimals, price)


def token_to_usd(
    token_amount: Optional[int],
    token: Token,
    use_ask_price: bool = False,
    usd_pegged_address: Optional[str] = None,
) -> Optional[int]:
    """Convert token units into USD (30 decimals); the inverse of usd_to_token."""
    if not token_amount:
        return None
    if _is_usd_pegged(token, usd_pegged_address):
        return mul_div(token_amount, PRECISION, 10**USD_PEGGED_DECIMALS)

    price = _price(token, use_ask_price)
    if not price:
        return None
    return mul_div(token_amount, price, 10**token.decimals)
