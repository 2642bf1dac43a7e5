"""Profit and loss of a position at a reference price.

Includes the minimum-profit rule: for ``min_profit_time`` seconds after a
position was last increased, a profit no larger than ``min_profit_bps`` of
the position size cannot be realized. Such a delta is reported as a
realizable ``delta`` of zero while ``pending_delta`` keeps the raw value, so
callers can warn the trader that closing now forfeits it.
"""

import time
from typing import Optional

from perpclose.config import CloseSettings
from perpclose.engine.fixed import BASIS_POINTS_DIVISOR, checked, mul_div
from perpclose.models import Position, PositionDelta


def min_profit_expiration(position: Position, settings: CloseSettings) -> int:
    """Unix time after which the minimum-profit rule no longer applies."""
    return position.last_increased_time + settings.min_profit_time


def position_delta(
    price: Optional[int],
    position: Position,
    size_delta: Optional[int] = None,
    *,
    settings: CloseSettings,
    now: Optional[float] = None,
) -> PositionDelta:
    """Calculate the PnL of ``position`` if it were closed at ``price``.

    Args:
        price: Reference price (USD, 30 decimals).
        position: Position to evaluate.
        size_delta: Notional to evaluate instead of the full size.
        settings: Risk constants (minimum-profit window and threshold).
        now: Current unix time; defaults to the wall clock.

    Returns:
        PositionDelta for the evaluated notional. A position with zero
        size or zero average price, or a missing price, has no delta.
    """
    if not price or position.size == 0 or position.average_price == 0:
        return PositionDelta()

    if not size_delta:
        size_delta = position.size
    if now is None:
        now = time.time()

    average_price = position.average_price
    price_delta = abs(average_price - price)
    delta = mul_div(size_delta, price_delta, average_price)
    pending_delta = delta

    has_profit = price > average_price if position.is_long else price < average_price

    min_profit_expired = min_profit_expiration(position, settings) < now
    threshold = checked(position.size * settings.min_profit_bps)
    if not min_profit_expired and has_profit and checked(delta * BASIS_POINTS_DIVISOR) <= threshold:
        delta = 0

    if position.collateral:
        delta_percentage = mul_div(delta, BASIS_POINTS_DIVISOR, position.collateral)
        pending_delta_percentage = mul_div(pending_delta, BASIS_POINTS_DIVISOR, position.collateral)
    else:
        delta_percentage = pending_delta_percentage = 0

    return PositionDelta(
        delta=delta,
        pending_delta=pending_delta,
        has_profit=has_profit,
        delta_percentage=delta_percentage,
        pending_delta_percentage=pending_delta_percentage,
    )


def profit_price(
    close_price: Optional[int],
    position: Position,
    settings: CloseSettings,
) -> Optional[int]:
    """Price beyond which a profit clears the minimum-profit threshold.

    The close price only decides whether a profit price is shown at all;
    the value itself is derived from the average entry price.
    """
    if not close_price or not position.average_price:
        return None
    if position.is_long:
        bps = BASIS_POINTS_DIVISOR + settings.min_profit_bps
    else:
        bps = BASIS_POINTS_DIVISOR - settings.min_profit_bps
    return mul_div(position.average_price, bps, BASIS_POINTS_DIVISOR)
