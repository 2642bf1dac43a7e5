"""Funding and closing fee calculations."""

from typing import Optional

from perpclose.config import CloseSettings
from perpclose.engine.fixed import BASIS_POINTS_DIVISOR, FUNDING_RATE_PRECISION, mul_div, sub
from perpclose.models import Position


def funding_fee(position: Position) -> Optional[int]:
    """Funding accrued since the position was opened.

    Returns:
        Fee in USD (30 decimals), or None if either funding-rate
        accumulator is unknown.
    """
    if position.entry_funding_rate is None or position.cumulative_funding_rate is None:
        return None
    rate_delta = sub(position.cumulative_funding_rate, position.entry_funding_rate)
    return mul_div(position.size, rate_delta, FUNDING_RATE_PRECISION)


def position_fee(size_delta: Optional[int], settings: CloseSettings) -> int:
    """Closing fee charged on the notional being removed.

    Computed as the size minus the size after fees, so any rounding
    remainder is charged rather than dropped.
    """
    if not size_delta:
        return 0
    after_fee = mul_div(size_delta, BASIS_POINTS_DIVISOR - settings.margin_fee_bps, BASIS_POINTS_DIVISOR)
    return sub(size_delta, after_fee)
