"""Leverage and liquidation-price formulas for decreasing a position."""

from typing import Optional

from perpclose.config import CloseSettings
from perpclose.engine.fees import funding_fee, position_fee
from perpclose.engine.fixed import BASIS_POINTS_DIVISOR, USD_DECIMALS, add, expand_decimals, mul_div, sub
from perpclose.models import Position


def get_leverage(
    position: Position,
    settings: CloseSettings,
    size_delta: int = 0,
    collateral_delta: int = 0,
    delta: int = 0,
    has_profit: bool = False,
    include_delta: bool = False,
) -> Optional[int]:
    """Leverage of ``position`` after removing ``size_delta`` of notional.

    Args:
        position: Position being decreased.
        settings: Fee constants.
        size_delta: Notional removed.
        collateral_delta: Collateral withdrawn.
        delta: PnL magnitude of the position.
        has_profit: Whether ``delta`` is a profit.
        include_delta: Count ``delta`` towards the remaining collateral.

    Returns:
        Leverage in basis points (10000 = 1x), or None when the decrease
        leaves no size or no collateral.
    """
    if not position.size and not size_delta:
        return None
    if not position.collateral and not collateral_delta:
        return None

    next_size = position.size
    if size_delta:
        if size_delta >= position.size:
            return None
        next_size = sub(position.size, size_delta)

    remaining_collateral = position.collateral
    if collateral_delta:
        if collateral_delta >= position.collateral:
            return None
        remaining_collateral = sub(position.collateral, collateral_delta)

    if delta and include_delta:
        if has_profit:
            remaining_collateral = add(remaining_collateral, delta)
        else:
            if delta > remaining_collateral:
                return None
            remaining_collateral = sub(remaining_collateral, delta)

    if remaining_collateral == 0:
        return None

    if size_delta:
        remaining_collateral = mul_div(
            remaining_collateral,
            BASIS_POINTS_DIVISOR - settings.margin_fee_bps,
            BASIS_POINTS_DIVISOR,
        )
    fee = funding_fee(position)
    if fee:
        remaining_collateral = sub(remaining_collateral, fee)

    if remaining_collateral <= 0:
        return None
    return mul_div(next_size, BASIS_POINTS_DIVISOR, remaining_collateral)


def _liquidation_price_from_delta(
    liquidation_amount: int,
    size: int,
    collateral: int,
    average_price: int,
    is_long: bool,
) -> Optional[int]:
    """Price at which the loss leaves exactly ``liquidation_amount`` of collateral."""
    if not size:
        return None

    if liquidation_amount > collateral:
        # already under water at entry: liquidation sits on the profitable side
        price_delta = mul_div(sub(liquidation_amount, collateral), average_price, size)
        return add(average_price, price_delta) if is_long else sub(average_price, price_delta)

    price_delta = mul_div(sub(collateral, liquidation_amount), average_price, size)
    return sub(average_price, price_delta) if is_long else add(average_price, price_delta)


def get_liquidation_price(
    position: Position,
    settings: CloseSettings,
    size_delta: int = 0,
    collateral_delta: int = 0,
) -> Optional[int]:
    """Liquidation price of ``position`` after an optional decrease.

    The position is liquidated at whichever comes first: collateral no
    longer covering closing, liquidation and funding fees, or leverage
    reaching ``max_liquidation_leverage_bps``. For longs that is the
    higher of the two prices, for shorts the lower.

    Returns:
        Liquidation price (USD, 30 decimals), or None when the position is
        empty, fully closed, or its collateral is exhausted.
    """
    if not position.size or not position.collateral or not position.average_price:
        return None

    next_size = position.size
    remaining_collateral = position.collateral
    if size_delta:
        if size_delta >= position.size:
            return None
        next_size = sub(position.size, size_delta)
        remaining_collateral = sub(remaining_collateral, position_fee(size_delta, settings))

    if collateral_delta:
        if collateral_delta >= remaining_collateral:
            return None
        remaining_collateral = sub(remaining_collateral, collateral_delta)

    fees = add(
        position_fee(position.size, settings),
        expand_decimals(settings.liquidation_fee_usd, USD_DECIMALS),
    )
    accrued = funding_fee(position)
    if accrued:
        fees = add(fees, accrued)

    price_for_fees = _liquidation_price_from_delta(
        fees, next_size, remaining_collateral, position.average_price, position.is_long
    )
    price_for_max_leverage = _liquidation_price_from_delta(
        mul_div(next_size, BASIS_POINTS_DIVISOR, settings.max_liquidation_leverage_bps),
        next_size,
        remaining_collateral,
        position.average_price,
        position.is_long,
    )

    if price_for_fees is None:
        return price_for_max_leverage
    if price_for_max_leverage is None:
        return price_for_fees
    if position.is_long:
        return max(price_for_fees, price_for_max_leverage)
    return min(price_for_fees, price_for_max_leverage)
