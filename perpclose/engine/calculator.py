"""Close plan calculation.

``calculate_close_plan`` is a pure function of a position snapshot, the
trader's close input and the session settings. It holds no state between
calls, so it can be re-run on every input change.
"""

import logging
import time
from typing import Optional

from perpclose.config import CloseSettings
from perpclose.engine.fees import funding_fee, position_fee
from perpclose.engine.fixed import BASIS_POINTS_DIVISOR, USD_DECIMALS, add, expand_decimals, mul_div, sub
from perpclose.engine.margin import get_leverage, get_liquidation_price
from perpclose.engine.pnl import min_profit_expiration, position_delta, profit_price
from perpclose.engine.prices import usd_to_token
from perpclose.models import CloseInput, ClosePlan, OrderType, Position

logger = logging.getLogger(__name__)


def effective_order_type(close_input: CloseInput, settings: CloseSettings) -> OrderType:
    """Order mode actually used; market when conditional orders are disabled."""
    if not settings.orders_enabled:
        return OrderType.MARKET
    return close_input.order_type


def reference_price(position: Position, close_input: CloseInput, settings: CloseSettings) -> Optional[int]:
    """Mark price for market closes, the trigger price for trigger orders."""
    if effective_order_type(close_input, settings) == OrderType.MARKET:
        return position.mark_price or None
    return close_input.trigger_price or None


def calculate_close_plan(
    position: Position,
    close_input: CloseInput,
    settings: CloseSettings,
    now: Optional[float] = None,
) -> ClosePlan:
    """Compute the consequences of closing ``close_input.amount`` of a position.

    Args:
        position: Current position snapshot.
        close_input: Requested amount, order mode, trigger price and
            keep-leverage flag.
        settings: Session preferences and risk constants.
        now: Current unix time for the minimum-profit rule.

    Returns:
        A fresh ClosePlan. When the amount or the reference price is not
        entered yet, close-dependent fields are zero or None.

    Raises:
        ArithmeticOverflow: If the snapshot holds values outside the
            protocol's 256-bit range.
    """
    if now is None:
        now = time.time()

    order_type = effective_order_type(close_input, settings)
    price = reference_price(position, close_input, settings)
    amount = close_input.amount
    fee = funding_fee(position)

    mark = position_delta(position.mark_price, position, settings=settings, now=now)
    base = {
        "requested_amount": amount,
        "reference_price": price,
        "funding_fee": fee,
        "leverage": get_leverage(
            position,
            settings,
            delta=mark.delta,
            has_profit=mark.has_profit,
            include_delta=settings.include_pnl_in_leverage,
        ),
        "liquidation_price": get_liquidation_price(position, settings),
        "profit_price": profit_price(price, position, settings),
        "has_pending_profit": mark.delta == 0 and mark.pending_delta > 0,
        "min_profit_expiration": min_profit_expiration(position, settings),
        "execution_fee": (
            settings.decrease_order_execution_fee if order_type == OrderType.TRIGGER else None
        ),
    }

    if not amount or not price or not position.size:
        return ClosePlan(**base)

    at_price = position_delta(price, position, settings=settings, now=now)
    display = position_delta(price, position, amount, settings=settings, now=now)

    dust = expand_decimals(settings.dust_usd, USD_DECIMALS)
    is_full_close = sub(position.size, amount) < dust
    size_delta = position.size if is_full_close else amount

    receive_amount = position.collateral if is_full_close else 0
    adjusted_delta = mul_div(at_price.delta, size_delta, position.size)
    if at_price.has_profit:
        receive_amount = add(receive_amount, adjusted_delta)
    else:
        receive_amount = max(sub(receive_amount, adjusted_delta), 0)

    collateral_delta = 0
    if close_input.keep_leverage and not is_full_close:
        collateral_delta = mul_div(size_delta, position.collateral, position.size)
    receive_amount = add(receive_amount, collateral_delta)

    closing_fee = position_fee(size_delta, settings)
    total_fees = None
    if fee is not None:
        total_fees = add(closing_fee, fee)
        receive_amount = max(sub(receive_amount, total_fees), 0)
        # fees are paid out of the released collateral
        if collateral_delta > total_fees:
            collateral_delta = sub(collateral_delta, total_fees)

    next_collateral = 0 if is_full_close else sub(position.collateral, collateral_delta)

    next_leverage = None
    next_liquidation_price = None
    if not is_full_close and not close_input.keep_leverage:
        next_leverage = get_leverage(
            position,
            settings,
            size_delta=size_delta,
            delta=at_price.delta,
            has_profit=at_price.has_profit,
            include_delta=settings.include_pnl_in_leverage,
        )
        next_liquidation_price = get_liquidation_price(position, settings, size_delta=size_delta)

    plan = ClosePlan(
        **base,
        forfeits_profit=(
            base["profit_price"] is not None and at_price.delta == 0 and at_price.has_profit
        ),
        size_delta=size_delta,
        is_full_close=is_full_close,
        collateral_delta=collateral_delta,
        receive_amount=receive_amount,
        converted_receive_amount=usd_to_token(
            receive_amount, position.collateral_token, False, settings.usd_pegged_address
        ),
        converted_size_amount=usd_to_token(
            amount, position.collateral_token, True, settings.usd_pegged_address
        ),
        position_fee=closing_fee,
        total_fees=total_fees,
        next_collateral=next_collateral,
        next_leverage=next_leverage,
        next_liquidation_price=next_liquidation_price,
        delta=adjusted_delta,
        has_profit=at_price.has_profit,
        delta_percentage=(
            mul_div(adjusted_delta, BASIS_POINTS_DIVISOR, position.collateral) if position.collateral else 0
        ),
        pending_delta=display.pending_delta,
        pending_delta_percentage=display.pending_delta_percentage,
    )
    logger.debug(
        "Close plan %s: size_delta=%s full=%s receive=%s fees=%s",
        position.title,
        plan.size_delta,
        plan.is_full_close,
        plan.receive_amount,
        plan.total_fees,
    )
    return plan
