"""Business rules deciding whether a close plan may be submitted.

Rules are evaluated in the order of ``CLOSE_RULES`` and the first one that
matches is the rejection. Order matters: later rules assume earlier ones
passed (e.g. the liquidation-price check assumes a trigger price exists).
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from perpclose.config import CloseSettings
from perpclose.engine.calculator import effective_order_type
from perpclose.engine.fixed import (
    BASIS_POINTS_DIVISOR,
    USD_DECIMALS,
    expand_decimals,
    format_amount,
    sub,
)
from perpclose.models import CloseInput, ClosePlan, OrderType, Position

logger = logging.getLogger(__name__)


class CloseRejection(str, Enum):
    """Reason a close cannot be submitted. Always recoverable by editing inputs."""

    ENTER_AMOUNT = "enter_amount"
    ENTER_PRICE = "enter_price"
    PRICE_BELOW_LIQUIDATION = "price_below_liquidation"
    PRICE_ABOVE_LIQUIDATION = "price_above_liquidation"
    INVALID_PRICE = "invalid_price"
    LEFTOVER_TOO_SMALL = "leftover_too_small"
    MAX_AMOUNT_EXCEEDED = "max_amount_exceeded"
    MIN_LEVERAGE = "min_leverage"
    MAX_LEVERAGE = "max_leverage"
    FORFEIT_NOT_CHECKED = "forfeit_not_checked"


def _leverage_text(bps: int) -> str:
    return f"{bps / BASIS_POINTS_DIVISOR:g}x"


def rejection_message(rejection: CloseRejection, settings: CloseSettings) -> str:
    """User-facing text for a rejection."""
    messages = {
        CloseRejection.ENTER_AMOUNT: "Enter an amount",
        CloseRejection.ENTER_PRICE: "Enter Price",
        CloseRejection.PRICE_BELOW_LIQUIDATION: "Price below Liq. Price",
        CloseRejection.PRICE_ABOVE_LIQUIDATION: "Price above Liq. Price",
        CloseRejection.INVALID_PRICE: "Invalid price, see warning",
        CloseRejection.LEFTOVER_TOO_SMALL: f"Leftover position below {settings.min_leftover_usd} USD",
        CloseRejection.MAX_AMOUNT_EXCEEDED: "Max close amount exceeded",
        CloseRejection.MIN_LEVERAGE: f"Min leverage: {_leverage_text(settings.min_leverage_bps)}",
        CloseRejection.MAX_LEVERAGE: f"Max leverage: {_leverage_text(settings.max_leverage_bps)}",
        CloseRejection.FORFEIT_NOT_CHECKED: "Forfeit profit not checked",
    }
    return messages[rejection]


@dataclass(frozen=True)
class RuleContext:
    """Everything a rule may inspect."""

    position: Position
    plan: ClosePlan
    close_input: CloseInput
    order_type: OrderType
    settings: CloseSettings

    @property
    def is_trigger(self) -> bool:
        return self.order_type == OrderType.TRIGGER


def _no_amount(ctx: RuleContext) -> bool:
    return not ctx.plan.requested_amount


def _zero_leverage(ctx: RuleContext) -> bool:
    return ctx.plan.next_leverage is not None and ctx.plan.next_leverage == 0


def _no_trigger_price(ctx: RuleContext) -> bool:
    return ctx.is_trigger and not ctx.close_input.trigger_price


def _trigger_below_liquidation(ctx: RuleContext) -> bool:
    liquidation_price = ctx.plan.liquidation_price
    return (
        ctx.is_trigger
        and ctx.position.is_long
        and liquidation_price is not None
        and ctx.close_input.trigger_price <= liquidation_price
    )


def _trigger_above_liquidation(ctx: RuleContext) -> bool:
    liquidation_price = ctx.plan.liquidation_price
    return (
        ctx.is_trigger
        and not ctx.position.is_long
        and liquidation_price is not None
        and ctx.close_input.trigger_price >= liquidation_price
    )


def _trigger_forfeits_profit(ctx: RuleContext) -> bool:
    return ctx.is_trigger and ctx.plan.forfeits_profit


def _leftover_too_small(ctx: RuleContext) -> bool:
    if ctx.plan.is_full_close or not ctx.position.size:
        return False
    floor = expand_decimals(ctx.settings.min_leftover_usd, USD_DECIMALS)
    return sub(ctx.position.size, ctx.plan.requested_amount) < floor


def _exceeds_size(ctx: RuleContext) -> bool:
    return ctx.position.size < ctx.plan.requested_amount


def _below_min_leverage(ctx: RuleContext) -> bool:
    return bool(ctx.plan.next_leverage) and ctx.plan.next_leverage < ctx.settings.min_leverage_bps


def _above_max_leverage(ctx: RuleContext) -> bool:
    return bool(ctx.plan.next_leverage) and ctx.plan.next_leverage > ctx.settings.max_leverage_bps


def _forfeit_unacknowledged(ctx: RuleContext) -> bool:
    return (
        ctx.plan.has_pending_profit
        and not ctx.is_trigger
        and not ctx.close_input.accept_forfeit
    )


Rule = tuple[Callable[[RuleContext], bool], CloseRejection]

CLOSE_RULES: list[Rule] = [
    (_no_amount, CloseRejection.ENTER_AMOUNT),
    (_zero_leverage, CloseRejection.ENTER_AMOUNT),
    (_no_trigger_price, CloseRejection.ENTER_PRICE),
    (_trigger_below_liquidation, CloseRejection.PRICE_BELOW_LIQUIDATION),
    (_trigger_above_liquidation, CloseRejection.PRICE_ABOVE_LIQUIDATION),
    (_trigger_forfeits_profit, CloseRejection.INVALID_PRICE),
    (_leftover_too_small, CloseRejection.LEFTOVER_TOO_SMALL),
    (_exceeds_size, CloseRejection.MAX_AMOUNT_EXCEEDED),
    (_below_min_leverage, CloseRejection.MIN_LEVERAGE),
    (_above_max_leverage, CloseRejection.MAX_LEVERAGE),
    (_forfeit_unacknowledged, CloseRejection.FORFEIT_NOT_CHECKED),
]


def validate_close(
    position: Position,
    plan: ClosePlan,
    close_input: CloseInput,
    settings: CloseSettings,
    rules: Optional[list[Rule]] = None,
) -> Optional[CloseRejection]:
    """Return the first rule the close breaks, or None if it may be submitted."""
    ctx = RuleContext(
        position=position,
        plan=plan,
        close_input=close_input,
        order_type=effective_order_type(close_input, settings),
        settings=settings,
    )
    for predicate, rejection in rules if rules is not None else CLOSE_RULES:
        if predicate(ctx):
            logger.debug("Close rejected by %s: %s", predicate.__name__, rejection.value)
            return rejection
    return None


def primary_action_text(
    close_input: CloseInput,
    plan: ClosePlan,
    rejection: Optional[CloseRejection],
    settings: CloseSettings,
) -> str:
    """Label for the submit action: the rejection text or what submitting does."""
    if rejection is not None:
        return rejection_message(rejection, settings)
    if effective_order_type(close_input, settings) == OrderType.TRIGGER:
        return "Create Order"
    if plan.has_pending_profit:
        return "Close without profit"
    return "Close"


def _time_remaining(seconds: float) -> str:
    seconds = max(int(seconds), 0)
    hours, remainder = divmod(seconds, 3600)
    minutes = remainder // 60
    return f"{hours}h {minutes}m"


def min_profit_warning(
    position: Position,
    plan: ClosePlan,
    close_input: CloseInput,
    settings: CloseSettings,
    now: Optional[float] = None,
) -> Optional[str]:
    """Explain the profit a close would forfeit under the minimum-profit rule."""
    if not plan.forfeits_profit:
        return None
    if now is None:
        now = time.time()

    expiration = plan.min_profit_expiration
    side = ">" if position.is_long else "<"
    profit = f"${format_amount(plan.pending_delta, USD_DECIMALS, 2, True)}"
    details = (
        f"Profit price: {side} ${format_amount(plan.profit_price, USD_DECIMALS, 2, True)}. "
        f"This rule only applies for the next {_time_remaining(expiration - now)}, "
        f"until {datetime.fromtimestamp(expiration).strftime('%d %b %Y, %H:%M')}."
    )
    if effective_order_type(close_input, settings) == OrderType.MARKET:
        return (
            f"Reducing the position at the current price will forfeit a pending "
            f"profit of {profit}.\n{details}"
        )
    return f"This order will forfeit a profit of {profit}.\n{details}"
