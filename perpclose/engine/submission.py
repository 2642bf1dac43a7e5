"""Build the requests handed to the transaction-submission collaborator."""

import logging
from typing import Optional

from perpclose.config import CloseSettings
from perpclose.engine.calculator import effective_order_type
from perpclose.engine.fixed import BASIS_POINTS_DIVISOR, mul_div
from perpclose.engine.validation import CloseRejection, rejection_message
from perpclose.models import (
    CloseInput,
    ClosePlan,
    DecreaseOrderRequest,
    DecreasePositionRequest,
    OrderType,
    Position,
    Token,
)

logger = logging.getLogger(__name__)


class CloseNotAllowed(Exception):
    """Raised when a request is built for a close that failed validation."""

    def __init__(self, rejection: CloseRejection, message: str):
        super().__init__(message)
        self.rejection = rejection


def _ensure_allowed(rejection: Optional[CloseRejection], settings: CloseSettings) -> None:
    if rejection is not None:
        raise CloseNotAllowed(rejection, rejection_message(rejection, settings))


def _token_address(token: Token, wrapped_native_address: str) -> str:
    return wrapped_native_address if token.is_native else token.address


def acceptable_price(position: Position, slippage_bps: int) -> Optional[int]:
    """Worst index price the trader accepts for a market close.

    Longs sell at the bid and accept less; shorts buy back at the ask and
    accept more.
    """
    if position.is_long:
        price = position.index_token.min_price
        bps = BASIS_POINTS_DIVISOR - slippage_bps
    else:
        price = position.index_token.max_price
        bps = BASIS_POINTS_DIVISOR + slippage_bps
    if price is None:
        return None
    return mul_div(price, bps, BASIS_POINTS_DIVISOR)


def build_decrease_order(
    position: Position,
    plan: ClosePlan,
    close_input: CloseInput,
    settings: CloseSettings,
    rejection: Optional[CloseRejection] = None,
) -> DecreaseOrderRequest:
    """Request creating a trigger order that decreases the position.

    Raises:
        CloseNotAllowed: If ``rejection`` is set or the close is not a
            trigger order.
    """
    _ensure_allowed(rejection, settings)
    if effective_order_type(close_input, settings) != OrderType.TRIGGER:
        raise CloseNotAllowed(CloseRejection.ENTER_PRICE, "Decrease orders need trigger mode")

    trigger_price = close_input.trigger_price
    request = DecreaseOrderRequest(
        index_token=_token_address(position.index_token, settings.wrapped_native_address),
        size_delta=plan.size_delta,
        collateral_token=_token_address(position.collateral_token, settings.wrapped_native_address),
        collateral_delta=plan.collateral_delta,
        is_long=position.is_long,
        trigger_price=trigger_price,
        trigger_above_threshold=trigger_price > position.mark_price,
    )
    logger.info("Built decrease order for %s at %s", position.title, trigger_price)
    return request


def build_decrease_position(
    position: Position,
    plan: ClosePlan,
    settings: CloseSettings,
    account: str,
    rejection: Optional[CloseRejection] = None,
) -> DecreasePositionRequest:
    """Request decreasing the position immediately at market.

    Native collateral is paid out through ``decreasePositionETH`` and
    referenced by its wrapped address.

    Raises:
        CloseNotAllowed: If ``rejection`` is set or index prices are missing.
    """
    _ensure_allowed(rejection, settings)
    price_limit = acceptable_price(position, settings.slippage_bps)
    if price_limit is None:
        raise CloseNotAllowed(CloseRejection.ENTER_PRICE, "Index token price not loaded")

    is_native_collateral = position.collateral_token.is_native
    request = DecreasePositionRequest(
        method="decreasePositionETH" if is_native_collateral else "decreasePosition",
        collateral_token=_token_address(position.collateral_token, settings.wrapped_native_address),
        index_token=_token_address(position.index_token, settings.wrapped_native_address),
        collateral_delta=plan.collateral_delta,
        size_delta=plan.size_delta,
        is_long=position.is_long,
        recipient=account,
        acceptable_price=price_limit,
    )
    logger.info(
        "Built %s for %s: size_delta=%s acceptable_price=%s",
        request.method,
        position.title,
        request.size_delta,
        request.acceptable_price,
    )
    return request
