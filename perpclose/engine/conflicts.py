"""Detection of existing trigger orders that overlap a requested close."""

from typing import Iterable, Optional

from perpclose.config import CloseSettings
from perpclose.engine.calculator import effective_order_type
from perpclose.engine.fixed import PRECISION, USD_DECIMALS, format_amount, mul_div
from perpclose.models import CloseInput, ConditionalOrder, OrderType, Position, Token

TRIGGER_PREFIX_ABOVE = ">"
TRIGGER_PREFIX_BELOW = "<"


def trigger_prefix(trigger_above_threshold: bool) -> str:
    return TRIGGER_PREFIX_ABOVE if trigger_above_threshold else TRIGGER_PREFIX_BELOW


def _same_index_token(order: ConditionalOrder, position: Position, wrapped_native_address: str) -> bool:
    # the order book stores native-asset positions under the wrapped token
    if order.index_token.lower() == wrapped_native_address.lower():
        return position.index_token.is_native
    return order.index_token.lower() == position.index_token.address.lower()


def find_existing_order(
    position: Position,
    orders: Optional[Iterable[ConditionalOrder]],
    close_input: CloseInput,
    settings: CloseSettings,
) -> Optional[ConditionalOrder]:
    """Find a trigger order that would duplicate or interfere with this close.

    Only trigger orders are considered, since they can outlive the
    position they decrease. When the close is itself a trigger order the
    existing order must also sit on the same side of the mark price. With
    conditional orders disabled every close is a market close.

    Args:
        position: Position being closed.
        orders: The trader's existing orders.
        close_input: Requested close.
        settings: Order availability and the address the order book
            uses for the native asset.

    Returns:
        The first matching order, or None.
    """
    is_trigger = effective_order_type(close_input, settings) == OrderType.TRIGGER
    if is_trigger and not close_input.trigger_price:
        return None
    if not orders:
        return None

    for order in orders:
        if order.order_type != OrderType.TRIGGER:
            continue

        if is_trigger:
            trigger_above_threshold = close_input.trigger_price > position.mark_price
            if trigger_above_threshold != order.trigger_above_threshold:
                continue

        if order.direction == position.direction and _same_index_token(
            order, position, settings.wrapped_native_address
        ):
            return order
    return None


def describe_existing_order(order: ConditionalOrder, index_token: Token) -> str:
    """Warning text shown while a conflicting order exists."""
    size_in_token = "..."
    if order.trigger_price:
        size_in_token = format_amount(
            mul_div(order.size_delta, PRECISION, order.trigger_price), USD_DECIMALS, 4, True
        )
    return (
        f"You have an active order to decrease {order.direction} {size_in_token} "
        f"{index_token.symbol} (${format_amount(order.size_delta, USD_DECIMALS, 2, True)}) "
        f"at {trigger_prefix(order.trigger_above_threshold)} "
        f"{format_amount(order.trigger_price, USD_DECIMALS, 2, True)}"
    )
