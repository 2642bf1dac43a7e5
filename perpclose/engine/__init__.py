"""Close-plan engine: fixed-point math, PnL, fees, planning and validation."""

from perpclose.engine.calculator import calculate_close_plan, effective_order_type
from perpclose.engine.conflicts import describe_existing_order, find_existing_order
from perpclose.engine.fees import funding_fee, position_fee
from perpclose.engine.fixed import ArithmeticOverflow
from perpclose.engine.margin import get_leverage, get_liquidation_price
from perpclose.engine.pnl import position_delta, profit_price
from perpclose.engine.prices import token_to_usd, usd_to_token
from perpclose.engine.submission import (
    CloseNotAllowed,
    build_decrease_order,
    build_decrease_position,
)
from perpclose.engine.validation import (
    CLOSE_RULES,
    CloseRejection,
    min_profit_warning,
    primary_action_text,
    rejection_message,
    validate_close,
)

__all__ = [
    "ArithmeticOverflow",
    "CLOSE_RULES",
    "CloseNotAllowed",
    "CloseRejection",
    "build_decrease_order",
    "build_decrease_position",
    "calculate_close_plan",
    "describe_existing_order",
    "effective_order_type",
    "find_existing_order",
    "funding_fee",
    "get_leverage",
    "get_liquidation_price",
    "min_profit_warning",
    "position_delta",
    "position_fee",
    "primary_action_text",
    "profit_price",
    "rejection_message",
    "token_to_usd",
    "usd_to_token",
    "validate_close",
]
