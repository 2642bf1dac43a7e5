"""Data models for perpclose."""

from perpclose.models.token import Token
from perpclose.models.position import Position
from perpclose.models.order import CloseInput, ConditionalOrder, OrderType
from perpclose.models.plan import ClosePlan, PositionDelta
from perpclose.models.requests import (
    DecreaseOrderRequest,
    DecreasePositionRequest,
    SubmissionResult,
)

__all__ = [
    "ClosePlan",
    "CloseInput",
    "ConditionalOrder",
    "DecreaseOrderRequest",
    "DecreasePositionRequest",
    "OrderType",
    "Position",
    "PositionDelta",
    "SubmissionResult",
    "Token",
]
