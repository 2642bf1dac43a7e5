"""Order-related data models."""

from enum import Enum
from typing import Literal, Optional
from pydantic import BaseModel, Field


class OrderType(str, Enum):
    """How a close is executed."""

    MARKET = "market"
    TRIGGER = "trigger"


class ConditionalOrder(BaseModel):
    """An existing order owned by the trader, as listed by the order book."""

    order_type: OrderType = Field(..., description="Order kind")
    trigger_price: int = Field(..., ge=0, description="Trigger price (USD, 30 decimals)")
    trigger_above_threshold: bool = Field(
        ..., description="Executes when price rises above the trigger"
    )
    size_delta: int = Field(..., ge=0, description="Notional to decrease")
    index_token: str = Field(..., description="Index token address")
    direction: Literal["Long", "Short"] = Field(..., description="Position direction")
    account: str = Field(default="", description="Owner account")

    model_config = {"frozen": True}


class CloseInput(BaseModel):
    """What the trader entered in the close form."""

    amount: Optional[int] = Field(
        default=None, ge=0, description="Requested close size (USD, 30 decimals)"
    )
    order_type: OrderType = Field(default=OrderType.MARKET, description="Close mode")
    trigger_price: Optional[int] = Field(
        default=None, ge=0, description="Trigger price for trigger orders"
    )
    keep_leverage: bool = Field(default=True, description="Release collateral proportionally")
    accept_forfeit: bool = Field(
        default=False, description="Trader acknowledged forfeiting pending profit"
    )

    model_config = {"frozen": True}

    @property
    def is_trigger(self) -> bool:
        return self.order_type == OrderType.TRIGGER
