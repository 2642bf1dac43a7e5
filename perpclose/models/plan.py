"""Close plan data models."""

from typing import Optional
from pydantic import BaseModel, Field


class PositionDelta(BaseModel):
    """Profit or loss of a position at a reference price."""

    delta: int = Field(default=0, ge=0, description="Realizable PnL magnitude")
    pending_delta: int = Field(
        default=0, ge=0, description="PnL magnitude before the minimum-profit rule"
    )
    has_profit: bool = Field(default=False, description="Whether the delta is a profit")
    delta_percentage: int = Field(default=0, ge=0, description="Delta vs collateral (bps)")
    pending_delta_percentage: int = Field(
        default=0, ge=0, description="Pending delta vs collateral (bps)"
    )

    model_config = {"frozen": True}


class ClosePlan(BaseModel):
    """Monetary consequences of closing (part of) a position.

    Optional fields are None when the value is not computable from the
    current inputs; zero always means zero.
    """

    requested_amount: Optional[int] = Field(default=None, description="Raw requested size")
    reference_price: Optional[int] = Field(default=None, description="Close price used")
    size_delta: int = Field(default=0, ge=0, description="Notional to remove")
    is_full_close: bool = Field(default=False, description="Remaining size is dust")
    collateral_delta: int = Field(default=0, ge=0, description="Collateral to release")
    receive_amount: int = Field(default=0, ge=0, description="Net USD payout")
    converted_receive_amount: Optional[int] = Field(
        default=None, description="Payout in collateral token units"
    )
    converted_size_amount: Optional[int] = Field(
        default=None, description="Close size in collateral token units"
    )
    funding_fee: Optional[int] = Field(default=None, description="Accrued funding fee")
    position_fee: Optional[int] = Field(default=None, description="Closing fee")
    total_fees: Optional[int] = Field(default=None, description="Funding plus closing fee")
    execution_fee: Optional[int] = Field(
        default=None, description="Keeper fee for trigger orders (native wei)"
    )
    leverage: Optional[int] = Field(default=None, description="Current leverage (bps)")
    liquidation_price: Optional[int] = Field(default=None, description="Current liquidation price")
    next_collateral: Optional[int] = Field(default=None, description="Collateral after close")
    next_leverage: Optional[int] = Field(default=None, description="Leverage after close (bps)")
    next_liquidation_price: Optional[int] = Field(
        default=None, description="Liquidation price after close"
    )
    delta: int = Field(default=0, ge=0, description="Realized PnL attributable to size_delta")
    has_profit: bool = Field(default=False, description="Whether delta is a profit")
    delta_percentage: int = Field(default=0, ge=0, description="Realizable delta vs collateral (bps)")
    pending_delta: int = Field(default=0, ge=0, description="Displayed PnL on the requested size")
    pending_delta_percentage: int = Field(default=0, ge=0, description="Displayed PnL (bps)")
    profit_price: Optional[int] = Field(
        default=None, description="Price beyond which profit becomes realizable"
    )
    forfeits_profit: bool = Field(
        default=False, description="Profit at the close price is below the minimum-profit threshold"
    )
    has_pending_profit: bool = Field(
        default=False, description="Market close would forfeit latent profit"
    )
    min_profit_expiration: int = Field(
        default=0, description="Unix time when the minimum-profit rule lapses"
    )

    model_config = {"frozen": True}
