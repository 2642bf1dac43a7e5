"""Position data model."""

from typing import Optional
from pydantic import BaseModel, Field

from perpclose.models.token import Token


class Position(BaseModel):
    """Represents an open leveraged position as reported by the market-state feed."""

    size: int = Field(..., ge=0, description="Notional size (USD, 30 decimals)")
    collateral: int = Field(..., ge=0, description="Collateral (USD, 30 decimals)")
    average_price: int = Field(..., ge=0, description="Average entry price")
    mark_price: int = Field(..., ge=0, description="Current mark price")
    is_long: bool = Field(..., description="Position direction")
    entry_funding_rate: Optional[int] = Field(
        default=None, description="Funding-rate accumulator at entry"
    )
    cumulative_funding_rate: Optional[int] = Field(
        default=None, description="Current funding-rate accumulator"
    )
    last_increased_time: int = Field(
        default=0, ge=0, description="Unix time of the last size increase"
    )
    collateral_token: Token = Field(..., description="Collateral token")
    index_token: Token = Field(..., description="Index token")

    model_config = {"frozen": True}

    @property
    def direction(self) -> str:
        """Direction marker used by conditional orders ("Long"/"Short")."""
        return "Long" if self.is_long else "Short"

    @property
    def title(self) -> str:
        return f"Close {self.direction} {self.index_token.symbol}"
