"""Token data model."""

from typing import Optional
from pydantic import BaseModel, Field


class Token(BaseModel):
    """A collateral or index token with its current bid/ask prices."""

    symbol: str = Field(..., min_length=1, description="Token symbol")
    address: str = Field(..., description="Token contract address")
    decimals: int = Field(..., ge=0, le=36, description="Token decimals")
    min_price: Optional[int] = Field(
        default=None, ge=0, description="Bid price (USD, 30 decimals)"
    )
    max_price: Optional[int] = Field(
        default=None, ge=0, description="Ask price (USD, 30 decimals)"
    )
    is_native: bool = Field(default=False, description="Native chain currency flag")

    model_config = {"frozen": True}
