"""Submission request and result models."""

from typing import Literal
from pydantic import BaseModel, Field


class DecreaseOrderRequest(BaseModel):
    """Creates a conditional decrease order in the order book."""

    index_token: str = Field(..., description="Index token address")
    size_delta: int = Field(..., ge=0, description="Notional to decrease")
    collateral_token: str = Field(..., description="Collateral token address")
    collateral_delta: int = Field(..., ge=0, description="Collateral to withdraw")
    is_long: bool = Field(..., description="Position direction")
    trigger_price: int = Field(..., gt=0, description="Trigger price")
    trigger_above_threshold: bool = Field(..., description="Trigger side")

    model_config = {"frozen": True}


class DecreasePositionRequest(BaseModel):
    """Decreases a position immediately at market."""

    method: Literal["decreasePosition", "decreasePositionETH"] = Field(
        ..., description="Router method"
    )
    collateral_token: str = Field(..., description="Collateral token address")
    index_token: str = Field(..., description="Index token address")
    collateral_delta: int = Field(..., ge=0, description="Collateral to withdraw")
    size_delta: int = Field(..., ge=0, description="Notional to decrease")
    is_long: bool = Field(..., description="Position direction")
    recipient: str = Field(..., min_length=1, description="Receiving account")
    acceptable_price: int = Field(..., ge=0, description="Worst acceptable index price")

    model_config = {"frozen": True}


class SubmissionResult(BaseModel):
    """Result reported back by the transaction-submission collaborator."""

    request_id: str = Field(..., description="Submission identifier")
    status: str = Field(..., description="Submission status")
    message: str = Field(default="", description="Status message")

    model_config = {"frozen": True}
