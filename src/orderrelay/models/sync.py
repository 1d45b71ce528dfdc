"""Models for the device sync endpoint (``POST /api/sync-orders-bulk``)."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from orderrelay.models._base import Order, RelayBaseModel, normalize_identity


class SyncOrdersRequest(RelayBaseModel):
    """A device pushing its full current batch of orders for a merchant."""

    merchant_id: str = Field(..., min_length=1, description="Merchant identity")
    device_id: str = Field(..., min_length=1, description="Point-of-sale device identity")
    order_json_list: list[Order] = Field(default_factory=list, description="Replacement batch")

    @field_validator("merchant_id", "device_id", mode="before")
    @classmethod
    def _strip_identity(cls, value: Any) -> Any:
        return normalize_identity(value)

    @field_validator("order_json_list", mode="before")
    @classmethod
    def _missing_list_is_empty(cls, value: Any) -> Any:
        # Devices with nothing open send null rather than [].
        if value is None:
            return []
        return value


class SyncOrdersResponse(RelayBaseModel):
    success: bool = True
    orders: list[Order] = Field(default_factory=list)


class ErrorResponse(RelayBaseModel):
    error: str


class HeartbeatResponse(RelayBaseModel):
    success: bool = True
    heart_beat: str = "healthy"
