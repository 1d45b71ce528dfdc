"""Wire models for the relay's HTTP and push-channel payloads."""

from orderrelay.models._base import Order, RelayBaseModel
from orderrelay.models.push import MessageType, OrdersPush, RegisterMessage
from orderrelay.models.sync import ErrorResponse, HeartbeatResponse, SyncOrdersRequest, SyncOrdersResponse

__all__ = [
    "ErrorResponse",
    "HeartbeatResponse",
    "MessageType",
    "Order",
    "OrdersPush",
    "RegisterMessage",
    "RelayBaseModel",
    "SyncOrdersRequest",
    "SyncOrdersResponse",
]
