"""Push-channel messages exchanged with merchant dashboards."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import Field, field_validator

from orderrelay.models._base import Order, RelayBaseModel, normalize_identity


class MessageType(StrEnum):
    REGISTER = "register"


class RegisterMessage(RelayBaseModel):
    """Client → server: bind this connection to a merchant."""

    type: MessageType = MessageType.REGISTER
    merchant_id: str = Field(..., min_length=1)

    @field_validator("merchant_id", mode="before")
    @classmethod
    def _strip_identity(cls, value: Any) -> Any:
        return normalize_identity(value)


class OrdersPush(RelayBaseModel):
    """Server → client: the merchant's full merged view.

    Sent as a snapshot right after registration and again on every broadcast.
    An empty ``elements`` list tells the client to clear its view.
    """

    elements: list[Order] = Field(default_factory=list)
