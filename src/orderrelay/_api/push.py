"""Push-channel frame parsing and encoding."""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from orderrelay._api._json import dumps
from orderrelay.exceptions import RelayParseError
from orderrelay.models import MessageType, Order, OrdersPush, RegisterMessage


def _decode_frame(raw: str | bytes) -> dict[str, Any]:
    try:
        decoded = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise RelayParseError(f"Push message is not JSON: {str(raw)[:64]!r}") from exc
    if not isinstance(decoded, dict):
        raise RelayParseError(f"Push message is not an object: {type(decoded).__name__}")
    return decoded


def parse_client_message(raw: str | bytes) -> RegisterMessage | None:
    """Decode an inbound frame.

    Returns ``None`` for well-formed messages the relay does not act on
    (unknown ``type``).  A register message without a usable merchant id is
    malformed.

    Raises
    ------
    RelayParseError
        Frame is not a JSON object, or a register message fails validation.
    """
    message = _decode_frame(raw)
    if message.get("type") != MessageType.REGISTER:
        return None
    try:
        return RegisterMessage.model_validate(message)
    except ValidationError as exc:
        raise RelayParseError("Register message requires a non-empty merchantId") from exc


def encode_orders_push(view: list[Order]) -> str:
    """Serialize the ``{"elements": [...]}`` envelope once per broadcast."""
    return dumps(OrdersPush(elements=view).to_wire())
