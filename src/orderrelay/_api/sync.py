"""Device sync request parsing (``POST /api/sync-orders-bulk``)."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from orderrelay.exceptions import RelayValidationError
from orderrelay.models import Order, SyncOrdersRequest, SyncOrdersResponse

_logger = logging.getLogger(__name__)

MISSING_IDENTITY_MESSAGE = "merchantId and deviceId are required"
INVALID_BODY_MESSAGE = "request body must be a JSON object"
INVALID_ORDERS_MESSAGE = "orderJsonList must be an array of order objects"

_IDENTITY_FIELDS = frozenset({"merchantId", "deviceId", "merchant_id", "device_id"})


def parse_sync_request(body: Any) -> SyncOrdersRequest:
    """Validate a decoded sync body.

    Raises
    ------
    RelayValidationError
        Missing/empty ``merchantId`` or ``deviceId`` (checked first, so a body
        with both problems reports the identity error), a non-object body, or
        an ``orderJsonList`` that is not a list of objects.
    """
    if not isinstance(body, dict):
        raise RelayValidationError(INVALID_BODY_MESSAGE)

    try:
        return SyncOrdersRequest.model_validate(body)
    except ValidationError as exc:
        failed = {str(err["loc"][0]) for err in exc.errors() if err.get("loc")}
        if failed & _IDENTITY_FIELDS:
            raise RelayValidationError(MISSING_IDENTITY_MESSAGE) from exc
        _logger.debug("Rejected sync body with %d validation errors", exc.error_count())
        raise RelayValidationError(INVALID_ORDERS_MESSAGE) from exc


def build_sync_response(view: list[Order]) -> dict[str, Any]:
    return SyncOrdersResponse(orders=view).to_wire()
