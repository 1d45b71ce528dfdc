"""Base model for orderrelay wire payloads.

Every request/response model inherits from :class:`RelayBaseModel` which
provides ``alias_generator=to_camel`` so the camelCase keys used by the
point-of-sale apps and the merchant dashboard map onto snake_case fields.
Serialize with ``model_dump(by_alias=True)`` to get the wire shape back.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

#: An order is passed through untouched; only ``createdTime`` is interpreted.
Order = dict[str, Any]


def normalize_identity(value: Any) -> Any:
    """Strip surrounding whitespace from merchant/device identities.

    Returns the value unchanged when it is not a string so pydantic reports
    the type error itself.
    """
    if isinstance(value, str):
        return value.strip()
    return value


class RelayBaseModel(BaseModel):
    """Base for relay wire models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_wire(self) -> dict[str, Any]:
        """Return the camelCase dict sent over HTTP or the push channel."""
        return self.model_dump(by_alias=True)
