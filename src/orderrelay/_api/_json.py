"""JSON encoding shared by HTTP responses and push frames."""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from typing import Any


def to_json_compatible(value: Any) -> Any:
    """Replace non-finite floats with ``None``.

    Sync bodies may carry ``NaN``/``Infinity`` literals; outgoing JSON
    carries ``null`` in their place.
    """
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Mapping):
        return {key: to_json_compatible(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_compatible(item) for item in value]
    return value


def dumps(value: Any) -> str:
    return json.dumps(to_json_compatible(value), separators=(",", ":"), allow_nan=False)
