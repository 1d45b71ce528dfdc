"""orderrelay - Real-time relay of POS order batches to merchant dashboards."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("orderrelay")
except PackageNotFoundError:
    __version__ = "0+local"
from orderrelay.config import RelayConfig
from orderrelay.exceptions import (
    RelayConfigError,
    RelayDeliveryError,
    RelayError,
    RelayParseError,
    RelayValidationError,
)
from orderrelay.fanout import FanoutEngine
from orderrelay.models import Order, OrdersPush, RegisterMessage, SyncOrdersRequest
from orderrelay.reaper import ReaperLoop
from orderrelay.relay import OrderRelay
from orderrelay.server import create_app
from orderrelay.state.registry import MerchantRegistry

__all__ = [
    "__version__",
    "FanoutEngine",
    "MerchantRegistry",
    "Order",
    "OrderRelay",
    "OrdersPush",
    "ReaperLoop",
    "RegisterMessage",
    "RelayConfig",
    "RelayConfigError",
    "RelayDeliveryError",
    "RelayError",
    "RelayParseError",
    "RelayValidationError",
    "SyncOrdersRequest",
    "create_app",
]
