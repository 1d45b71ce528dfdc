"""Server configuration for orderrelay."""

from __future__ import annotations

import dataclasses
import logging
import os
from typing import Any

from orderrelay.exceptions import RelayConfigError

#: Merchants with no device sync for this many seconds are evicted.
DEFAULT_STALE_AFTER: float = 60.0

#: Period of the eviction sweep in seconds.
DEFAULT_REAP_INTERVAL: float = 3.0


def _env_float(env_key: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise RelayConfigError(f"{env_key} must be a number, got {value!r}") from exc


def _env_int(env_key: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise RelayConfigError(f"{env_key} must be an integer, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class RelayConfig:
    """Relay server configuration.

    Parameters
    ----------
    host : str
        Interface the HTTP/WebSocket server binds to.
    port : int
        TCP port the server listens on.
    stale_after : float
        Seconds without a device sync after which a merchant's orders and
        activity timestamp are evicted and its viewers receive an empty view.
    reap_interval : float
        Seconds between eviction sweeps.  Staleness is detected within one
        interval of crossing ``stale_after``.
    send_timeout : float
        Upper bound in seconds for a single push to one connection.  A slow
        viewer is dropped from that broadcast instead of delaying the others.
    ws_heartbeat : float
        WebSocket ping interval in seconds.  ``0`` disables pings.
    log_level : str
        Root log level used by the CLI.
    """

    host: str = "0.0.0.0"
    port: int = 8100
    stale_after: float = DEFAULT_STALE_AFTER
    reap_interval: float = DEFAULT_REAP_INTERVAL
    send_timeout: float = 5.0
    ws_heartbeat: float = 30.0
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.stale_after <= 0:
            raise RelayConfigError("stale_after must be positive")
        if self.reap_interval <= 0:
            raise RelayConfigError("reap_interval must be positive")
        if self.send_timeout <= 0:
            raise RelayConfigError("send_timeout must be positive")
        if self.ws_heartbeat < 0:
            raise RelayConfigError("ws_heartbeat must not be negative")
        if not 0 < self.port < 65536:
            raise RelayConfigError(f"port out of range: {self.port}")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise RelayConfigError(f"Unknown log level: {self.log_level!r}")

    @classmethod
    def from_env(cls, **overrides: Any) -> RelayConfig:
        """Create configuration from ``ORDER_RELAY_*`` environment variables.

        Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        RelayConfig
            Populated configuration.

        Raises
        ------
        RelayConfigError
            If a variable cannot be converted or a value is out of range.
        """
        env = os.environ
        # Unset CLI flags arrive as None and must not mask the environment.
        overrides = {key: value for key, value in overrides.items() if value is not None}
        config_kwargs: dict[str, Any] = {}

        host = env.get("ORDER_RELAY_HOST")
        if host is not None:
            config_kwargs["host"] = host

        port = env.get("ORDER_RELAY_PORT")
        if port is not None:
            config_kwargs["port"] = _env_int("ORDER_RELAY_PORT", port)

        _ENV_FLOAT_MAP = {
            "ORDER_RELAY_STALE_AFTER": "stale_after",
            "ORDER_RELAY_REAP_INTERVAL": "reap_interval",
            "ORDER_RELAY_SEND_TIMEOUT": "send_timeout",
            "ORDER_RELAY_WS_HEARTBEAT": "ws_heartbeat",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = _env_float(env_key, val)

        log_level = env.get("ORDER_RELAY_LOG_LEVEL")
        if log_level is not None:
            config_kwargs["log_level"] = log_level

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
