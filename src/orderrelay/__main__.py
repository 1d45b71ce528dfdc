"""Command-line entry point: ``python -m orderrelay``.

Environment variables (``ORDER_RELAY_*``) provide defaults; flags override
them::

    ORDER_RELAY_STALE_AFTER=120 python -m orderrelay --port 8100
"""

from __future__ import annotations

import argparse
import logging
import sys

from orderrelay.config import RelayConfig
from orderrelay.exceptions import RelayConfigError
from orderrelay.server import run_server


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Relay POS order batches to merchant dashboards")
    parser.add_argument("--host", help="Bind address (env: ORDER_RELAY_HOST)")
    parser.add_argument("--port", type=int, help="Listen port (env: ORDER_RELAY_PORT)")
    parser.add_argument(
        "--stale-after",
        type=float,
        help="Seconds without a sync before a merchant is evicted (env: ORDER_RELAY_STALE_AFTER)",
    )
    parser.add_argument(
        "--reap-interval",
        type=float,
        help="Seconds between eviction sweeps (env: ORDER_RELAY_REAP_INTERVAL)",
    )
    parser.add_argument("--log-level", help="Logging level (env: ORDER_RELAY_LOG_LEVEL)")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        config = RelayConfig.from_env(
            host=args.host,
            port=args.port,
            stale_after=args.stale_after,
            reap_interval=args.reap_interval,
            log_level=args.log_level,
        )
    except RelayConfigError as exc:
        print(f"orderrelay: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run_server(config)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
