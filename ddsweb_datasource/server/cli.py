"""Command-line interface for the DDS-Web datasource.

Loads the gateway configuration, then either serves the HTTP host surface or
runs a one-shot connectivity check against every configured gateway.

Usage
-----
    ddsweb-datasource --config config.json --http --port 8080
    ddsweb-datasource --config config.json --check-health
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import Dict

import uvicorn

from ..adapters import (
    close_adapters,
    get_adapter,
    get_available_gateway_ids,
    log_adapter_status,
    register_gateways,
)
from ..config.models import AppConfig
from ..observability import setup_logging
from .app import DataSourceService, HealthCheckResult
from .http import create_app


def _init_from_config(config_path: Path) -> list[str]:
    """Register one adapter per gateway found in a JSON config file.

    Returns
    -------
    list[str]
        The registered gateway ids.
    """
    registered = register_gateways(AppConfig.load(config_path))
    log_adapter_status()
    return registered


async def _check_health() -> Dict[str, HealthCheckResult]:
    """Run the connectivity check for each registered gateway."""
    results: Dict[str, HealthCheckResult] = {}
    try:
        for gid in get_available_gateway_ids():
            results[gid] = await DataSourceService(get_adapter(gid)).check_health()
    finally:
        await close_adapters()
    return results


def main() -> None:
    """CLI entrypoint."""
    parser = argparse.ArgumentParser(description="DDS-Web datasource CLI")
    parser.add_argument("--config", help="Path to JSON app config")
    parser.add_argument(
        "--log-level",
        dest="log_level",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Logging level (overrides environment)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (once sets DEBUG)",
    )
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--http", action="store_true", help="Run HTTP server")
    mode.add_argument(
        "--check-health",
        dest="check_health",
        action="store_true",
        help="Check connectivity of every configured gateway and exit",
    )
    parser.add_argument(
        "--host", default="127.0.0.1", help="HTTP bind host (default 127.0.0.1)"
    )
    parser.add_argument("--port", type=int, default=8080, help="HTTP port")
    args = parser.parse_args()

    env_level = os.environ.get("DDSWEB_LOG_LEVEL", "INFO").upper()
    effective_level = args.log_level or ("DEBUG" if args.verbose > 0 else env_level)
    # Apply early so subsequent imports use configured level
    setup_logging(effective_level)

    config = args.config or os.environ.get("DDSWEB_CONFIG")
    if config:
        _init_from_config(Path(config))

    if args.http:
        uvicorn.run(
            create_app(),
            host=args.host,
            port=args.port,
            log_level=effective_level.lower(),
        )
        return

    if not config:
        parser.error("--config (or DDSWEB_CONFIG) is required for --check-health")
    results = asyncio.run(_check_health())
    for gid, result in results.items():
        print(f"{gid}: {result.status} - {result.message}")
    sys.exit(0 if all(r.status == "ok" for r in results.values()) else 1)


if __name__ == "__main__":
    main()
