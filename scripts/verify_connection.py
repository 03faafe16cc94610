#!/usr/bin/env python3
"""
Connection Verification Script

Verifies that every gateway in config.json answers the DDS-Web application
listing, and optionally provisions and reads one topic end to end.

Usage:
    python scripts/verify_connection.py [config.json] [--topic Square --type ShapeType]

Expected output:
    - Connection successful: the gateway status message, plus the decoded
      frame shape when a topic was given
    - Connection failed: error details for troubleshooting
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

try:
    from ddsweb_datasource.adapters.dds_web import DDSWebAdapter
    from ddsweb_datasource.config.models import AppConfig, GatewayConfig
    from ddsweb_datasource.domain.models import QueryTarget
    from ddsweb_datasource.server.app import DataSourceService
except ImportError as e:
    print(f"❌ Critical Import Error: {e}")
    print("   Ensure you are running from project root; dependencies installed.")
    sys.exit(1)

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def verify_gateway(
    gateway_id: str, gateway_config: GatewayConfig, topic: str | None, type_name: str | None
) -> bool:
    """Verify a single gateway."""
    logger.info("-" * 50)
    logger.info(f"🔌 Verifying gateway: {gateway_id}")
    logger.info(f"   Target: {gateway_config.url} (domain {gateway_config.domain_id})")

    adapter = DDSWebAdapter.from_config(gateway_config)
    service = DataSourceService(adapter)
    try:
        health = await service.check_health()
        if health.status != "ok":
            logger.error(f"❌ {health.message}")
            logger.info("💡 Troubleshooting:")
            logger.info("   1. Verify the DDS-Web gateway is running/accessible")
            logger.info("   2. Check the gateway url in config.json")
            return False
        logger.info(f"✅ {health.message}")

        if topic and type_name:
            logger.info(f"📡 Reading topic '{topic}' ({type_name})...")
            target = QueryTarget(ref_id="verify", topic_name=topic, type_name=type_name)
            [result] = await service.query([target])
            if result.error:
                logger.error(f"❌ Query failed: {result.error}")
                return False
            frame = result.frame
            logger.info(
                f"   {frame.row_count} sample(s); columns: "
                + ", ".join(f"{c.name}:{c.type.value}" for c in frame.fields)
            )
        return True
    finally:
        await adapter.aclose()


async def verify_connection(config_path: Path, topic: str | None, type_name: str | None) -> bool:
    """Verify every configured gateway."""
    logger.info(f"🔍 Loading configuration from {config_path}...")
    if not config_path.exists():
        logger.error(f"❌ {config_path} does not exist")
        logger.info("   Copy config.example.json to config.json")
        return False
    try:
        config = AppConfig.load(config_path)
    except ValueError as e:
        logger.error(f"❌ Invalid configuration: {e}")
        return False

    if not config.gateways:
        logger.warning("⚠️ No gateways configured in config.json.")
        return True

    results = []
    for gateway_id, gateway_config in config.gateways.items():
        results.append(await verify_gateway(gateway_id, gateway_config, topic, type_name))

    logger.info("-" * 50)
    if all(results):
        logger.info("🎉 All gateways reachable.")
    else:
        logger.error("❌ Some gateways failed verification. See logs above.")
    return all(results)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Verify DDS-Web gateway connectivity")
    parser.add_argument("config", nargs="?", default="config.json")
    parser.add_argument("--topic", help="Topic to provision and read")
    parser.add_argument("--type", dest="type_name", help="Registered type of the topic")
    args = parser.parse_args()

    success = asyncio.run(verify_connection(Path(args.config), args.topic, args.type_name))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
