"""Gateway adapter interface and registry."""

from __future__ import annotations

import logging
from typing import Dict, Protocol

from ..config.models import AppConfig
from ..domain.models import EntityIdentity
from ..domain.provisioner import CreateResult


class GatewayAdapter(Protocol):
    """Protocol for DDS-Web gateway adapters.

    Implementations issue the REST calls needed to provision entities, read
    reader samples and probe connectivity for one gateway.
    """

    @property
    def url(self) -> str:
        """Base URL of the gateway."""
        raise NotImplementedError

    @property
    def identity(self) -> EntityIdentity:
        """Shared entity names and domain id owned by this adapter."""
        raise NotImplementedError

    @property
    def history_depth(self) -> int:
        """Default reader history depth (KeepLast)."""
        raise NotImplementedError

    @property
    def reconcile_existing(self) -> bool:
        """Whether existing topics/readers are re-PUT on conflict."""
        raise NotImplementedError

    async def create(self, path: str, body: str) -> CreateResult:
        """POST an entity definition; 409 is reported as already existing."""
        raise NotImplementedError

    async def update(self, path: str, body: str) -> None:
        """PUT a definition onto an existing entity."""
        raise NotImplementedError

    async def read_samples(self, reader_name: str) -> bytes:
        """Return the raw sample-sequence XML for a reader."""
        raise NotImplementedError

    async def check_health(self) -> None:
        """Raise ``ConnectivityError`` if the gateway is unreachable."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release the underlying HTTP client."""
        raise NotImplementedError


_adapters: Dict[str, GatewayAdapter] = {}


def register_adapter(gateway_id: str, adapter: GatewayAdapter) -> None:
    """Register an adapter instance under a logical ``gateway_id``."""
    _adapters[gateway_id] = adapter


def get_adapter(gateway_id: str) -> GatewayAdapter:
    """Retrieve a registered adapter by ``gateway_id``."""
    return _adapters[gateway_id]


def get_available_gateway_ids() -> list[str]:
    """Get list of registered gateway ids."""
    return list(_adapters.keys())


def register_gateways(cfg: AppConfig) -> list[str]:
    """Create and register one ``DDSWebAdapter`` per configured gateway."""
    from .dds_web import DDSWebAdapter

    for gateway_id, gateway_cfg in cfg.gateways.items():
        register_adapter(gateway_id, DDSWebAdapter.from_config(gateway_cfg))
    return list(cfg.gateways.keys())


def log_adapter_status() -> None:
    """Log which gateways are configured."""
    logger = logging.getLogger(__name__)

    if not _adapters:
        logger.warning(
            "No DDS-Web gateways configured. Queries will be rejected.\n"
            "  - Set DDSWEB_CONFIG to a JSON file with a 'gateways' block"
        )
        return
    logger.info(
        "DDS-Web gateways configured: %s",
        ", ".join(
            f"'{gid}' ({a.url}, domain {a.identity.domain_id})"
            for gid, a in _adapters.items()
        ),
    )


async def close_adapters() -> None:
    """Close every registered adapter's HTTP client."""
    for adapter in _adapters.values():
        await adapter.aclose()


def reset_adapters() -> None:
    """Test-only helper to clear registered adapters."""
    _adapters.clear()
