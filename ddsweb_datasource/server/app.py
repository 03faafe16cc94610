"""Query orchestration for one DDS-Web gateway.

``DataSourceService`` composes the provisioner and the sample decoder: for
every target of a batch it makes sure the reader exists, reads the reader's
samples and turns them into a frame. Targets run concurrently; the steps of
one target never do.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from pydantic import BaseModel

from ..adapters import GatewayAdapter
from ..domain import decoder
from ..domain.models import OutputFrame, QueryTarget
from ..domain.provisioner import Provisioner
from ..errors import ConnectivityError
from ..utils.correlation import log_context, set_ref_id
from ..utils.partial_results import FailureInfo, format_failure_summary, gather_partial

logger = logging.getLogger(__name__)

HEALTH_OK_MESSAGE = "Data source is working"


class QueryResult(BaseModel):
    """Frame for one target; ``error`` is set when the target failed."""

    ref_id: str
    frame: OutputFrame
    error: Optional[str] = None
    error_type: Optional[str] = None


class HealthCheckResult(BaseModel):
    """Connectivity status suitable for display by the host."""

    status: str
    message: str


class DataSourceService:
    """Run query batches and health checks against one gateway.

    Parameters
    ----------
    adapter: GatewayAdapter
        Gateway adapter; its entity identity and default history depth are
        read-only for the lifetime of the service.
    """

    def __init__(self, adapter: GatewayAdapter) -> None:
        self._adapter = adapter
        self._provisioner = Provisioner(adapter)

    async def query_target(self, target: QueryTarget) -> OutputFrame:
        """Provision, read and decode a single target.

        Raises
        ------
        pydantic.ValidationError
            If the target lacks a topic or type name.
        ProvisionError, TransportError, GatewayError
            If provisioning or the sample read fails.
        """
        set_ref_id(target.ref_id)
        descriptor = target.to_descriptor(self._adapter.history_depth)
        await self._provisioner.ensure(descriptor)
        payload = await self._adapter.read_samples(descriptor.reader_name)
        frame = decoder.decode(payload, descriptor.type_name, ref_id=target.ref_id)
        logger.debug(
            "query.target.done",
            extra={**log_context(), "rows": frame.row_count, "columns": len(frame.fields)},
        )
        return frame

    async def _skip(self, target: QueryTarget) -> OutputFrame:
        return OutputFrame(ref_id=target.ref_id)

    async def query(self, targets: Sequence[QueryTarget]) -> List[QueryResult]:
        """Run every target; one result per target, in the same order.

        A failing target yields an empty frame with ``error`` set and never
        prevents the other targets' frames from being returned. Hidden
        targets are not executed.
        """
        operations = [
            (t.ref_id, self._skip(t) if t.hide else self.query_target(t))
            for t in targets
        ]
        outcome = await gather_partial(operations, operation_type="query")
        if outcome.has_failures:
            logger.warning(
                "query.batch.partial",
                extra={"summary": format_failure_summary(outcome)},
            )

        results: List[QueryResult] = []
        for ref_id, value in outcome.outcomes:
            if isinstance(value, FailureInfo):
                results.append(
                    QueryResult(
                        ref_id=ref_id,
                        frame=OutputFrame(ref_id=ref_id),
                        error=value.error,
                        error_type=value.error_type,
                    )
                )
            else:
                results.append(QueryResult(ref_id=ref_id, frame=value))
        return results

    async def check_health(self) -> HealthCheckResult:
        """Probe the gateway; failures become a status message, not an error."""
        try:
            await self._adapter.check_health()
        except ConnectivityError as exc:
            logger.info("health.check.failed", extra={"error": exc.message})
            return HealthCheckResult(status="error", message=exc.message)
        return HealthCheckResult(status="ok", message=HEALTH_OK_MESSAGE)
