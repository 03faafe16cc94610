"""Idempotent provisioning of the DDS entity graph behind a query.

DDS-Web has no "create if missing" primitive and no multi-resource
transaction, so each entity is created with its own POST and a 409 Conflict is
read as "already there". Steps run strictly in order: each one names entities
created by the steps before it.

A data reader that already exists is always re-PUT with the requested history
and time-based filter, so QoS changes made by the host reach the gateway.
Existing topics are only re-PUT when the gateway enables
``reconcile_existing``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol, Tuple

from ..errors import DDSWebError, ProvisionError
from ..utils.correlation import log_context
from . import entities
from .models import EntityIdentity, QueryDescriptor

logger = logging.getLogger(__name__)


class ProvisionStep(str, Enum):
    """Provisioning steps in execution order."""

    APPLICATION = "create_application"
    TYPE = "register_type"
    PARTICIPANT = "create_participant"
    TOPIC = "create_topic"
    SUBSCRIBER = "create_subscriber"
    DATA_READER = "create_data_reader"


class CreateOutcome(str, Enum):
    """Result of a single create call."""

    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    FAILED = "failed"


@dataclass
class CreateResult:
    """Outcome of one create request, with the failure cause when FAILED."""

    outcome: CreateOutcome
    status: Optional[int] = None
    error: Optional[DDSWebError] = None
    reconciled: bool = False

    @property
    def ok(self) -> bool:
        return self.outcome is not CreateOutcome.FAILED


class EntityGateway(Protocol):
    """What the provisioner needs from a gateway adapter."""

    @property
    def identity(self) -> EntityIdentity: ...

    @property
    def reconcile_existing(self) -> bool: ...

    async def create(self, path: str, body: str) -> CreateResult: ...

    async def update(self, path: str, body: str) -> None: ...


@dataclass
class _Step:
    step: ProvisionStep
    path: str
    body: str
    resource_path: Optional[str] = None
    always_reconcile: bool = False


@dataclass
class ProvisionReport:
    """Per-step outcomes of a successful ``ensure`` call."""

    reader_name: str
    steps: List[Tuple[ProvisionStep, CreateOutcome]] = field(default_factory=list)

    def outcome(self, step: ProvisionStep) -> Optional[CreateOutcome]:
        for name, outcome in self.steps:
            if name is step:
                return outcome
        return None

    @property
    def created_any(self) -> bool:
        return any(o is CreateOutcome.CREATED for _, o in self.steps)


class Provisioner:
    """Bring the entity graph for a query into existence.

    Parameters
    ----------
    gateway: EntityGateway
        Adapter issuing the create calls; also provides the shared entity
        identity and whether existing resources are reconciled.
    """

    def __init__(self, gateway: EntityGateway) -> None:
        self._gateway = gateway

    def plan(self, query: QueryDescriptor) -> List[_Step]:
        """Ordered create calls for ``query``."""
        identity = self._gateway.identity
        steps = [
            _Step(
                ProvisionStep.APPLICATION,
                entities.applications_path(),
                entities.application_xml(identity),
            )
        ]
        if query.type_representation:
            steps.append(
                _Step(ProvisionStep.TYPE, entities.types_path(), query.type_representation)
            )
        steps.extend(
            [
                _Step(
                    ProvisionStep.PARTICIPANT,
                    entities.participants_path(identity),
                    entities.participant_xml(identity),
                ),
                _Step(
                    ProvisionStep.TOPIC,
                    entities.topics_path(identity),
                    entities.topic_xml(query),
                    entities.topic_path(identity, query.topic_name),
                ),
                _Step(
                    ProvisionStep.SUBSCRIBER,
                    entities.subscribers_path(identity),
                    entities.subscriber_xml(identity),
                ),
                _Step(
                    ProvisionStep.DATA_READER,
                    entities.data_readers_path(identity),
                    entities.data_reader_xml(query),
                    entities.data_reader_path(identity, query.reader_name),
                    always_reconcile=True,
                ),
            ]
        )
        return steps

    async def ensure(self, query: QueryDescriptor) -> ProvisionReport:
        """Run every step in order, tolerating conflicts.

        Returns
        -------
        ProvisionReport
            Outcome of each executed step.

        Raises
        ------
        ProvisionError
            On the first step that fails; later steps are not attempted.
        """
        report = ProvisionReport(reader_name=query.reader_name)
        for step in self.plan(query):
            result = await self._gateway.create(step.path, step.body)
            if result.outcome is CreateOutcome.ALREADY_EXISTS and step.resource_path:
                result = await self._reconcile(step, result)
            if not result.ok:
                logger.warning(
                    "provision.step.failed",
                    extra={
                        **log_context(),
                        "step": step.step.value,
                        "status": result.status,
                        "error": str(result.error),
                    },
                )
                raise ProvisionError(step.step, result.error or DDSWebError("unknown failure"))
            if result.outcome is CreateOutcome.ALREADY_EXISTS:
                logger.debug(
                    "provision.step.conflict",
                    extra={**log_context(), "step": step.step.value},
                )
            report.steps.append((step.step, result.outcome))
        logger.debug(
            "provision.ensure.done",
            extra={
                **log_context(),
                "reader": query.reader_name,
                "created_any": report.created_any,
            },
        )
        return report

    async def _reconcile(self, step: _Step, result: CreateResult) -> CreateResult:
        if step.resource_path is None:
            return result
        if not (step.always_reconcile or self._gateway.reconcile_existing):
            return result
        try:
            await self._gateway.update(step.resource_path, step.body)
        except DDSWebError as exc:
            return CreateResult(CreateOutcome.FAILED, status=getattr(exc, "status", None), error=exc)
        logger.debug(
            "provision.step.reconciled",
            extra={**log_context(), "step": step.step.value},
        )
        return CreateResult(CreateOutcome.ALREADY_EXISTS, status=result.status, reconciled=True)
