"""Error taxonomy for gateway interaction, provisioning and decoding.

Only ``ConnectivityError`` is ever turned into a user-facing message; the
other errors are isolated per query target by the orchestrator. A 409
response is not an error at all: it is reported as
``CreateOutcome.ALREADY_EXISTS`` by the adapter.
"""

from __future__ import annotations

from typing import Optional


class DDSWebError(Exception):
    """Base class for all datasource errors."""


class TransportError(DDSWebError):
    """The HTTP request could not complete (connect, timeout, protocol)."""

    def __init__(self, path: str, cause: Exception) -> None:
        super().__init__(f"request to {path} failed: {cause}")
        self.path = path
        self.cause = cause


class GatewayError(DDSWebError):
    """The gateway answered with a non-2xx, non-409 status."""

    def __init__(self, status: int, body: str, path: str = "") -> None:
        preview = body if len(body) <= 500 else body[:500] + "..."
        super().__init__(f"gateway returned {status} for {path}: {preview}")
        self.status = status
        self.body = body
        self.path = path


class ProvisionError(DDSWebError):
    """A provisioning step failed; later steps were not attempted.

    Attributes
    ----------
    step:
        The ``ProvisionStep`` that failed.
    cause:
        The underlying ``TransportError`` or ``GatewayError``.
    """

    def __init__(self, step: object, cause: Exception) -> None:
        step_name = getattr(step, "value", step)
        super().__init__(f"provisioning step '{step_name}' failed: {cause}")
        self.step = step
        self.cause = cause


class DecodeError(DDSWebError):
    """The sample payload could not be turned into a frame."""


class ConnectivityError(DDSWebError):
    """Health check failed; ``message`` is suitable for display."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
