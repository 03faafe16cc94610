"""
Failure-isolating execution of query batches.

A batch of query targets is run concurrently; a target that fails must not
take its siblings down. Outcomes are kept positionally so the caller can pair
each one with the target that produced it, even when ref ids repeat.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, List, Sequence, Tuple, Union

import httpx
from pydantic import ValidationError

from ..errors import DecodeError, GatewayError, ProvisionError, TransportError

logger = logging.getLogger(__name__)

RETRYABLE_ERROR_TYPES = frozenset({"timeout", "connection_error", "server_error"})


@dataclass
class FailureInfo:
    """
    A target that did not produce a frame.

    Attributes
    ----------
    identifier : str
        Ref id of the failed target
    error : str
        Message of the exception raised by the target pipeline
    error_type : str
        Classification such as "server_error", "timeout" or "invalid_query"
    retryable : bool
        True for transient gateway or network conditions
    """

    identifier: str
    error: str
    error_type: str
    retryable: bool = False


@dataclass
class PartialResult:
    """
    Outcomes of a batch, in submission order.

    Attributes
    ----------
    outcomes : List[Tuple[str, Any]]
        ``(identifier, value)`` pairs where ``value`` is either what the
        operation returned or a ``FailureInfo``.
    """

    outcomes: List[Tuple[str, Union[Any, FailureInfo]]] = field(default_factory=list)

    @property
    def successes(self) -> List[Any]:
        return [v for _, v in self.outcomes if not isinstance(v, FailureInfo)]

    @property
    def failures(self) -> List[FailureInfo]:
        return [v for _, v in self.outcomes if isinstance(v, FailureInfo)]

    @property
    def success_rate(self) -> float:
        if not self.outcomes:
            return 0.0
        return len(self.successes) / len(self.outcomes)

    @property
    def has_failures(self) -> bool:
        return any(isinstance(v, FailureInfo) for _, v in self.outcomes)

    @property
    def all_succeeded(self) -> bool:
        return bool(self.outcomes) and not self.has_failures

    @property
    def all_failed(self) -> bool:
        return bool(self.outcomes) and not self.successes


async def gather_partial(
    operations: Sequence[Tuple[str, Awaitable[Any]]],
    operation_type: str = "operation",
) -> PartialResult:
    """
    Run awaitables concurrently and record every outcome.

    Each awaitable is wrapped in its own task, so a slow or failing one only
    affects its own slot. ``Exception`` subclasses become ``FailureInfo``;
    cancellation and other ``BaseException`` are re-raised.

    Parameters
    ----------
    operations : Sequence[Tuple[str, Awaitable[Any]]]
        ``(identifier, awaitable)`` pairs
    operation_type : str
        Used in the log event names

    Returns
    -------
    PartialResult
    """
    results = PartialResult()
    if not operations:
        return results

    tasks = [asyncio.ensure_future(op) for _, op in operations]
    completed = await asyncio.gather(*tasks, return_exceptions=True)

    for (identifier, _), outcome in zip(operations, completed):
        if not isinstance(outcome, BaseException):
            results.outcomes.append((identifier, outcome))
            continue
        if not isinstance(outcome, Exception):
            raise outcome
        error_type = classify_error(outcome)
        failure = FailureInfo(
            identifier=identifier,
            error=str(outcome),
            error_type=error_type,
            retryable=error_type in RETRYABLE_ERROR_TYPES,
        )
        results.outcomes.append((identifier, failure))
        logger.warning(
            f"partial_results.{operation_type}.failed",
            extra={
                "identifier": identifier,
                "error_type": error_type,
                "retryable": failure.retryable,
                "error": failure.error,
            },
        )

    logger.info(
        f"partial_results.{operation_type}.complete",
        extra={
            "total": len(results.outcomes),
            "failures": len(results.failures),
            "success_rate": results.success_rate,
        },
    )
    return results


def _classify_status(status: int) -> str:
    if status >= 500:
        return "server_error"
    if status in (401, 403):
        return "auth_error"
    if status == 404:
        return "not_found"
    return "http_error"


def classify_error(exc: Exception) -> str:
    """Map a target pipeline exception to an error type."""
    if isinstance(exc, ProvisionError) and isinstance(exc.cause, Exception):
        return classify_error(exc.cause)
    if isinstance(exc, GatewayError):
        return _classify_status(exc.status)
    if isinstance(exc, TransportError):
        if isinstance(exc.cause, (httpx.TimeoutException, asyncio.TimeoutError)):
            return "timeout"
        return "connection_error"
    if isinstance(exc, ValidationError):
        return "invalid_query"
    if isinstance(exc, DecodeError):
        return "parse_error"
    return "unknown_error"


def format_failure_summary(result: PartialResult, operation_type: str = "query") -> str:
    """
    Describe the failures of a batch for a log line.

    Failures are grouped by error type; at most three identifiers are listed
    per group.
    """
    if not result.has_failures:
        return f"All {len(result.successes)} {operation_type}(s) succeeded."

    grouped: Dict[str, List[FailureInfo]] = {}
    for failure in result.failures:
        grouped.setdefault(failure.error_type, []).append(failure)

    lines = [
        f"Partial results: {len(result.successes)} succeeded, "
        f"{len(result.failures)} failed ({result.success_rate:.1%} success rate)"
    ]
    for error_type, failures in grouped.items():
        note = "retryable" if failures[0].retryable else "not retryable"
        lines.append(f"  - {len(failures)} {error_type} ({note})")
        shown = [f.identifier for f in failures[:3]]
        hidden = len(failures) - len(shown)
        if hidden:
            shown.append(f"... and {hidden} more")
        lines.append(f"    Affected: {', '.join(shown)}")
    return "\n".join(lines)
