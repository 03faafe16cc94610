"""Request/response models for the HTTP host surface."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from ..domain.models import QueryTarget
from .app import QueryResult


class QueryRequest(BaseModel):
    """Batch of query targets for one gateway.

    Targets are validated individually at execution time so that one
    incomplete target (missing topic or type) only fails its own result.
    """

    queries: List[QueryTarget] = Field(
        default_factory=list,
        description="Query targets, executed concurrently.",
    )


class QueryResponse(BaseModel):
    """One result per submitted target, in submission order."""

    results: List[QueryResult] = Field(default_factory=list)
    frame_model_version: str = Field("1.0.0")


class HealthResponse(BaseModel):
    """Simple health/readiness response model."""

    status: str


class GatewaysResponse(BaseModel):
    """Configured gateway ids."""

    gateways: List[str]


class ErrorResponse(BaseModel):
    """Structured JSON error response for HTTP endpoints.

    Fields
    ------
    detail: str
        Human-readable explanation of the error.
    error_type: str
        Machine-readable error classification.
    available_options: list[str] | None
        Optional list of valid options when the error is about an invalid
        input value (e.g., an unknown ``gateway_id``).
    """

    detail: str
    error_type: str
    available_options: List[str] | None = None
