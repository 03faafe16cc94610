"""Correlation identifiers for structured logging.

Two ContextVars are kept: the host request id set by the HTTP layer, and the
ref id of the query target currently being processed. Each target runs in its
own asyncio task, which copies the context on creation, so setting the ref id
inside a target pipeline never leaks into sibling targets.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import Dict, Optional

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")
_ref_id_var: ContextVar[str] = ContextVar("ref_id", default="")


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set (or generate) the request correlation id and return it."""

    value = request_id or str(uuid.uuid4())
    _request_id_var.set(value)
    return value


def set_ref_id(ref_id: str) -> None:
    """Mark the query target handled by the current task."""

    _ref_id_var.set(ref_id)


def log_context() -> Dict[str, str]:
    """Correlation fields to merge into a log record's ``extra``."""

    return {"req_id": _request_id_var.get(), "ref_id": _ref_id_var.get()}
