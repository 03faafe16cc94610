"""HTTP host surface exposing the datasource via FastAPI.

The endpoints are a thin transport over ``DataSourceService``: the host posts
a batch of query targets for a gateway and receives one frame per target, or
asks for the gateway's connectivity status. Authentication and CORS are
configurable via environment variables (see ``EnvSettings``).
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, List

from fastapi import Depends, FastAPI, Header, HTTPException, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from .. import __frame_model_version__, __version__
from ..adapters import (
    close_adapters,
    get_adapter,
    get_available_gateway_ids,
    log_adapter_status,
    register_gateways,
)
from ..config.models import AppConfig, EnvSettings
from ..observability import setup_logging
from ..utils.correlation import set_request_id
from .app import DataSourceService, HealthCheckResult
from .models import (
    ErrorResponse,
    GatewaysResponse,
    HealthResponse,
    QueryRequest,
    QueryResponse,
)

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):  # pylint: disable=too-few-public-methods
    """Assign a correlation id to each request and log its timing."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        req_id = set_request_id(request.headers.get("x-correlation-id"))
        response = await call_next(request)
        logger.info(
            "http.request",
            extra={
                "req_id": req_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round((time.time() - start_time) * 1000, 1),
            },
        )
        response.headers["x-correlation-id"] = req_id
        return response


def _load_gateways(settings: EnvSettings) -> None:
    """Register gateways from ``DDSWEB_CONFIG`` unless already registered."""
    if get_available_gateway_ids():
        return
    if not settings.config:
        log_adapter_status()
        return
    cfg_path = Path(settings.config)
    try:
        registered = register_gateways(AppConfig.load(cfg_path))
    except (OSError, ValueError, ValidationError) as exc:
        logger.error(
            "http.config.error",
            extra={"config": str(cfg_path), "error": str(exc)},
        )
        return
    logger.info("http.config.loaded", extra={"gateways": registered})
    log_adapter_status()


def _apply_cors(app: FastAPI, settings: EnvSettings) -> None:
    """Enable CORS if DDSWEB_CORS_ORIGINS is set."""
    allow_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    if allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allow_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )


def _make_auth_dependency(settings: EnvSettings):
    """Return a dependency function that enforces the optional bearer token."""

    def _auth_dependency(authorization: str | None = Header(default=None)) -> None:
        expected = settings.http_token or None
        if expected is None:
            return
        if not authorization or not authorization.startswith("Bearer "):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
        if authorization.split(" ", 1)[1] != expected:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)

    return _auth_dependency


def _service_for(gateway_id: str) -> DataSourceService:
    try:
        adapter = get_adapter(gateway_id)
    except KeyError as exc:
        available = get_available_gateway_ids()
        err = ErrorResponse(
            detail=(
                f"Gateway '{gateway_id}' not found. Check your DDSWEB_CONFIG."
                if available
                else "No DDS-Web gateway configured. Set DDSWEB_CONFIG."
            ),
            error_type="unknown_gateway",
            available_options=available or None,
        )
        raise HTTPException(status_code=404, detail=err.model_dump()) from exc
    return DataSourceService(adapter)


def _register_probes(app: FastAPI) -> None:
    """Register liveness and readiness endpoints."""

    @app.get("/health", response_model=HealthResponse, summary="Liveness probe")
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/ready", response_model=HealthResponse, summary="Readiness probe")
    async def ready() -> HealthResponse:
        return HealthResponse(status="ready" if get_available_gateway_ids() else "no_gateways")


def _register_gateway_routes(app: FastAPI, auth_dep: Any) -> None:
    """Register gateway listing, connectivity check and query endpoints."""

    @app.get(
        "/gateways",
        response_model=GatewaysResponse,
        dependencies=[Depends(auth_dep)],
        summary="Configured gateways",
    )
    async def list_gateways() -> GatewaysResponse:
        return GatewaysResponse(gateways=get_available_gateway_ids())

    @app.get(
        "/gateways/{gateway_id}/health",
        response_model=HealthCheckResult,
        dependencies=[Depends(auth_dep)],
        summary="Check that the gateway is reachable",
    )
    async def gateway_health(gateway_id: str) -> HealthCheckResult:
        return await _service_for(gateway_id).check_health()

    @app.post(
        "/gateways/{gateway_id}/query",
        response_model=QueryResponse,
        dependencies=[Depends(auth_dep)],
        summary="Provision readers and return one frame per query target",
    )
    async def query(gateway_id: str, req: QueryRequest) -> QueryResponse:
        service = _service_for(gateway_id)
        results = await service.query(req.queries)
        return QueryResponse(results=results, frame_model_version=__frame_model_version__)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Gateways come from ``DDSWEB_CONFIG`` unless adapters were registered
    beforehand (CLI, tests).
    """
    settings = EnvSettings()
    # Respect prior logging configuration from CLI; otherwise use env setting
    if not logging.getLogger().hasHandlers():
        setup_logging(settings.log_level)
    _load_gateways(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        logger.info("http.startup", extra={"gateways": get_available_gateway_ids()})
        connections: List[dict] = []
        for gid in get_available_gateway_ids():
            result = await DataSourceService(get_adapter(gid)).check_health()
            connections.append({"gateway_id": gid, **result.model_dump()})
        if connections:
            logger.info("http.startup.connections", extra={"connections": connections})
        try:
            yield
        finally:
            logger.info("http.shutdown")
            await close_adapters()

    app = FastAPI(title="DDS-Web Datasource", version=__version__, lifespan=lifespan)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Any, exc: Exception):  # noqa: D401
        err = ErrorResponse(detail=str(exc), error_type="validation_error")
        return JSONResponse(status_code=400, content={"detail": err.model_dump()})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Any, exc: Any):  # noqa: D401
        detail = getattr(exc, "detail", "")
        if isinstance(detail, dict) and {"detail", "error_type"} <= detail.keys():
            payload = {"detail": detail}
        else:
            payload = {
                "detail": ErrorResponse(
                    detail=str(detail) or "HTTP error", error_type="http_error"
                ).model_dump()
            }
        return JSONResponse(status_code=exc.status_code, content=payload)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(_request: Any, exc: Exception):  # noqa: D401
        # Avoid leaking internals; log server-side, return generic error
        logger.error("http.unhandled_exception", exc_info=exc)
        err = ErrorResponse(
            detail="Internal error. See server logs for request id.",
            error_type="internal_server_error",
        )
        return JSONResponse(status_code=500, content={"detail": err.model_dump()})

    _ = (
        validation_exception_handler,
        http_exception_handler,
        unhandled_exception_handler,
    )

    app.add_middleware(RequestLoggingMiddleware)
    _apply_cors(app, settings)
    _register_probes(app)
    _register_gateway_routes(app, _make_auth_dependency(settings))
    return app
