"""DDS-Web gateway adapter.

This adapter wraps the DDS-Web REST API: entity creation, reader sample
retrieval and the connectivity check. It encapsulates transport concerns
(base URL, content type, timeouts) and maps HTTP outcomes onto the
datasource error taxonomy.

Notes
-----
- No retries are performed here. A 409 on a create call is reported as
  ``CreateOutcome.ALREADY_EXISTS``; everything else that is not 2xx fails.
- One adapter instance owns one entity identity (application, participant,
  subscriber names and domain id) shared by every query it serves.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..config.models import GatewayConfig
from ..domain import entities
from ..domain.models import EntityIdentity
from ..domain.provisioner import CreateOutcome, CreateResult
from ..errors import ConnectivityError, DDSWebError, GatewayError, TransportError
from ..utils.correlation import log_context

logger = logging.getLogger(__name__)

DDS_WEB_CONTENT_TYPE = "application/dds-web+xml"
STATUS_CONFLICT = 409
DEFAULT_HEALTH_MESSAGE = "Cannot connect to DDS-Web server"


def _is_success(status: int) -> bool:
    return 200 <= status < 300


class DDSWebAdapter:
    """Adapter for one DDS-Web gateway.

    Parameters
    ----------
    url: str
        Base URL of the gateway (e.g., "http://localhost:8080").
    timeout: int
        Request timeout in seconds for all HTTP operations.
    identity: Optional[EntityIdentity]
        Shared application/participant/subscriber names and domain id.
    history_depth: int
        Default KeepLast depth for readers whose query does not set one.
    reconcile_existing: bool
        Whether the provisioner re-PUTs topics and readers that already exist.

    Attributes
    ----------
    _client: httpx.AsyncClient
        Shared async client configured with base URL and timeout. It keeps a
        cookie jar so gateway sessions survive across requests.
    """

    def __init__(
        self,
        url: str,
        timeout: int = 30,
        *,
        identity: Optional[EntityIdentity] = None,
        history_depth: int = 1000,
        reconcile_existing: bool = False,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=url, timeout=timeout)
        self._history_depth = max(1, int(history_depth))
        self._url = url
        self._identity = identity or EntityIdentity()
        self._reconcile_existing = reconcile_existing
        logger.info(
            "ddsweb.adapter.init",
            extra={
                "url": url,
                "timeout_seconds": timeout,
                "domain_id": self._identity.domain_id,
            },
        )

    @classmethod
    def from_config(cls, cfg: GatewayConfig) -> "DDSWebAdapter":
        """Build an adapter from a gateway config entry."""
        return cls(
            cfg.url,
            cfg.timeout_seconds,
            identity=EntityIdentity(
                application_name=cfg.application_name,
                participant_name=cfg.participant_name,
                subscriber_name=cfg.subscriber_name,
                domain_id=cfg.domain_id,
            ),
            history_depth=cfg.keep_last_samples,
            reconcile_existing=cfg.reconcile_existing,
        )

    @property
    def url(self) -> str:
        return self._url

    @property
    def identity(self) -> EntityIdentity:
        return self._identity

    @property
    def history_depth(self) -> int:
        return self._history_depth

    @property
    def reconcile_existing(self) -> bool:
        return self._reconcile_existing

    def inject_http_client_for_testing(self, client: Any) -> None:
        """Replace underlying HTTP client (testing only).

        The replacement must provide an async ``request(method, url, ...)``
        compatible with ``httpx.AsyncClient.request``.
        """
        self._client = client

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        body: Optional[str] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Send one request; transport failures become ``TransportError``."""
        logger.debug(
            "ddsweb.http.request",
            extra={**log_context(), "method": method, "path": path},
        )
        kwargs: Dict[str, Any] = {}
        if body is not None:
            kwargs["content"] = body.encode("utf-8")
            kwargs["headers"] = {"Content-Type": DDS_WEB_CONTENT_TYPE}
        if params:
            kwargs["params"] = params
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning(
                "ddsweb.http.transport_error",
                extra={**log_context(), "method": method, "path": path, "error": str(exc)},
            )
            raise TransportError(path, exc) from exc
        logger.debug(
            "ddsweb.http.response",
            extra={**log_context(), "path": path, "status_code": resp.status_code},
        )
        return resp

    async def create(self, path: str, body: str) -> CreateResult:
        """POST an entity definition and classify the outcome.

        Returns
        -------
        CreateResult
            ``CREATED`` on 2xx, ``ALREADY_EXISTS`` on 409, otherwise
            ``FAILED`` carrying a ``TransportError`` or ``GatewayError``.
        """
        try:
            resp = await self._request("POST", path, body=body)
        except TransportError as exc:
            return CreateResult(CreateOutcome.FAILED, error=exc)
        if _is_success(resp.status_code):
            return CreateResult(CreateOutcome.CREATED, status=resp.status_code)
        if resp.status_code == STATUS_CONFLICT:
            return CreateResult(CreateOutcome.ALREADY_EXISTS, status=resp.status_code)
        logger.error(
            "ddsweb.http.status_error",
            extra={**log_context(), "path": path, "status": resp.status_code},
        )
        return CreateResult(
            CreateOutcome.FAILED,
            status=resp.status_code,
            error=GatewayError(resp.status_code, resp.text, path),
        )

    async def update(self, path: str, body: str) -> None:
        """PUT a new definition for an existing entity.

        Raises
        ------
        TransportError, GatewayError
        """
        resp = await self._request("PUT", path, body=body)
        if not _is_success(resp.status_code):
            raise GatewayError(resp.status_code, resp.text, path)

    async def read_samples(self, reader_name: str) -> bytes:
        """Fetch the reader's current samples without purging its cache.

        Raises
        ------
        TransportError, GatewayError
        """
        path = entities.data_reader_path(self._identity, reader_name)
        resp = await self._request(
            "GET", path, params={"removeFromReaderCache": "FALSE"}
        )
        if not _is_success(resp.status_code):
            raise GatewayError(resp.status_code, resp.text, path)
        return resp.content

    async def check_health(self) -> None:
        """Verify the gateway answers the application listing.

        Raises
        ------
        ConnectivityError
            With a display message built from the structured error body when
            the gateway provides one, else the HTTP reason phrase.
        """
        try:
            resp = await self._request(
                "GET",
                entities.applications_path(),
                params={"applicationNameExpression": "''"},
            )
        except DDSWebError as exc:
            raise ConnectivityError(f"{DEFAULT_HEALTH_MESSAGE}: {exc}") from exc
        if resp.status_code == 200:
            return
        raise ConnectivityError(_health_message(resp), status=resp.status_code)


def _health_message(resp: httpx.Response) -> str:
    """Best-effort diagnostic from a failed health-check response."""
    message = resp.reason_phrase or DEFAULT_HEALTH_MESSAGE
    try:
        payload = resp.json()
    except ValueError:
        return message
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("code"):
        message += f": {error['code']}. {error.get('message', '')}".rstrip()
    return message
