"""Pytest configuration for test suite.

Ensures the project root is on ``sys.path`` so ``import ddsweb_datasource``
resolves regardless of the working directory, resets the gateway registry
between tests, and provides an in-memory stand-in for a DDS-Web gateway.
"""

from __future__ import annotations

import json
import sys
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import pytest


def _ensure_project_root_on_syspath() -> None:
    project_root = Path(__file__).resolve().parents[1]
    project_root_str = str(project_root)
    if project_root_str not in sys.path:
        # Prepend to prefer local sources over site-packages
        sys.path.insert(0, project_root_str)


_ensure_project_root_on_syspath()


@pytest.fixture(autouse=True)
def reset_gateway_registry():
    """Start every test with no registered gateways."""
    from ddsweb_datasource.adapters import reset_adapters

    reset_adapters()
    yield
    reset_adapters()


class FakeResponse:
    """Minimal response exposing the attributes the adapter reads."""

    def __init__(self, status_code: int, text: str = "", reason_phrase: str = "") -> None:
        self.status_code = status_code
        self.text = text
        self.reason_phrase = reason_phrase

    @property
    def content(self) -> bytes:
        return self.text.encode("utf-8")

    def json(self) -> Any:
        return json.loads(self.text)


Override = Union[FakeResponse, Exception]


class FakeGateway:
    """In-memory DDS-Web gateway implementing ``request`` like httpx.

    Created resources are remembered per collection path, so a second POST of
    the same entity answers 409 just like the real gateway. ``overrides``
    maps ``(method, path)`` to a fixed response or an exception to raise.
    """

    def __init__(self, samples_xml: str = "<read_sample_seq/>") -> None:
        self.samples_xml = samples_xml
        self.resources: Dict[str, set] = {}
        self.overrides: Dict[Tuple[str, str], Override] = {}
        self.calls: List[Tuple[str, str, Optional[str], Optional[Dict[str, str]]]] = []

    def fail(self, method: str, path: str, outcome: Override) -> None:
        self.overrides[(method, path)] = outcome

    def paths(self, method: Optional[str] = None) -> List[str]:
        return [p for m, p, _, _ in self.calls if method is None or m == method]

    async def request(
        self,
        method: str,
        url: str,
        *,
        content: Optional[bytes] = None,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> FakeResponse:
        body = content.decode("utf-8") if content is not None else None
        self.calls.append((method, url, body, params))
        override = self.overrides.get((method, url))
        if isinstance(override, Exception):
            raise override
        if override is not None:
            return override

        if method == "POST":
            key = ET.fromstring(body).get("name") or body
            created = self.resources.setdefault(url, set())
            if key in created:
                return FakeResponse(409, "<error>already exists</error>", "Conflict")
            created.add(key)
            return FakeResponse(201, "", "Created")
        if method == "PUT":
            return FakeResponse(200, "", "OK")
        if method == "GET" and url.endswith("/applications"):
            return FakeResponse(200, "<application_list/>", "OK")
        if method == "GET":
            collection, _, name = url.rpartition("/")
            if name in self.resources.get(collection, set()):
                return FakeResponse(200, self.samples_xml, "OK")
            return FakeResponse(404, "<error>unknown reader</error>", "Not Found")
        return FakeResponse(405, "", "Method Not Allowed")

    async def aclose(self) -> None:
        return None


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def adapter(fake_gateway: FakeGateway):
    """DDSWebAdapter wired to the in-memory gateway."""
    from ddsweb_datasource.adapters.dds_web import DDSWebAdapter

    instance = DDSWebAdapter("http://gateway.test", timeout=5)
    instance.inject_http_client_for_testing(fake_gateway)
    return instance


def _sample_seq_xml(samples: List[Tuple[int, int, str]], type_name: str = "ShapeType") -> str:
    """Build a read_sample_seq document from (sec, nanosec, members_xml)."""
    parts = ["<read_sample_seq>"]
    for sec, nanosec, members in samples:
        parts.append(
            "<sample><read_sample_info><source_timestamp>"
            f"<sec>{sec}</sec><nanosec>{nanosec}</nanosec>"
            "</source_timestamp></read_sample_info>"
            f"<data><{type_name}>{members}</{type_name}></data></sample>"
        )
    parts.append("</read_sample_seq>")
    return "".join(parts)


@pytest.fixture
def sample_seq():
    """Factory for read_sample_seq documents."""
    return _sample_seq_xml
