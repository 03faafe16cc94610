"""Test HTTP endpoint functionality."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from ddsweb_datasource.adapters import register_adapter
from ddsweb_datasource.domain import entities
from ddsweb_datasource.server.http import create_app

from conftest import FakeResponse


@pytest.fixture
def client(monkeypatch, adapter):
    """Create a test client with one gateway backed by the fake gateway."""
    monkeypatch.delenv("DDSWEB_CONFIG", raising=False)
    monkeypatch.delenv("DDSWEB_HTTP_TOKEN", raising=False)
    register_adapter("local", adapter)
    return TestClient(create_app())


def test_health_endpoint_no_auth(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_ready_reflects_registered_gateways(client):
    assert client.get("/ready").json() == {"status": "ready"}


def test_ready_without_gateways(monkeypatch):
    monkeypatch.delenv("DDSWEB_CONFIG", raising=False)
    response = TestClient(create_app()).get("/ready")
    assert response.json() == {"status": "no_gateways"}


def test_list_gateways(client):
    assert client.get("/gateways").json() == {"gateways": ["local"]}


def test_correlation_id_is_echoed(client):
    response = client.get("/health", headers={"X-Correlation-Id": "abc-123"})
    assert response.headers["x-correlation-id"] == "abc-123"

    generated = client.get("/health").headers["x-correlation-id"]
    assert generated


def test_query_returns_frames_in_order(client, fake_gateway, sample_seq):
    fake_gateway.samples_xml = sample_seq([(2, 250_000_000, "<x>7</x><color>BLUE</color>")])

    response = client.post(
        "/gateways/local/query",
        json={
            "queries": [
                {"refId": "A", "topic_name": "Square", "type_name": "ShapeType"},
                {"refId": "B", "topic_name": "", "type_name": "ShapeType"},
            ]
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["frame_model_version"] == "1.0.0"
    first, second = body["results"]
    assert first["ref_id"] == "A"
    assert first["error"] is None
    assert first["frame"]["fields"] == [
        {"name": "Time", "type": "time", "values": [2250]},
        {"name": "x", "type": "number", "values": [7.0]},
        {"name": "color", "type": "string", "values": ["BLUE"]},
    ]
    assert second["ref_id"] == "B"
    assert second["error_type"] == "invalid_query"
    assert second["frame"]["fields"] == []


def test_gateway_health_endpoint(client, fake_gateway):
    response = client.get("/gateways/local/health")
    assert response.json() == {"status": "ok", "message": "Data source is working"}

    fake_gateway.fail(
        "GET", entities.applications_path(), FakeResponse(503, "", "Service Unavailable")
    )
    response = client.get("/gateways/local/health")
    assert response.status_code == 200
    assert response.json() == {"status": "error", "message": "Service Unavailable"}


def test_unknown_gateway_returns_404_with_options(client):
    response = client.post("/gateways/nope/query", json={"queries": []})
    assert response.status_code == 404
    detail = response.json()["detail"]
    assert detail["error_type"] == "unknown_gateway"
    assert detail["available_options"] == ["local"]


def test_invalid_request_body_returns_400(client):
    response = client.post("/gateways/local/query", json={"queries": [{"topic_name": "x"}]})
    assert response.status_code == 400
    assert response.json()["detail"]["error_type"] == "validation_error"


def test_gateway_endpoints_require_token_when_configured(monkeypatch, adapter):
    monkeypatch.delenv("DDSWEB_CONFIG", raising=False)
    monkeypatch.setenv("DDSWEB_HTTP_TOKEN", "test-token")
    register_adapter("local", adapter)
    client = TestClient(create_app())

    assert client.get("/health").status_code == 200
    assert client.get("/gateways").status_code == 401
    assert (
        client.get("/gateways", headers={"Authorization": "Bearer wrong"}).status_code
        == 403
    )
    response = client.get("/gateways", headers={"Authorization": "Bearer test-token"})
    assert response.status_code == 200
    assert response.json() == {"gateways": ["local"]}


def test_gateways_loaded_from_config_file(monkeypatch, tmp_path):
    cfg = tmp_path / "config.json"
    cfg.write_text('{"gateways": {"lab": {"url": "http://lab:8080", "domain_id": 2}}}')
    monkeypatch.setenv("DDSWEB_CONFIG", str(cfg))
    monkeypatch.delenv("DDSWEB_HTTP_TOKEN", raising=False)

    client = TestClient(create_app())

    assert client.get("/gateways").json() == {"gateways": ["lab"]}
