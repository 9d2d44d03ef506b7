"""
Application Factory Tests

Tests the assembled app: system endpoints, proxy mounts wired from
Settings, CORS and the shared HTTP client lifespan.
"""

from unittest.mock import AsyncMock

import httpx
from fastapi import status
from fastapi.testclient import TestClient

from gateway.app.config import Settings
from gateway.app.main import create_app
from gateway.app.proxy import get_http_client


def make_app(**overrides):
    return create_app(Settings(_env_file=None, **overrides))


def test_health_endpoints():
    client = TestClient(make_app())

    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok", "service": "gateway", "version": "1.0.0"}

    response = client.get("/_health")
    assert response.status_code == status.HTTP_200_OK
    assert response.text == "ok"


def test_root_lists_proxy_mounts():
    response = TestClient(make_app()).get("/")

    endpoints = response.json()["endpoints"]
    assert endpoints["openai"] == "/api/openai"
    assert endpoints["poe"] == "/api/poe"


def test_unconfigured_mount_fails_while_configured_mount_forwards():
    """Test that a missing credential only affects its own mount"""
    http_client = AsyncMock(spec=httpx.AsyncClient)
    http_client.request = AsyncMock(
        return_value=httpx.Response(200, content=b'{"object":"list"}')
    )
    app = make_app(OPENAI_API_KEY="sk-configured")
    app.dependency_overrides[get_http_client] = lambda: http_client
    client = TestClient(app)

    response = client.get("/api/poe/models")
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "POE_API_KEY not set on server"}
    assert http_client.request.await_count == 0

    response = client.get("/api/openai/models")
    assert response.status_code == status.HTTP_200_OK
    assert response.content == b'{"object":"list"}'
    assert http_client.request.call_args.args == ("GET", "https://api.openai.com/v1/models")


def test_lifespan_owns_http_client():
    app = make_app()

    with TestClient(app):
        http_client = app.state.app_state.http_client
        assert isinstance(http_client, httpx.AsyncClient)
        assert not http_client.is_closed

    assert http_client.is_closed
    assert app.state.app_state.http_client is None


def test_proxy_without_lifespan_reports_unavailable():
    client = TestClient(make_app(OPENAI_API_KEY="sk-configured"))

    response = client.get("/api/openai/models")

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


def test_cors_preflight_allowed_origin():
    client = TestClient(make_app(ALLOWED_ORIGINS="http://localhost:5500"))

    response = client.options(
        "/api/openai/threads",
        headers={
            "Origin": "http://localhost:5500",
            "Access-Control-Request-Method": "POST",
        }
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["access-control-allow-origin"] == "http://localhost:5500"
