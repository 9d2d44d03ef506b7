"""
Shared fixtures for the gateway test suite.
"""

from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from gateway.app.proxy import ProxyConfig, create_proxy_router, get_http_client


TEST_SECRET = "sk-test-0123456789abcdefSECRET"
UPSTREAM_BASE = "https://upstream.example.com/v1"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep credentials from the developer's shell out of every test"""
    for name in ("OPENAI_API_KEY", "POE_API_KEY", "ALLOWED_ORIGINS", "POSTS_DATA_PATH"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def proxy_config():
    """Proxy mount with a credential and the default method allow-list"""
    return ProxyConfig(
        name="openai",
        mount_prefix="/api/openai",
        upstream_base=UPSTREAM_BASE,
        allowed_methods=("POST", "GET", "PUT", "DELETE"),
        credential_name="OPENAI_API_KEY",
        credential=TEST_SECRET,
        timeout_seconds=20.0,
    )


@pytest.fixture
def mock_http_client():
    """Fake upstream client answering 200 with an empty JSON object"""
    client = AsyncMock(spec=httpx.AsyncClient)
    client.request = AsyncMock(
        return_value=httpx.Response(
            200,
            content=b"{}",
            headers={"content-type": "application/json"},
        )
    )
    return client


@pytest.fixture
def secret():
    return TEST_SECRET


@pytest.fixture
def make_proxy_client():
    """Factory for a test client mounting one proxy with the upstream client overridden"""
    def _make(config: ProxyConfig, http_client) -> TestClient:
        app = FastAPI()
        app.include_router(create_proxy_router(config))
        app.dependency_overrides[get_http_client] = lambda: http_client
        return TestClient(app)
    return _make


@pytest.fixture
def proxy_client(make_proxy_client, proxy_config, mock_http_client):
    """Test client for a proxy mounted at /api/openai"""
    return make_proxy_client(proxy_config, mock_http_client)
