"""Shared pytest fixtures for hostpages tests.

Each test gets its own FastAPI app wired to a fresh in-memory storage
backend. The lifespan context doesn't auto-run with ASGITransport, which
is fine: the memory backend needs no initialization.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from hostpages.config import AuthConfig, HostPagesConfig, RoutingConfig, ServerConfig, StorageConfig
from hostpages.server import create_app
from hostpages.storage.memory import MemoryStorageBackend

SECRET = "test-secret"
AUTH_HEADER = "X-Custom-Auth-Key"

HOSTS = {
    "crafty.social": {
        "/security/acknowledgements": "security-acknowledgement.html",
        "/security/policy": "security-policy.html",
        "/security/hiring": "security-hiring.html",
    },
    "example2.com": {
        "/security.txt": "example2/security.txt",
        "/disclaimer-policy.txt": "example2/disclaimer-policy.txt",
    },
}

ALLOW_LIST = [
    "/security/acknowledgements",
    "/security/policy",
    "/security/hiring",
]


@pytest.fixture
def config() -> HostPagesConfig:
    """Create a test config with the example route table and a known secret."""
    return HostPagesConfig(
        server=ServerConfig(host="127.0.0.1", port=8788),
        auth=AuthConfig(header=AUTH_HEADER, secret=SECRET),
        routing=RoutingConfig(hosts=HOSTS, allow_list=ALLOW_LIST),
        storage=StorageConfig(backend="memory"),
    )


@pytest.fixture
def storage() -> MemoryStorageBackend:
    return MemoryStorageBackend()


@pytest.fixture
def app(config, storage):
    """Create a test FastAPI application backed by the memory storage fixture."""
    return create_app(config, storage=storage)


@pytest.fixture
async def client(app) -> AsyncClient:
    """Create an async test client for the hostpages app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://crafty.social") as ac:
        yield ac
