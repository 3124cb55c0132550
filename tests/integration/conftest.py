"""Pytest configuration for integration tests.

The app is started with its external servers replaced by in-memory fakes,
so the API tests never spawn processes or open connections.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from toolhub_server.discovery import ExternalServerAdapter
from toolhub_server.errors import ToolServerError


@pytest.fixture
def broken_server(fake_server, make_tool):
    """External server whose listing fails."""
    server = fake_server("broken", [make_tool("lookup")])
    server.fail_listing = ToolServerError("connection refused", server="broken")
    return server


@pytest.fixture
def fake_adapter(docs_server, broken_server, monkeypatch):
    """Patch the lifespan to build its adapter from the fake servers."""
    adapter = ExternalServerAdapter([docs_server, broken_server])
    monkeypatch.setattr(
        ExternalServerAdapter, "from_configs", staticmethod(lambda *args, **kwargs: adapter)
    )
    return adapter


@pytest_asyncio.fixture
async def api_client(test_app, fake_adapter):
    """Client for an app whose external servers are in-memory fakes."""
    async with test_app.router.lifespan_context(test_app):
        transport = ASGITransport(app=test_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
