"""Pytest configuration and shared fixtures for toolhub-server tests.

This module provides common fixtures used across all test modules,
including test app creation, async client setup and an in-memory
stand-in for external tool servers.
"""

from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from toolhub_server import create_app
from toolhub_server.config import ToolhubServerSettings
from toolhub_server.discovery import ExternalServerAdapter, LocalEventRegistry, ServerConfig
from toolhub_server.errors import ToolServerError
from toolhub_server.storage import FileJobQueue, JsonFileCacheStore
from toolhub_server.tools.types import ServerInfo


class FakeToolServer:
    """In-memory tool server implementing the ToolServer protocol."""

    def __init__(
        self,
        name: str,
        tools: list[dict[str, Any]] | None = None,
        enabled: bool = True,
    ):
        self.config = ServerConfig(name=name, command="fake-server", enabled=enabled)
        self.tools = list(tools or [])
        self.fail_listing: Exception | None = None
        self.results: dict[str, Any] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.list_count = 0
        self.closed = False

    async def get_server_info(self) -> ServerInfo:
        return ServerInfo(name=self.config.name, type="command", version="1.2.0")

    async def list_tools(self) -> list[dict[str, Any]]:
        self.list_count += 1
        if self.fail_listing is not None:
            raise self.fail_listing
        return list(self.tools)

    async def call_tool(self, tool_name: str, arguments: dict[str, Any]) -> Any:
        self.calls.append((tool_name, arguments))
        result = self.results.get(tool_name, {"ok": True})
        if isinstance(result, Exception):
            raise result
        return result

    async def ping(self) -> Any:
        if self.fail_listing is not None:
            raise ToolServerError("unreachable", server=self.config.name)
        return {"status": "ok", "version": "1.2.0"}

    async def close(self) -> None:
        self.closed = True


def tool_definition(name: str, description: str | None = None, **extra: Any) -> dict[str, Any]:
    """Raw tool entry as an external server would advertise it."""
    definition = {
        "name": name,
        "description": description or f"{name} tool",
        "inputSchema": {
            "type": "object",
            "properties": {"query": {"type": "string", "description": "Search text"}},
            "required": ["query"],
        },
    }
    definition.update(extra)
    return definition


@pytest.fixture
def fake_server():
    """Factory for FakeToolServer instances."""
    return FakeToolServer


@pytest.fixture
def make_tool():
    """Factory for raw external tool definitions."""
    return tool_definition


@pytest.fixture
def local_events():
    """Local event registry with one registered listener."""
    registry = LocalEventRegistry()
    registry.listen(
        "send_email",
        "app.listeners.SendEmailListener",
        description="Send an email to a recipient",
        parameters={
            "type": "object",
            "properties": {
                "to": {"type": "string", "description": "Recipient address"},
                "subject": {"type": "string", "description": "Subject line"},
            },
            "required": ["to"],
        },
        category="communication",
    )
    return registry


@pytest.fixture
def docs_server(fake_server, make_tool):
    """External server advertising a search_docs tool."""
    return fake_server("docs", [make_tool("search_docs", "Search the documentation")])


@pytest.fixture
def external(docs_server):
    """External server adapter over the docs server."""
    return ExternalServerAdapter([docs_server])


@pytest.fixture
def cache_store(tmp_path):
    """Cache store in a temporary directory."""
    return JsonFileCacheStore(tmp_path / "cache")


@pytest.fixture
def job_queue(tmp_path):
    """Durable job queue in a temporary directory."""
    return FileJobQueue(tmp_path / "queue")


@pytest.fixture
def test_settings(tmp_path):
    """Create test settings with isolated temporary directories.

    Args:
        tmp_path: Pytest fixture providing a temporary directory.

    Returns:
        ToolhubServerSettings: Settings instance configured for testing.
    """
    return ToolhubServerSettings(
        host="127.0.0.1",
        port=8000,
        data_dir=str(tmp_path),
        servers_file="servers.json",
        cache_dir="cache",
        queue_dir="queue",
        log_level="DEBUG",
        cors_origins=["*"],
    )


@pytest.fixture
def test_app(test_settings, local_events):
    """Create a FastAPI test application instance.

    Args:
        test_settings: Test settings fixture.
        local_events: Local event registry handed to the app.

    Returns:
        FastAPI: Configured test application.
    """
    return create_app(settings=test_settings, local_events=local_events)


@pytest_asyncio.fixture
async def async_client(test_app):
    """Create an async HTTP client for testing FastAPI endpoints.

    Args:
        test_app: Test application fixture.

    Yields:
        AsyncClient: Async HTTP client for making test requests.
    """
    # Trigger the lifespan startup manually for tests
    async with test_app.router.lifespan_context(test_app):
        transport = ASGITransport(app=test_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
