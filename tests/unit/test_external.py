"""Unit tests for the external-server discovery adapter."""

import pytest

from toolhub_server.discovery import ExternalServerAdapter, ServerDiscovery
from toolhub_server.discovery.external import normalize_tool_definition, normalize_tools
from toolhub_server.errors import DiscoveryError, ToolExecutionError, ToolServerError


def test_normalize_accepts_input_schema_variants():
    """Test that inputSchema, input_schema and parameters are all accepted."""
    schema = {"type": "object", "properties": {"q": {"type": "string"}}}

    for key in ("inputSchema", "input_schema", "parameters"):
        normalized = normalize_tool_definition({"name": "a", "description": "A", key: schema})
        assert normalized["input_schema"] == schema


def test_normalize_defaults_to_empty_schema():
    """Test tools without a schema."""
    normalized = normalize_tool_definition({"name": "ping", "description": "Ping"})
    assert normalized["input_schema"] == {"type": "object", "properties": {}}


def test_normalize_keeps_optional_fields():
    """Test that category and requires_auth survive normalization."""
    normalized = normalize_tool_definition(
        {"name": "a", "description": "A", "category": "search", "requires_auth": True}
    )
    assert normalized["category"] == "search"
    assert normalized["requires_auth"] is True


@pytest.mark.parametrize(
    "tool",
    [
        {"description": "no name"},
        {"name": "no_description"},
        {"name": "a", "description": "A", "inputSchema": {"properties": {}}},
        {"name": "a", "description": "A", "inputSchema": {"type": "tuple"}},
        {"name": "a", "description": "A", "inputSchema": {"type": "object", "properties": []}},
        "not-a-dict",
    ],
)
def test_normalize_rejects_invalid_tools(tool):
    """Test validation failures."""
    with pytest.raises(ValueError):
        normalize_tool_definition(tool)


def test_normalize_tools_skips_invalid_entries(caplog, make_tool):
    """Test that one bad tool does not drop the others."""
    tools = normalize_tools([make_tool("good"), {"name": "bad"}], "docs")

    assert [tool["name"] for tool in tools] == ["good"]
    assert "Invalid tool definition 'bad'" in caplog.text


@pytest.mark.parametrize(
    "tool",
    [
        {"name": 7, "description": "Numeric name"},
        {"name": "a", "description": {"text": "nested"}},
        {"name": "   ", "description": "Blank name"},
        {"name": "a", "description": ["A"]},
    ],
)
def test_normalize_rejects_non_string_name_and_description(tool):
    """Test that name and description must be non-empty strings."""
    with pytest.raises(ValueError, match="must be a non-empty string"):
        normalize_tool_definition(tool)


def test_normalize_tools_skips_non_string_fields(caplog, make_tool):
    """Test that wrongly typed fields drop only that tool, with a warning."""
    tools = normalize_tools(
        [make_tool("good"), {"name": 7, "description": {"text": "nested"}}], "docs"
    )

    assert [tool["name"] for tool in tools] == ["good"]
    assert "Invalid tool definition '7'" in caplog.text


@pytest.mark.asyncio
async def test_discover_returns_normalized_tools(external):
    """Test discovering one server."""
    discovery = await external.discover("docs")

    assert discovery.server == "docs"
    assert [tool["name"] for tool in discovery.tools] == ["search_docs"]
    assert discovery.server_info.version == "1.2.0"
    assert discovery.discovery_time_ms >= 0


@pytest.mark.asyncio
async def test_discover_wraps_server_failure(external, docs_server):
    """Test that server failures become DiscoveryError."""
    docs_server.fail_listing = ToolServerError("connection refused", server="docs")

    with pytest.raises(DiscoveryError, match="connection refused") as exc_info:
        await external.discover("docs")

    assert exc_info.value.source == "docs"


@pytest.mark.asyncio
async def test_discover_unknown_server(external):
    """Test discovering a server that is not configured."""
    with pytest.raises(DiscoveryError, match="not found"):
        await external.discover("missing")


@pytest.mark.asyncio
async def test_disabled_server_not_queried(fake_server, make_tool):
    """Test that disabled servers are skipped by discover_all."""
    enabled = fake_server("docs", [make_tool("search_docs")])
    disabled = fake_server("legacy", [make_tool("old_tool")], enabled=False)
    adapter = ExternalServerAdapter([enabled, disabled])

    outcomes = await adapter.discover_all()

    assert list(outcomes) == ["docs"]
    assert disabled.list_count == 0
    with pytest.raises(DiscoveryError, match="not enabled"):
        await adapter.discover("legacy")


@pytest.mark.asyncio
async def test_discover_all_isolates_failures(fake_server, make_tool):
    """Test that one failing server does not affect another."""
    good = fake_server("docs", [make_tool("search_docs")])
    bad = fake_server("search", [make_tool("web_search")])
    bad.fail_listing = RuntimeError("boom")
    adapter = ExternalServerAdapter([good, bad])

    outcomes = await adapter.discover_all()

    assert isinstance(outcomes["docs"], ServerDiscovery)
    assert isinstance(outcomes["search"], DiscoveryError)


@pytest.mark.asyncio
async def test_discover_all_only_named_servers(fake_server, make_tool):
    """Test that discover_all queries only the given servers, in the given order."""
    docs = fake_server("docs", [make_tool("search_docs")])
    search = fake_server("search", [make_tool("web_search")])
    adapter = ExternalServerAdapter([docs, search])

    outcomes = await adapter.discover_all(["search"])
    nothing = await adapter.discover_all([])

    assert list(outcomes) == ["search"]
    assert search.list_count == 1
    assert docs.list_count == 0
    assert nothing == {}


def test_server_discovery_dict_round_trip():
    """Test the cached form of a discovery."""
    from toolhub_server.tools.types import ServerInfo

    discovery = ServerDiscovery(
        server="docs",
        tools=[{"name": "a", "description": "A", "input_schema": {"type": "object"}}],
        server_info=ServerInfo(name="docs", type="http", version="2.0.0"),
        discovered_at="2024-01-01T00:00:00Z",
        discovery_time_ms=12.5,
    )
    assert ServerDiscovery.from_dict(discovery.to_dict()) == discovery


@pytest.mark.asyncio
async def test_invoke_calls_server(external, docs_server):
    """Test invoking a tool."""
    docs_server.results["search_docs"] = {"hits": 3}

    result = await external.invoke("docs", "search_docs", {"query": "x"})

    assert result == {"hits": 3}
    assert docs_server.calls == [("search_docs", {"query": "x"})]


@pytest.mark.asyncio
async def test_invoke_wraps_server_error(external, docs_server):
    """Test that server errors become ToolExecutionError."""
    docs_server.results["search_docs"] = ToolServerError("quota exceeded", server="docs")

    with pytest.raises(ToolExecutionError, match="quota exceeded"):
        await external.invoke("docs", "search_docs", {})


@pytest.mark.asyncio
async def test_invoke_unknown_server(external):
    """Test invoking on a server that does not exist."""
    with pytest.raises(ToolExecutionError, match="not configured"):
        await external.invoke("missing", "x", {})


@pytest.mark.asyncio
async def test_check_health(fake_server, make_tool):
    """Test health statuses."""
    healthy = fake_server("docs", [make_tool("a")])
    broken = fake_server("search", [make_tool("b")])
    broken.fail_listing = RuntimeError("down")
    disabled = fake_server("legacy", enabled=False)
    adapter = ExternalServerAdapter([healthy, broken, disabled])

    assert (await adapter.check_health("docs"))["status"] == "healthy"
    assert (await adapter.check_health("docs"))["version"] == "1.2.0"
    assert (await adapter.check_health("search"))["status"] == "error"
    assert (await adapter.check_health("legacy"))["status"] == "disabled"
    assert (await adapter.check_health("nope"))["status"] == "error"


@pytest.mark.asyncio
async def test_close_closes_all_servers(fake_server):
    """Test that close() reaches every transport."""
    servers = [fake_server("a"), fake_server("b")]
    adapter = ExternalServerAdapter(servers)

    await adapter.close()

    assert all(server.closed for server in servers)
