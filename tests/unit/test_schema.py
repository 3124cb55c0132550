"""Unit tests for provider tool definition export."""

import ollama
import pytest

from toolhub_server.errors import UnknownToolsError
from toolhub_server.tools.registry import ToolRegistry
from toolhub_server.tools.schema import ToolSchemaService, descriptor_to_tool
from toolhub_server.tools.types import ServerInfo, ToolDescriptor, ToolType


@pytest.fixture
def schema_service(external, local_events):
    return ToolSchemaService(ToolRegistry(external=external, local_events=local_events))


def test_descriptor_to_tool():
    """Test converting one descriptor."""
    descriptor = ToolDescriptor(
        name="search_docs",
        description="Search the documentation",
        parameters={
            "type": "object",
            "properties": {"query": {"type": "string", "description": "Search text"}},
            "required": ["query"],
        },
        type=ToolType.EXTERNAL_TOOL,
        source="docs",
        origin=ServerInfo(name="docs"),
    )

    tool = descriptor_to_tool(descriptor)

    assert isinstance(tool, ollama.Tool)
    assert tool.type == "function"
    assert tool.function.name == "search_docs"
    assert tool.function.description == "Search the documentation"
    assert list(tool.function.parameters.required) == ["query"]
    assert tool.function.parameters.properties["query"].type == "string"


@pytest.mark.asyncio
async def test_build_tool_definitions_in_request_order(schema_service):
    """Test building definitions for requested tools."""
    tools = await schema_service.build_tool_definitions(["send_email", "search_docs", "send_email"])

    assert [tool.function.name for tool in tools] == ["send_email", "search_docs"]


@pytest.mark.asyncio
async def test_build_tool_definitions_rejects_unknown(schema_service, docs_server):
    """Test that pre-flight validation runs before any definition is built."""
    with pytest.raises(UnknownToolsError) as exc_info:
        await schema_service.build_tool_definitions(["search_docs", "bogus_tool"])

    assert exc_info.value.missing == ["bogus_tool"]
    assert docs_server.calls == []


@pytest.mark.asyncio
async def test_build_all_definitions(schema_service):
    """Test exporting the whole catalog."""
    tools = await schema_service.build_all_definitions()

    assert [tool.function.name for tool in tools] == ["search_docs", "send_email"]
