"""Provider tool definitions.

Converts catalog descriptors into ollama.Tool definitions that a host
application can pass to a chat call. Requested names go through pre-flight
validation first, so a provider request is never built with an unknown tool.
"""

import logging
from collections.abc import Iterable
from typing import Any

import ollama

from toolhub_server.tools.registry import ToolRegistry
from toolhub_server.tools.types import ToolDescriptor

logger = logging.getLogger(__name__)


def descriptor_to_tool(descriptor: ToolDescriptor) -> ollama.Tool:
    """Convert one descriptor into an Ollama tool definition.

    Args:
        descriptor: Catalog entry

    Returns:
        ollama.Tool with the descriptor's name, description and parameters
    """
    parameters: dict[str, Any] = descriptor.parameters or {}
    return ollama.Tool.model_validate(
        {
            "type": "function",
            "function": {
                "name": descriptor.name,
                "description": descriptor.description,
                "parameters": {
                    "type": "object",
                    "required": list(parameters.get("required") or []),
                    "properties": parameters.get("properties") or {},
                },
            },
        }
    )


class ToolSchemaService:
    """Builds provider tool definitions from the registry."""

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    async def build_tool_definitions(self, names: Iterable[str]) -> list[ollama.Tool]:
        """Build definitions for the named tools.

        Args:
            names: Requested tool names

        Returns:
            One ollama.Tool per distinct name, in request order

        Raises:
            UnknownToolsError: If any name is not in the catalog
        """
        requested = list(dict.fromkeys(names))
        await self.registry.ensure_tools_exist(requested)

        tools = await self.registry.get_all_tools()
        definitions = [descriptor_to_tool(tools[name]) for name in requested]
        logger.debug(f"Built {len(definitions)} tool definitions")
        return definitions

    async def build_all_definitions(self) -> list[ollama.Tool]:
        """Build definitions for every tool in the catalog, sorted by name."""
        tools = await self.registry.get_all_tools()
        return [descriptor_to_tool(tools[name]) for name in sorted(tools)]
