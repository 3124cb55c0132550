"""External-server discovery adapter.

This module provides the ExternalServerAdapter which handles:
- Listing the configured tool servers
- Discovering tools from one server or from all enabled servers
- Validating and normalizing raw tool definitions
- Invoking a tool on the server that advertised it
- Health checks
"""

import asyncio
import logging
import time
from dataclasses import asdict, dataclass
from typing import Any

from toolhub_server.discovery.servers import (
    DEFAULT_SERVER_TIMEOUT,
    ServerConfig,
    ToolServer,
    create_tool_server,
)
from toolhub_server.errors import DiscoveryError, ToolExecutionError, ToolServerError
from toolhub_server.tools.types import ServerInfo, empty_parameters, utc_now_iso

logger = logging.getLogger(__name__)

JSON_SCHEMA_TYPES = ("object", "array", "string", "number", "integer", "boolean", "null")
OPTIONAL_TOOL_FIELDS = ("category", "version", "requires_auth", "output_schema")


@dataclass
class ServerDiscovery:
    """Tools discovered from one server."""

    server: str
    tools: list[dict[str, Any]]
    server_info: ServerInfo
    discovered_at: str
    discovery_time_ms: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary for caching."""
        return {
            "server": self.server,
            "tools": self.tools,
            "server_info": asdict(self.server_info),
            "discovered_at": self.discovered_at,
            "discovery_time_ms": self.discovery_time_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ServerDiscovery":
        """Rebuild from the cached dictionary form."""
        return cls(
            server=data["server"],
            tools=list(data.get("tools", [])),
            server_info=ServerInfo(**data["server_info"]),
            discovered_at=data.get("discovered_at", ""),
            discovery_time_ms=data.get("discovery_time_ms", 0.0),
        )


def validate_json_schema(schema: Any, context: str) -> None:
    """Check the basic shape of a JSON schema.

    Raises:
        ValueError: If the schema has no valid type or non-object properties
    """
    if not isinstance(schema, dict):
        raise ValueError(f"{context} must be an object")
    if "type" not in schema:
        raise ValueError(f"{context} must have a 'type' field")
    if schema["type"] not in JSON_SCHEMA_TYPES:
        raise ValueError(f"{context} has invalid type: {schema['type']}")
    if schema["type"] == "object" and not isinstance(schema.get("properties", {}), dict):
        raise ValueError(f"{context} properties must be an object")


def normalize_tool_definition(tool: Any) -> dict[str, Any]:
    """Validate a raw tool definition and bring it into one shape.

    The input schema may be given as inputSchema, input_schema or
    parameters. The result always has name, description and input_schema
    keys, plus any optional fields that were present.

    Raises:
        ValueError: If required fields are missing or the schema is invalid
    """
    if not isinstance(tool, dict):
        raise ValueError("Tool definition must be an object")

    for required in ("name", "description"):
        value = tool.get(required)
        if not value:
            raise ValueError(f"Tool missing required field: {required}")
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"Tool field '{required}' must be a non-empty string")

    schema = tool.get("inputSchema") or tool.get("input_schema") or tool.get("parameters")
    if schema:
        validate_json_schema(schema, f"Tool '{tool['name']}' input schema")
    else:
        schema = empty_parameters()

    normalized = {
        "name": tool["name"],
        "description": tool["description"],
        "input_schema": schema,
    }

    output_schema = tool.get("outputSchema") or tool.get("output_schema")
    if output_schema:
        normalized["output_schema"] = output_schema
    for optional in OPTIONAL_TOOL_FIELDS:
        if optional in tool and optional not in normalized:
            normalized[optional] = tool[optional]

    return normalized


def normalize_tools(tools: list[Any], server: str) -> list[dict[str, Any]]:
    """Normalize a server's tool list, skipping invalid entries."""
    normalized = []
    for tool in tools:
        try:
            normalized.append(normalize_tool_definition(tool))
        except ValueError as e:
            tool_name = tool.get("name", "unknown") if isinstance(tool, dict) else "unknown"
            logger.warning(f"Invalid tool definition '{tool_name}' from server {server} skipped: {e}")
    return normalized


class ExternalServerAdapter:
    """Discovers and invokes tools on configured external servers."""

    def __init__(self, servers: list[ToolServer] | None = None):
        """Initialize the adapter.

        Args:
            servers: Tool server transports, in configuration order
        """
        self._servers: dict[str, ToolServer] = {
            server.config.name: server for server in servers or []
        }

    @classmethod
    def from_configs(
        cls,
        configs: list[ServerConfig],
        default_timeout: float = DEFAULT_SERVER_TIMEOUT,
    ) -> "ExternalServerAdapter":
        """Build an adapter with one transport per server configuration."""
        return cls([create_tool_server(config, default_timeout) for config in configs])

    def server_names(self) -> list[str]:
        """All configured server names, in configuration order."""
        return list(self._servers)

    def enabled_server_names(self) -> list[str]:
        """Names of servers that are enabled, in configuration order."""
        return [name for name, server in self._servers.items() if server.config.enabled]

    def get_server(self, name: str) -> ToolServer | None:
        return self._servers.get(name)

    def _require_server(self, name: str) -> ToolServer:
        server = self._servers.get(name)
        if server is None:
            raise DiscoveryError(f"Tool server '{name}' not found", source=name)
        if not server.config.enabled or not server.config.is_configured():
            raise DiscoveryError(
                f"Tool server '{name}' is not enabled or configured", source=name
            )
        return server

    async def discover(self, name: str) -> ServerDiscovery:
        """Discover the tools of a single server.

        Args:
            name: Configured server name

        Returns:
            ServerDiscovery with normalized tool definitions

        Raises:
            DiscoveryError: If the server is unknown, disabled, unconfigured,
                            unreachable or returns a malformed tool list
        """
        server = self._require_server(name)

        start = time.monotonic()
        try:
            raw_tools = await server.list_tools()
            server_info = await server.get_server_info()
        except Exception as e:
            raise DiscoveryError(
                f"Failed to discover tools from server '{name}': {e}", source=name
            ) from e
        elapsed_ms = (time.monotonic() - start) * 1000

        tools = normalize_tools(raw_tools, name)
        logger.debug(f"Server {name} listed {len(raw_tools)} tools ({len(tools)} valid) in {elapsed_ms:.1f}ms")

        return ServerDiscovery(
            server=name,
            tools=tools,
            server_info=server_info,
            discovered_at=utc_now_iso(),
            discovery_time_ms=round(elapsed_ms, 2),
        )

    async def discover_all(
        self, names: list[str] | None = None
    ) -> dict[str, ServerDiscovery | DiscoveryError]:
        """Discover tools from every enabled server.

        Servers are queried concurrently and each failure is isolated to its
        own server.

        Args:
            names: Only discover these servers (default: all enabled servers)

        Returns:
            Mapping of server name to its ServerDiscovery or DiscoveryError,
            in the order of names (configuration order by default)
        """
        if names is None:
            names = self.enabled_server_names()

        async def discover_one(name: str) -> ServerDiscovery | DiscoveryError:
            try:
                return await self.discover(name)
            except DiscoveryError as e:
                return e

        outcomes = await asyncio.gather(*(discover_one(name) for name in names))
        return dict(zip(names, outcomes))

    async def invoke(self, name: str, tool_name: str, arguments: dict[str, Any]) -> Any:
        """Call a tool on a server.

        Raises:
            ToolExecutionError: If the server is unavailable or the call fails
        """
        server = self._servers.get(name)
        if server is None or not server.config.enabled or not server.config.is_configured():
            raise ToolExecutionError(
                f"Tool server '{name}' is not configured or enabled", name=tool_name
            )

        logger.debug(f"Calling tool {tool_name} on server {name}")
        try:
            return await server.call_tool(tool_name, arguments)
        except ToolServerError as e:
            raise ToolExecutionError(
                f"Failed to execute tool {tool_name}: {e}", name=tool_name
            ) from e

    async def check_health(self, name: str) -> dict[str, Any]:
        """Test connectivity to a server.

        Returns:
            Dictionary with status (healthy | error | disabled), message and,
            when the server answered, response_time_ms
        """
        server = self._servers.get(name)
        if server is None:
            return {"status": "error", "message": f"Tool server '{name}' not found"}
        if not server.config.is_configured():
            return {"status": "error", "message": "Server is not properly configured"}
        if not server.config.enabled:
            return {"status": "disabled", "message": "Server is disabled"}

        start = time.monotonic()
        try:
            output = await server.ping()
        except ToolServerError as e:
            return {
                "status": "error",
                "message": f"Connection test failed: {e}",
                "response_time_ms": round((time.monotonic() - start) * 1000, 2),
            }

        version = output.get("version", "unknown") if isinstance(output, dict) else "unknown"
        return {
            "status": "healthy",
            "message": "Server is responding normally",
            "response_time_ms": round((time.monotonic() - start) * 1000, 2),
            "version": version,
        }

    async def close(self) -> None:
        """Close every transport."""
        for server in self._servers.values():
            await server.close()
