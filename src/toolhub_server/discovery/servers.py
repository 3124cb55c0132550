"""External tool server configuration and transports.

Servers are declared in a JSON file:
{
    "servers": {
        "web-search": {"transport": "command", "command": "npx", "args": [...]},
        "docs": {"transport": "http", "url": "http://localhost:9000/rpc"}
    }
}

Two transports speak the discovery protocol:
- CommandToolServer runs the server command once per request
  (--list-tools, --tool <name> --params <json>, --health)
- HttpToolServer talks JSON-RPC 2.0 over HTTP
  (initialize, tools/list, tools/call, ping)
"""

import asyncio
import itertools
import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import httpx

from toolhub_server.errors import ToolServerError
from toolhub_server.tools.types import ServerInfo

logger = logging.getLogger(__name__)

DEFAULT_SERVER_TIMEOUT = 30.0
MCP_PROTOCOL_VERSION = "2024-11-05"
CLIENT_INFO = {"name": "toolhub-server", "version": "0.1.0"}

_SERVER_NAME = re.compile(r"^[a-z0-9\-_]+$")
_ENV_PLACEHOLDER = re.compile(r"^\$\{([A-Za-z_][A-Za-z0-9_]*)\}$")


@dataclass
class ServerConfig:
    """Configuration for one external tool server."""

    name: str
    transport: str = "command"  # command | http
    command: str = ""
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    url: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    enabled: bool = True
    timeout: float | None = None
    display_name: str | None = None
    description: str | None = None
    version: str = "1.0.0"

    def resolved_env(self) -> dict[str, str]:
        """Return env entries with ${VAR} placeholders filled from os.environ."""
        resolved = {}
        for key, value in self.env.items():
            match = _ENV_PLACEHOLDER.match(value)
            resolved[key] = os.environ.get(match.group(1), "") if match else value
        return resolved

    def missing_env(self) -> list[str]:
        """Names of placeholder variables that are not set."""
        missing = []
        for value in self.env.values():
            match = _ENV_PLACEHOLDER.match(value)
            if match and not os.environ.get(match.group(1)):
                missing.append(match.group(1))
        return missing

    def is_configured(self) -> bool:
        """Check the server has what its transport needs to run."""
        if self.transport == "command":
            return bool(self.command) and not self.missing_env()
        if self.transport == "http":
            return bool(self.url)
        return False


def load_server_configs(path: Path) -> list[ServerConfig]:
    """Load server configurations from a JSON file.

    Args:
        path: Path to the servers file

    Returns:
        Server configurations in file order; empty if the file doesn't exist

    Raises:
        ValueError: If the file is not valid JSON or a server entry is invalid
    """
    if not path.exists():
        logger.info(f"No servers file at {path}, no external tool servers configured")
        return []

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid servers file {path}: {e}") from e

    servers = data.get("servers", {}) if isinstance(data, dict) else None
    if not isinstance(servers, dict):
        raise ValueError(f"Invalid servers file {path}: 'servers' must be an object")

    configs = []
    for name, entry in servers.items():
        if not _SERVER_NAME.match(name):
            raise ValueError(
                f"Server name '{name}' must contain only lowercase letters, "
                "numbers, hyphens, and underscores"
            )
        if not isinstance(entry, dict):
            raise ValueError(f"Configuration for server '{name}' must be an object")
        try:
            config = ServerConfig(name=name, **entry)
        except TypeError as e:
            raise ValueError(f"Invalid configuration for server '{name}': {e}") from e
        if config.transport not in ("command", "http"):
            raise ValueError(f"Server '{name}' has unknown transport '{config.transport}'")
        configs.append(config)

    logger.info(f"Loaded {len(configs)} tool server configurations from {path}")
    return configs


class ToolServer(Protocol):
    """Transport-independent view of an external tool server."""

    config: ServerConfig

    async def get_server_info(self) -> ServerInfo: ...

    async def list_tools(self) -> list[dict[str, Any]]: ...

    async def call_tool(self, tool_name: str, arguments: dict[str, Any]) -> Any: ...

    async def ping(self) -> Any: ...

    async def close(self) -> None: ...


class CommandToolServer:
    """Tool server reached by running its command as a subprocess."""

    def __init__(self, config: ServerConfig, default_timeout: float = DEFAULT_SERVER_TIMEOUT):
        self.config = config
        self.timeout = config.timeout or default_timeout

    async def _run(self, extra_args: list[str]) -> Any:
        """Run the server command and parse its stdout.

        Returns:
            Parsed JSON output, {"text": ...} for non-JSON output, None if empty

        Raises:
            ToolServerError: On spawn failure, timeout, or non-zero exit
        """
        name = self.config.name
        env = {**os.environ, **self.config.resolved_env()}

        try:
            process = await asyncio.create_subprocess_exec(
                self.config.command,
                *self.config.args,
                *extra_args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except OSError as e:
            raise ToolServerError(f"Process execution failed: {e}", server=name) from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), self.timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise ToolServerError(
                f"Server '{name}' timed out after {self.timeout}s", server=name
            ) from e
        except asyncio.CancelledError:
            process.kill()
            await process.wait()
            raise

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise ToolServerError(
                message or f"Command exited with code {process.returncode}", server=name
            )

        output = stdout.decode("utf-8", errors="replace").strip()
        if not output:
            return None
        try:
            return json.loads(output)
        except json.JSONDecodeError:
            return {"text": output}

    async def get_server_info(self) -> ServerInfo:
        return ServerInfo(
            name=self.config.display_name or self.config.name,
            type="command",
            version=self.config.version,
        )

    async def list_tools(self) -> list[dict[str, Any]]:
        output = await self._run(["--list-tools"])
        if not isinstance(output, dict) or not isinstance(output.get("tools"), list):
            raise ToolServerError(
                f"Server '{self.config.name}' returned a malformed tool list",
                server=self.config.name,
            )
        return output["tools"]

    async def call_tool(self, tool_name: str, arguments: dict[str, Any]) -> Any:
        output = await self._run(["--tool", tool_name, "--params", json.dumps(arguments)])
        return output if output is not None else {}

    async def ping(self) -> Any:
        return await self._run(["--health"])

    async def close(self) -> None:
        pass


class HttpToolServer:
    """Tool server reached over JSON-RPC 2.0 on HTTP."""

    def __init__(
        self,
        config: ServerConfig,
        default_timeout: float = DEFAULT_SERVER_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the HTTP transport.

        Args:
            config: Server configuration (url and headers are used)
            default_timeout: Timeout when the server config sets none
            client: Optional pre-built httpx client (e.g. with a mock transport)
        """
        self.config = config
        self.timeout = config.timeout or default_timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(headers=config.headers)
        self._ids = itertools.count(1)

    async def _rpc(self, method: str, params: dict[str, Any] | None = None) -> Any:
        name = self.config.name
        request: dict[str, Any] = {"jsonrpc": "2.0", "id": next(self._ids), "method": method}
        if params is not None:
            request["params"] = params

        try:
            response = await self._client.post(self.config.url, json=request, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as e:
            raise ToolServerError(
                f"Server '{name}' timed out after {self.timeout}s", server=name
            ) from e
        except httpx.HTTPError as e:
            raise ToolServerError(f"HTTP request to server '{name}' failed: {e}", server=name) from e
        except ValueError as e:
            raise ToolServerError(f"Server '{name}' returned invalid JSON", server=name) from e

        if not isinstance(body, dict):
            raise ToolServerError(f"Server '{name}' returned a malformed response", server=name)

        error = body.get("error")
        if error:
            message = error.get("message", "unknown error") if isinstance(error, dict) else str(error)
            raise ToolServerError(f"{method} failed on server '{name}': {message}", server=name)

        return body.get("result")

    async def get_server_info(self) -> ServerInfo:
        fallback = ServerInfo(
            name=self.config.display_name or self.config.name,
            type="http",
            version=self.config.version,
        )
        try:
            result = await self._rpc(
                "initialize",
                {
                    "protocolVersion": MCP_PROTOCOL_VERSION,
                    "capabilities": {},
                    "clientInfo": CLIENT_INFO,
                },
            )
        except ToolServerError as e:
            logger.warning(f"initialize failed for server {self.config.name}, using configured info: {e}")
            return fallback

        server_info = (result or {}).get("serverInfo") or {}
        return ServerInfo(
            name=server_info.get("name", fallback.name),
            type="http",
            version=server_info.get("version", fallback.version),
        )

    async def list_tools(self) -> list[dict[str, Any]]:
        result = await self._rpc("tools/list")
        if not isinstance(result, dict) or not isinstance(result.get("tools"), list):
            raise ToolServerError(
                f"Server '{self.config.name}' returned a malformed tool list",
                server=self.config.name,
            )
        return result["tools"]

    async def call_tool(self, tool_name: str, arguments: dict[str, Any]) -> Any:
        result = await self._rpc("tools/call", {"name": tool_name, "arguments": arguments})
        if isinstance(result, dict) and result.get("isError"):
            texts = [
                item.get("text", "")
                for item in result.get("content", [])
                if isinstance(item, dict) and item.get("type") == "text"
            ]
            raise ToolServerError(
                "; ".join(texts) or f"Tool '{tool_name}' reported an error",
                server=self.config.name,
            )
        return result

    async def ping(self) -> Any:
        return await self._rpc("ping")

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def create_tool_server(
    config: ServerConfig, default_timeout: float = DEFAULT_SERVER_TIMEOUT
) -> ToolServer:
    """Build the transport for a server configuration.

    Raises:
        ValueError: If the transport is unknown
    """
    if config.transport == "command":
        return CommandToolServer(config, default_timeout=default_timeout)
    if config.transport == "http":
        return HttpToolServer(config, default_timeout=default_timeout)
    raise ValueError(f"Unknown transport '{config.transport}' for server '{config.name}'")
