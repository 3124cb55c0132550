"""Data types for the unified tool catalog and execution results.

This module defines the normalized catalog entry (ToolDescriptor), the
per-call request/context/result records that flow through the executor, and
the report produced by a discovery cycle.
"""

import json
import uuid
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from toolhub_server.errors import InvalidContextError, MalformedToolCallError

LOCAL_EVENTS_SOURCE = "local_events"


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO 8601 string with a Z suffix."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def generate_call_id() -> str:
    """Generate a call id for requests that arrive without one."""
    return f"call_{uuid.uuid4().hex[:12]}"


def empty_parameters() -> dict[str, Any]:
    """Schema used by tools that take no arguments."""
    return {"type": "object", "properties": {}}


class ToolType(str, Enum):
    """Where a tool comes from."""

    EXTERNAL_TOOL = "external_tool"
    LOCAL_EVENT = "local_event"


class ExecutionMode(str, Enum):
    """Which execution lane handles a tool."""

    IMMEDIATE = "immediate"
    BACKGROUND = "background"


class ExecutionStatus(str, Enum):
    """Outcome of a single tool call."""

    SUCCESS = "success"
    QUEUED = "queued"
    ERROR = "error"


EXECUTION_MODES: dict[ToolType, ExecutionMode] = {
    ToolType.EXTERNAL_TOOL: ExecutionMode.IMMEDIATE,
    ToolType.LOCAL_EVENT: ExecutionMode.BACKGROUND,
}


@dataclass(frozen=True)
class ServerInfo:
    """Origin of an external tool: the server that advertised it."""

    name: str
    type: str = "external"
    version: str = "1.0.0"


@dataclass(frozen=True)
class ListenerInfo:
    """Origin of a local event: the listener registered for it."""

    listener: str


ToolOrigin = ServerInfo | ListenerInfo


@dataclass(frozen=True)
class ToolDescriptor:
    """A single entry of the unified tool catalog.

    The execution mode is not stored; it is derived from the tool type so a
    descriptor can never pair an external tool with the background lane or
    a local event with the immediate lane.

    Attributes:
        name: Catalog-wide unique tool name
        description: Human-readable description (non-empty)
        parameters: JSON-Schema-like object describing the arguments
        type: Origin discriminator
        source: Server name, or "local_events" for local registrations
        origin: ServerInfo for external tools, ListenerInfo for local events
        requires_auth: Whether the tool needs caller credentials
        category: Free-form grouping, no effect on routing
    """

    name: str
    description: str
    parameters: dict[str, Any]
    type: ToolType
    source: str
    origin: ToolOrigin
    requires_auth: bool = False
    category: str | None = None

    def __post_init__(self) -> None:
        """Coerce the tool type and check the origin matches it."""
        object.__setattr__(self, "type", ToolType(self.type))

        if not self.name:
            raise ValueError("Tool name must not be empty")
        if not self.description:
            raise ValueError(f"Tool '{self.name}' must have a description")

        expected = ServerInfo if self.type is ToolType.EXTERNAL_TOOL else ListenerInfo
        if not isinstance(self.origin, expected):
            raise ValueError(
                f"Tool '{self.name}' of type {self.type.value} "
                f"requires a {expected.__name__} origin"
            )

    @property
    def execution_mode(self) -> ExecutionMode:
        """The lane this tool is routed to."""
        return EXECUTION_MODES[self.type]

    def to_dict(self) -> dict[str, Any]:
        """Convert the descriptor to a JSON-serializable dictionary."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
            "type": self.type.value,
            "execution_mode": self.execution_mode.value,
            "source": self.source,
            "requires_auth": self.requires_auth,
            "category": self.category,
            "origin": asdict(self.origin),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ToolDescriptor":
        """Rebuild a descriptor from its dictionary form.

        Args:
            data: Dictionary produced by to_dict()

        Returns:
            The ToolDescriptor

        Raises:
            ValueError: If the stored execution mode disagrees with the type
        """
        tool_type = ToolType(data["type"])
        stored_mode = data.get("execution_mode")
        if stored_mode is not None and ExecutionMode(stored_mode) != EXECUTION_MODES[tool_type]:
            raise ValueError(
                f"Tool '{data.get('name')}' has execution mode {stored_mode} "
                f"which does not match type {tool_type.value}"
            )

        origin_data = dict(data.get("origin") or {})
        origin: ToolOrigin
        if tool_type is ToolType.EXTERNAL_TOOL:
            origin = ServerInfo(**origin_data) if origin_data else ServerInfo(name=data["source"])
        else:
            origin = ListenerInfo(listener=origin_data.get("listener", ""))

        return cls(
            name=data["name"],
            description=data["description"],
            parameters=dict(data.get("parameters") or empty_parameters()),
            type=tool_type,
            source=data["source"],
            origin=origin,
            requires_auth=bool(data.get("requires_auth", False)),
            category=data.get("category"),
        )


def _parse_arguments(arguments: Any) -> dict[str, Any]:
    """Accept arguments as a dict or as a JSON-encoded object string."""
    if arguments is None or arguments == "":
        return {}
    if isinstance(arguments, str):
        arguments = json.loads(arguments)
    if not isinstance(arguments, dict):
        raise ValueError(f"arguments must be an object, got {type(arguments).__name__}")
    return arguments


@dataclass
class ToolCallRequest:
    """A single requested tool call."""

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    call_id: str = field(default_factory=generate_call_id)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ToolCallRequest":
        """Build a request from a provider tool-call payload.

        Both the flat shape {"id", "name", "arguments"} and the nested
        {"id", "function": {"name", "arguments"}} shape are accepted, with
        arguments given either as a dict or as a JSON string.

        Raises:
            MalformedToolCallError: If the payload shape is invalid or the
                                    arguments cannot be parsed
        """
        function = payload.get("function") or {}
        call_id = payload.get("id") or payload.get("call_id") or generate_call_id()
        if not isinstance(call_id, str):
            raise MalformedToolCallError(
                f"Tool call id must be a string, got {type(call_id).__name__}"
            )
        if not isinstance(function, Mapping):
            raise MalformedToolCallError(
                f"Tool call function must be an object, got {type(function).__name__}",
                call_id=call_id,
            )

        name = payload.get("name") or function.get("name") or ""
        if not isinstance(name, str):
            raise MalformedToolCallError(
                f"Tool name must be a string, got {type(name).__name__}", call_id=call_id
            )

        raw_arguments = payload.get("arguments", function.get("arguments"))

        try:
            arguments = _parse_arguments(raw_arguments)
        except ValueError as e:
            raise MalformedToolCallError(
                f"Invalid arguments for tool '{name}': {e}", name=name, call_id=call_id
            ) from e

        return cls(name=name, arguments=arguments, call_id=call_id)


@dataclass
class ExecutionContext:
    """Correlation data passed through to the execution lanes untouched."""

    user_id: str | int | None = None
    conversation_id: str | int | None = None
    message_id: str | int | None = None
    provider: str | None = None
    model: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    _KNOWN_KEYS = ("user_id", "conversation_id", "message_id", "provider", "model")

    @classmethod
    def from_value(cls, value: "ExecutionContext | Mapping[str, Any] | None") -> "ExecutionContext":
        """Coerce None, a mapping or a context into an ExecutionContext.

        Raises:
            InvalidContextError: If value is of any other type or has non-string keys
        """
        if value is None:
            return cls()
        if isinstance(value, ExecutionContext):
            return value
        if not isinstance(value, Mapping):
            raise InvalidContextError(
                f"Execution context must be a mapping, got {type(value).__name__}"
            )
        if not all(isinstance(key, str) for key in value):
            raise InvalidContextError("Execution context keys must be strings")

        known = {key: value[key] for key in cls._KNOWN_KEYS if key in value}
        extra = {key: val for key, val in value.items() if key not in cls._KNOWN_KEYS}
        return cls(**known, extra=extra)

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a known field or an extra key."""
        if key in self._KNOWN_KEYS:
            return getattr(self, key)
        return self.extra.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        """Flatten the context into one dictionary."""
        data = {key: getattr(self, key) for key in self._KNOWN_KEYS}
        data.update(self.extra)
        return data


@dataclass
class ToolExecutionResult:
    """Uniform result record for one tool call."""

    call_id: str
    name: str
    status: ExecutionStatus
    result: Any = None
    error: str | None = None
    execution_mode: ExecutionMode | None = None
    duration_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert the result to a JSON-serializable dictionary."""
        return {
            "call_id": self.call_id,
            "name": self.name,
            "status": self.status.value,
            "result": self.result,
            "error": self.error,
            "execution_mode": self.execution_mode.value if self.execution_mode else None,
            "duration_ms": self.duration_ms,
        }


@dataclass
class DiscoveryReport:
    """Outcome of one discovery cycle."""

    sources_checked: int = 0
    sources_succeeded: int = 0
    sources_failed: int = 0
    tools_found: int = 0
    errors: list[str] = field(default_factory=list)
    collisions: list[str] = field(default_factory=list)
    discovered_at: str = ""
    from_cache: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert the report to a JSON-serializable dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DiscoveryReport":
        """Rebuild a report from its dictionary form."""
        return cls(
            sources_checked=data.get("sources_checked", 0),
            sources_succeeded=data.get("sources_succeeded", 0),
            sources_failed=data.get("sources_failed", 0),
            tools_found=data.get("tools_found", 0),
            errors=list(data.get("errors", [])),
            collisions=list(data.get("collisions", [])),
            discovered_at=data.get("discovered_at", ""),
            from_cache=data.get("from_cache", False),
        )
