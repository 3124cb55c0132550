"""Pydantic models for tool catalog and execution API requests and responses."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DiscoverRequest(BaseModel):
    """Request body for running a discovery cycle."""

    force: bool = Field(False, description="Bypass the catalog cache")
    source: str | None = Field(
        None,
        description="Only re-discover this source (server name or 'local_events')",
    )


class DiscoveryReportResponse(BaseModel):
    """Outcome of a discovery cycle."""

    sources_checked: int = Field(..., description="Number of sources queried")
    sources_succeeded: int = Field(..., description="Number of sources that answered")
    sources_failed: int = Field(..., description="Number of sources that failed")
    tools_found: int = Field(..., description="Tools contributed by succeeded sources")
    errors: list[str] = Field(default_factory=list, description="One message per failed source")
    collisions: list[str] = Field(
        default_factory=list, description="Tool names provided by more than one source"
    )
    discovered_at: str = Field("", description="ISO 8601 timestamp of the discovery")
    from_cache: bool = Field(False, description="Whether the cached catalog was reused")

    model_config = ConfigDict(from_attributes=True)


class ToolOriginResponse(BaseModel):
    """Server info for external tools, listener identity for local events."""

    name: str | None = Field(None, description="Server name (external tools)")
    type: str | None = Field(None, description="Server transport type (external tools)")
    version: str | None = Field(None, description="Server version (external tools)")
    listener: str | None = Field(None, description="Listener import path (local events)")


class ToolResponse(BaseModel):
    """A catalog entry."""

    name: str = Field(..., description="Unique tool name")
    description: str = Field(..., description="Tool description")
    parameters: dict[str, Any] = Field(..., description="JSON schema of the arguments")
    type: str = Field(..., description="external_tool or local_event")
    execution_mode: str = Field(..., description="immediate or background")
    source: str = Field(..., description="Server name or 'local_events'")
    requires_auth: bool = Field(False, description="Whether callers need credentials")
    category: str | None = Field(None, description="Optional grouping")
    origin: ToolOriginResponse = Field(..., description="Where the tool comes from")


class ToolListResponse(BaseModel):
    """Response body for GET /api/v1/tools."""

    tools: list[ToolResponse] = Field(default_factory=list, description="Matching tools")
    count: int = Field(..., description="Number of matching tools")


class ToolStatsResponse(BaseModel):
    """Catalog statistics."""

    total: int = Field(..., description="Number of tools in the catalog")
    by_type: dict[str, int] = Field(default_factory=dict, description="Count per tool type")
    by_execution_mode: dict[str, int] = Field(
        default_factory=dict, description="Count per execution mode"
    )
    by_category: dict[str, int] = Field(default_factory=dict, description="Count per category")
    by_source: dict[str, int] = Field(default_factory=dict, description="Count per source")


class ToolNamesRequest(BaseModel):
    """Request body carrying a list of tool names."""

    tools: list[str] = Field(..., description="Requested tool names")


class ValidateToolsResponse(BaseModel):
    """Result of pre-flight validation."""

    valid: bool = Field(..., description="Whether every requested tool exists")
    missing: list[str] = Field(default_factory=list, description="Names not in the catalog")


class ToolDefinitionsResponse(BaseModel):
    """Provider tool definitions for the requested tools."""

    tools: list[dict[str, Any]] = Field(
        default_factory=list, description="Ollama tool definitions"
    )


class ExecuteToolsRequest(BaseModel):
    """Request body for executing a batch of tool calls."""

    calls: list[dict[str, Any]] = Field(
        ...,
        description=(
            "Tool calls, either {id, name, arguments} or "
            "{id, function: {name, arguments}}"
        ),
    )
    context: dict[str, Any] = Field(
        default_factory=dict,
        description="Correlation data (user_id, conversation_id, message_id, provider, model, ...)",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "calls": [
                    {"id": "call_1", "name": "search_docs", "arguments": {"query": "python"}},
                    {"id": "call_2", "name": "send_email", "arguments": {"to": "a@b.c"}},
                ],
                "context": {"user_id": 42, "conversation_id": 7},
            }
        }
    )


class ToolExecutionResultResponse(BaseModel):
    """Result record for one tool call."""

    call_id: str = Field(..., description="Id of the originating call")
    name: str = Field(..., description="Requested tool name")
    status: str = Field(..., description="success, queued or error")
    result: Any = Field(None, description="Tool output or queue acknowledgment")
    error: str | None = Field(None, description="Error message for failed calls")
    execution_mode: str | None = Field(
        None, description="immediate or background (None for unknown tools)"
    )
    duration_ms: float = Field(0.0, description="Wall-clock time spent on the call")


class ExecuteToolsResponse(BaseModel):
    """Response body for POST /api/v1/tools/execute."""

    results: list[ToolExecutionResultResponse] = Field(
        default_factory=list, description="One result per call, in request order"
    )


class DurationStats(BaseModel):
    """Aggregate call durations in milliseconds."""

    count: int = Field(0, description="Number of recorded durations")
    total: float = Field(0.0, description="Sum of durations")
    average: float = Field(0.0, description="Mean duration")
    min: float | None = Field(None, description="Shortest duration")
    max: float | None = Field(None, description="Longest duration")


class ExecutionStatsResponse(BaseModel):
    """Response body for GET /api/v1/executions/stats."""

    total_executions: int = Field(..., description="Number of executed calls")
    by_type: dict[str, int] = Field(default_factory=dict, description="Calls per tool type")
    by_execution_mode: dict[str, int] = Field(
        default_factory=dict, description="Calls per execution mode"
    )
    by_status: dict[str, int] = Field(default_factory=dict, description="Calls per status")
    duration_ms: DurationStats = Field(..., description="Duration aggregates")
