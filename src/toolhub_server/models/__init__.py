"""Pydantic models for API request and response schemas.

This package contains all Pydantic models used for validating and
serializing API requests and responses across all endpoints.
"""

from toolhub_server.models.health import HealthResponse
from toolhub_server.models.servers import (
    ServerHealthResponse,
    ServerListItem,
    ServerListResponse,
)
from toolhub_server.models.tools import (
    DiscoverRequest,
    DiscoveryReportResponse,
    ExecuteToolsRequest,
    ExecuteToolsResponse,
    ExecutionStatsResponse,
    ToolDefinitionsResponse,
    ToolExecutionResultResponse,
    ToolListResponse,
    ToolNamesRequest,
    ToolResponse,
    ToolStatsResponse,
    ValidateToolsResponse,
)

__all__ = [
    "DiscoverRequest",
    "DiscoveryReportResponse",
    "ExecuteToolsRequest",
    "ExecuteToolsResponse",
    "ExecutionStatsResponse",
    "HealthResponse",
    "ServerHealthResponse",
    "ServerListItem",
    "ServerListResponse",
    "ToolDefinitionsResponse",
    "ToolExecutionResultResponse",
    "ToolListResponse",
    "ToolNamesRequest",
    "ToolResponse",
    "ToolStatsResponse",
    "ValidateToolsResponse",
]
