"""Tool catalog, execution routing and statistics.

This package contains the unified tool registry (registry), the immediate
and background execution lanes (lanes), the executor that routes calls
between them (executor), execution statistics (statistics) and the provider
schema export (schema). Only the shared data types are re-exported here;
the service modules depend on the discovery package, which itself depends
on these types.
"""

from toolhub_server.tools.types import (
    DiscoveryReport,
    ExecutionContext,
    ExecutionMode,
    ExecutionStatus,
    ToolCallRequest,
    ToolDescriptor,
    ToolExecutionResult,
    ToolType,
)

__all__ = [
    "DiscoveryReport",
    "ExecutionContext",
    "ExecutionMode",
    "ExecutionStatus",
    "ToolCallRequest",
    "ToolDescriptor",
    "ToolExecutionResult",
    "ToolType",
]
