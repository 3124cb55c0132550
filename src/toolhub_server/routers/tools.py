"""Tools router for the unified tool catalog.

This module provides REST API endpoints for:
- Running discovery (all sources or one)
- Listing, filtering and searching tools
- Catalog statistics
- Pre-flight validation of tool names
- Exporting provider tool definitions
- Executing batches of tool calls
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from toolhub_server.dependencies import (
    get_tool_executor,
    get_tool_registry,
    get_tool_schema_service,
)
from toolhub_server.errors import InvalidContextError, UnknownToolsError
from toolhub_server.models.tools import (
    DiscoverRequest,
    DiscoveryReportResponse,
    ExecuteToolsRequest,
    ExecuteToolsResponse,
    ToolDefinitionsResponse,
    ToolExecutionResultResponse,
    ToolListResponse,
    ToolNamesRequest,
    ToolResponse,
    ToolStatsResponse,
    ValidateToolsResponse,
)
from toolhub_server.tools.executor import ToolExecutor
from toolhub_server.tools.registry import ToolRegistry
from toolhub_server.tools.schema import ToolSchemaService
from toolhub_server.tools.types import ExecutionMode, ToolDescriptor, ToolType

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/tools", tags=["tools"])


def _to_response(descriptor: ToolDescriptor) -> ToolResponse:
    return ToolResponse.model_validate(descriptor.to_dict())


@router.post(
    "/discover",
    response_model=DiscoveryReportResponse,
    summary="Run a discovery cycle",
)
async def discover_tools(
    request: DiscoverRequest,
    registry: Annotated[ToolRegistry, Depends(get_tool_registry)],
) -> DiscoveryReportResponse:
    """Discover tools from all sources, or from one named source.

    Failing sources are reported in the response body, never as an HTTP
    error.

    Args:
        request: Discovery options
        registry: Injected ToolRegistry

    Returns:
        The discovery report
    """
    try:
        report = await registry.refresh(force=request.force, source=request.source)
        return DiscoveryReportResponse.model_validate(report.to_dict())
    except Exception as e:
        logger.error(f"Discovery failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Discovery failed: {str(e)}",
        )


@router.get(
    "",
    response_model=ToolListResponse,
    summary="List tools",
)
async def list_tools(
    registry: Annotated[ToolRegistry, Depends(get_tool_registry)],
    type: Annotated[ToolType | None, Query(description="Filter by tool type")] = None,
    mode: Annotated[ExecutionMode | None, Query(description="Filter by execution mode")] = None,
    q: Annotated[str | None, Query(description="Search names and descriptions")] = None,
) -> ToolListResponse:
    """List the catalog, optionally filtered by type, mode and search text.

    Args:
        registry: Injected ToolRegistry
        type: Optional tool type filter
        mode: Optional execution mode filter
        q: Optional case-insensitive search text

    Returns:
        Matching tools sorted by name
    """
    if q:
        tools = await registry.search_tools(q)
    else:
        tools = await registry.get_all_tools()

    matches = [
        tool
        for tool in tools.values()
        if (type is None or tool.type is type) and (mode is None or tool.execution_mode is mode)
    ]
    matches.sort(key=lambda tool: tool.name)

    return ToolListResponse(
        tools=[_to_response(tool) for tool in matches],
        count=len(matches),
    )


@router.get(
    "/stats",
    response_model=ToolStatsResponse,
    summary="Get catalog statistics",
)
async def get_tool_stats(
    registry: Annotated[ToolRegistry, Depends(get_tool_registry)],
) -> ToolStatsResponse:
    """Count the catalog by type, execution mode, category and source."""
    stats = await registry.get_stats()
    return ToolStatsResponse(**stats)


@router.post(
    "/validate",
    response_model=ValidateToolsResponse,
    summary="Validate tool names",
)
async def validate_tools(
    request: ToolNamesRequest,
    registry: Annotated[ToolRegistry, Depends(get_tool_registry)],
) -> ValidateToolsResponse:
    """Check that every requested tool exists in the catalog.

    Args:
        request: Tool names to check
        registry: Injected ToolRegistry

    Returns:
        Whether all tools exist, and which ones are missing
    """
    missing = await registry.validate_tool_names(request.tools)
    return ValidateToolsResponse(valid=not missing, missing=missing)


@router.post(
    "/definitions",
    response_model=ToolDefinitionsResponse,
    summary="Build provider tool definitions",
)
async def build_tool_definitions(
    request: ToolNamesRequest,
    schema_service: Annotated[ToolSchemaService, Depends(get_tool_schema_service)],
) -> ToolDefinitionsResponse:
    """Build Ollama tool definitions for the requested tools.

    Args:
        request: Tool names to export
        schema_service: Injected ToolSchemaService

    Returns:
        One definition per requested tool

    Raises:
        HTTPException: 404 if any requested tool is unknown
    """
    try:
        definitions = await schema_service.build_tool_definitions(request.tools)
    except UnknownToolsError as e:
        logger.info(f"Tool definitions requested for unknown tools: {e.missing}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": str(e), "missing": e.missing},
        )

    return ToolDefinitionsResponse(
        tools=[definition.model_dump(exclude_none=True) for definition in definitions]
    )


@router.post(
    "/execute",
    response_model=ExecuteToolsResponse,
    summary="Execute tool calls",
)
async def execute_tools(
    request: ExecuteToolsRequest,
    executor: Annotated[ToolExecutor, Depends(get_tool_executor)],
) -> ExecuteToolsResponse:
    """Execute a batch of tool calls.

    External tools run now and return their output; local events are
    queued and return an acknowledgment. Per-call failures are reported in
    the result list, one result per call, in request order.

    Args:
        request: Tool calls and execution context
        executor: Injected ToolExecutor

    Returns:
        The execution results

    Raises:
        HTTPException: 400 if the context is invalid
    """
    try:
        results = await executor.process_tool_calls(request.calls, request.context)
    except InvalidContextError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ExecuteToolsResponse(
        results=[ToolExecutionResultResponse(**result.to_dict()) for result in results]
    )


@router.get(
    "/{tool_name}",
    response_model=ToolResponse,
    summary="Get a tool",
)
async def get_tool(
    tool_name: str,
    registry: Annotated[ToolRegistry, Depends(get_tool_registry)],
) -> ToolResponse:
    """Get a single catalog entry.

    Raises:
        HTTPException: 404 if the tool is not in the catalog
    """
    descriptor = await registry.get_tool(tool_name)
    if descriptor is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tool '{tool_name}' not found",
        )
    return _to_response(descriptor)
