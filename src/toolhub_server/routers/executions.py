"""Execution statistics endpoint router."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from toolhub_server.dependencies import get_tool_executor
from toolhub_server.models.tools import ExecutionStatsResponse
from toolhub_server.tools.executor import ToolExecutor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/executions", tags=["executions"])


@router.get(
    "/stats",
    response_model=ExecutionStatsResponse,
    summary="Get execution statistics",
)
async def get_execution_stats(
    executor: Annotated[ToolExecutor, Depends(get_tool_executor)],
) -> ExecutionStatsResponse:
    """Counts of executed tool calls by type, mode and status, with durations."""
    return ExecutionStatsResponse(**executor.get_execution_stats())
