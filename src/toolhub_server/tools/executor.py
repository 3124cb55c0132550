"""Tool executor.

This module provides the ToolExecutor class which handles:
- Normalizing requested tool calls
- Looking each call up in the tool registry
- Routing it to the immediate or background lane by execution mode
- Turning every outcome into a uniform ToolExecutionResult
- Recording execution statistics
"""

import asyncio
import logging
import time
from collections.abc import Mapping, Sequence
from typing import Any

from toolhub_server.errors import MalformedToolCallError, UnknownToolError
from toolhub_server.tools.lanes import BackgroundLane, ImmediateLane
from toolhub_server.tools.registry import ToolRegistry
from toolhub_server.tools.statistics import ExecutionStatistics
from toolhub_server.tools.types import (
    ExecutionContext,
    ExecutionMode,
    ExecutionStatus,
    ToolCallRequest,
    ToolDescriptor,
    ToolExecutionResult,
    generate_call_id,
)

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 3)


def _call_id_of(call: Any) -> str:
    call_id = getattr(call, "call_id", None)
    if call_id is None and isinstance(call, Mapping):
        call_id = call.get("id") or call.get("call_id")
    return call_id if isinstance(call_id, str) and call_id else generate_call_id()


def _name_of(call: Any) -> str:
    name = getattr(call, "name", None)
    if name is None and isinstance(call, Mapping):
        name = call.get("name")
    return name if isinstance(name, str) else ""


class ToolExecutor:
    """Routes tool calls to the execution lane matching each tool."""

    def __init__(
        self,
        registry: ToolRegistry,
        immediate_lane: ImmediateLane,
        background_lane: BackgroundLane,
        statistics: ExecutionStatistics | None = None,
        execute_concurrently: bool = True,
    ):
        """Initialize the ToolExecutor.

        Args:
            registry: Catalog used to resolve tool names
            immediate_lane: Lane for external tools
            background_lane: Lane for local events
            statistics: Collector for per-call statistics
            execute_concurrently: Run the calls of one batch concurrently
        """
        self.registry = registry
        self.immediate_lane = immediate_lane
        self.background_lane = background_lane
        self.statistics = statistics or ExecutionStatistics()
        self.execute_concurrently = execute_concurrently

    async def process_tool_calls(
        self,
        calls: Sequence[ToolCallRequest | Mapping[str, Any]],
        context: ExecutionContext | Mapping[str, Any] | None = None,
    ) -> list[ToolExecutionResult]:
        """Execute a batch of tool calls.

        Every call yields exactly one result, in the order of the input.
        Failures of individual calls (unknown tool, malformed payload,
        server error, timeout, enqueue failure) become error results and
        never abort the batch.

        Args:
            calls: ToolCallRequest objects or provider tool-call payloads
            context: Correlation data passed to the lanes unchanged

        Returns:
            One ToolExecutionResult per call

        Raises:
            InvalidContextError: If context is not a mapping, an
                                 ExecutionContext or None
        """
        execution_context = ExecutionContext.from_value(context)
        if not calls:
            return []

        tools = await self.registry.get_all_tools()
        logger.info(f"Processing {len(calls)} tool calls")

        if self.execute_concurrently:
            results = await asyncio.gather(
                *(self._execute(call, tools, execution_context) for call in calls)
            )
            return list(results)

        return [await self._execute(call, tools, execution_context) for call in calls]

    async def execute_tool_call(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        context: ExecutionContext | Mapping[str, Any] | None = None,
        call_id: str | None = None,
    ) -> ToolExecutionResult:
        """Execute a single tool call.

        Args:
            name: Tool name
            arguments: Tool arguments
            context: Correlation data passed to the lane unchanged
            call_id: Optional call id; generated when omitted

        Returns:
            The call's ToolExecutionResult
        """
        request = ToolCallRequest(
            name=name,
            arguments=dict(arguments or {}),
            call_id=call_id or generate_call_id(),
        )
        results = await self.process_tool_calls([request], context)
        return results[0]

    async def _execute(
        self,
        call: ToolCallRequest | Mapping[str, Any],
        tools: Mapping[str, ToolDescriptor],
        context: ExecutionContext,
    ) -> ToolExecutionResult:
        start = time.monotonic()
        try:
            return await self._route(call, tools, context, start)
        except Exception as e:
            logger.error(f"Tool call failed unexpectedly: {e}", exc_info=True)
            result = ToolExecutionResult(
                call_id=_call_id_of(call),
                name=_name_of(call),
                status=ExecutionStatus.ERROR,
                error=f"Tool call failed: {e}",
                duration_ms=_elapsed_ms(start),
            )
            self.statistics.record(result)
            return result

    async def _route(
        self,
        call: ToolCallRequest | Mapping[str, Any],
        tools: Mapping[str, ToolDescriptor],
        context: ExecutionContext,
        start: float,
    ) -> ToolExecutionResult:
        try:
            request = self._normalize(call)
        except MalformedToolCallError as e:
            logger.warning(f"Malformed tool call: {e}")
            result = ToolExecutionResult(
                call_id=e.call_id or generate_call_id(),
                name=e.name,
                status=ExecutionStatus.ERROR,
                error=str(e),
                duration_ms=_elapsed_ms(start),
            )
            self.statistics.record(result)
            return result

        descriptor = tools.get(request.name)
        if descriptor is None:
            logger.warning(f"Tool call {request.call_id} requested unknown tool '{request.name}'")
            result = ToolExecutionResult(
                call_id=request.call_id,
                name=request.name,
                status=ExecutionStatus.ERROR,
                error=str(UnknownToolError(request.name)),
                duration_ms=_elapsed_ms(start),
            )
            self.statistics.record(result)
            return result

        if descriptor.execution_mode is ExecutionMode.IMMEDIATE:
            result = await self._run_immediate(request, descriptor, context, start)
        else:
            result = self._run_background(request, descriptor, context, start)

        self.statistics.record(result, descriptor.type)
        return result

    def _normalize(self, call: ToolCallRequest | Mapping[str, Any]) -> ToolCallRequest:
        if isinstance(call, ToolCallRequest):
            if not isinstance(call.name, str):
                raise MalformedToolCallError(
                    f"Tool name must be a string, got {type(call.name).__name__}",
                    call_id=call.call_id if isinstance(call.call_id, str) else "",
                )
            return call
        if isinstance(call, Mapping):
            return ToolCallRequest.from_payload(call)
        raise MalformedToolCallError(
            f"Tool call must be a mapping, got {type(call).__name__}"
        )

    async def _run_immediate(
        self,
        request: ToolCallRequest,
        descriptor: ToolDescriptor,
        context: ExecutionContext,
        start: float,
    ) -> ToolExecutionResult:
        try:
            output = await self.immediate_lane.invoke(descriptor, request.arguments, context)
        except Exception as e:
            logger.error(f"Tool {request.name} failed on server {descriptor.source}: {e}")
            return ToolExecutionResult(
                call_id=request.call_id,
                name=request.name,
                status=ExecutionStatus.ERROR,
                error=str(e),
                execution_mode=ExecutionMode.IMMEDIATE,
                duration_ms=_elapsed_ms(start),
            )

        duration_ms = _elapsed_ms(start)
        logger.debug(f"Tool {request.name} completed in {duration_ms}ms")
        return ToolExecutionResult(
            call_id=request.call_id,
            name=request.name,
            status=ExecutionStatus.SUCCESS,
            result=output,
            execution_mode=ExecutionMode.IMMEDIATE,
            duration_ms=duration_ms,
        )

    def _run_background(
        self,
        request: ToolCallRequest,
        descriptor: ToolDescriptor,
        context: ExecutionContext,
        start: float,
    ) -> ToolExecutionResult:
        try:
            ack = self.background_lane.enqueue(
                descriptor, request.arguments, context, request.call_id
            )
        except Exception as e:
            logger.error(f"Failed to enqueue local event {request.name}: {e}")
            return ToolExecutionResult(
                call_id=request.call_id,
                name=request.name,
                status=ExecutionStatus.ERROR,
                error=f"Failed to queue '{request.name}': {e}",
                execution_mode=ExecutionMode.BACKGROUND,
                duration_ms=_elapsed_ms(start),
            )

        return ToolExecutionResult(
            call_id=request.call_id,
            name=request.name,
            status=ExecutionStatus.QUEUED,
            result=ack,
            execution_mode=ExecutionMode.BACKGROUND,
            duration_ms=_elapsed_ms(start),
        )

    async def validate_tool_parameters(self, name: str, arguments: Mapping[str, Any]) -> list[str]:
        """List required parameters missing from a call's arguments.

        Only the schema's "required" list is checked. The result is advisory;
        process_tool_calls() does not reject calls on it.

        Raises:
            UnknownToolError: If the tool is not in the catalog
        """
        descriptor = await self.registry.get_tool(name)
        if descriptor is None:
            raise UnknownToolError(name)

        required = descriptor.parameters.get("required") or []
        return [param for param in required if param not in arguments]

    def get_execution_stats(self) -> dict[str, Any]:
        """Snapshot of the execution statistics."""
        return self.statistics.snapshot()
