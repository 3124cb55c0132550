"""Execution statistics collector.

Counts tool calls by type, execution mode and status and keeps duration
aggregates. Updates may come from concurrent calls, so every access goes
through one lock.
"""

import threading
from typing import Any

from toolhub_server.tools.types import (
    ExecutionMode,
    ExecutionStatus,
    ToolExecutionResult,
    ToolType,
)

UNKNOWN_KEY = "unknown"


class ExecutionStatistics:
    """Thread-safe counters over executed tool calls."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reset_counters()

    def _reset_counters(self) -> None:
        self._total = 0
        self._by_type: dict[str, int] = {tool_type.value: 0 for tool_type in ToolType}
        self._by_mode: dict[str, int] = {mode.value: 0 for mode in ExecutionMode}
        self._by_status: dict[str, int] = {status.value: 0 for status in ExecutionStatus}
        self._duration_count = 0
        self._duration_total = 0.0
        self._duration_min: float | None = None
        self._duration_max: float | None = None

    def record(self, result: ToolExecutionResult, tool_type: ToolType | None = None) -> None:
        """Record one finished call.

        Calls to unknown tools have neither a type nor a mode and are
        counted under "unknown".

        Args:
            result: The call's result record
            tool_type: Type of the tool, if it was found in the catalog
        """
        type_key = tool_type.value if tool_type else UNKNOWN_KEY
        mode_key = result.execution_mode.value if result.execution_mode else UNKNOWN_KEY

        with self._lock:
            self._total += 1
            self._by_type[type_key] = self._by_type.get(type_key, 0) + 1
            self._by_mode[mode_key] = self._by_mode.get(mode_key, 0) + 1
            self._by_status[result.status.value] += 1

            duration = result.duration_ms
            self._duration_count += 1
            self._duration_total += duration
            if self._duration_min is None or duration < self._duration_min:
                self._duration_min = duration
            if self._duration_max is None or duration > self._duration_max:
                self._duration_max = duration

    def snapshot(self) -> dict[str, Any]:
        """Return a consistent copy of all counters."""
        with self._lock:
            average = (
                self._duration_total / self._duration_count if self._duration_count else 0.0
            )
            return {
                "total_executions": self._total,
                "by_type": dict(self._by_type),
                "by_execution_mode": dict(self._by_mode),
                "by_status": dict(self._by_status),
                "duration_ms": {
                    "count": self._duration_count,
                    "total": round(self._duration_total, 3),
                    "average": round(average, 3),
                    "min": self._duration_min,
                    "max": self._duration_max,
                },
            }

    def reset(self) -> None:
        with self._lock:
            self._reset_counters()
