"""Unit tests for the execution statistics collector."""

import threading

from toolhub_server.tools.statistics import ExecutionStatistics
from toolhub_server.tools.types import (
    ExecutionMode,
    ExecutionStatus,
    ToolExecutionResult,
    ToolType,
)


def result(status, mode=None, duration_ms=1.0):
    return ToolExecutionResult(
        call_id="call_x",
        name="x",
        status=status,
        execution_mode=mode,
        duration_ms=duration_ms,
    )


def test_empty_snapshot():
    """Test the initial counters."""
    snapshot = ExecutionStatistics().snapshot()

    assert snapshot["total_executions"] == 0
    assert snapshot["by_type"] == {"external_tool": 0, "local_event": 0}
    assert snapshot["by_status"] == {"success": 0, "queued": 0, "error": 0}
    assert snapshot["duration_ms"]["average"] == 0.0
    assert snapshot["duration_ms"]["min"] is None


def test_record_counts_and_durations():
    """Test counting by type, mode and status."""
    stats = ExecutionStatistics()
    stats.record(result(ExecutionStatus.SUCCESS, ExecutionMode.IMMEDIATE, 10.0), ToolType.EXTERNAL_TOOL)
    stats.record(result(ExecutionStatus.QUEUED, ExecutionMode.BACKGROUND, 2.0), ToolType.LOCAL_EVENT)
    stats.record(result(ExecutionStatus.ERROR, None, 0.0))

    snapshot = stats.snapshot()

    assert snapshot["total_executions"] == 3
    assert snapshot["by_type"] == {"external_tool": 1, "local_event": 1, "unknown": 1}
    assert snapshot["by_execution_mode"] == {"immediate": 1, "background": 1, "unknown": 1}
    assert snapshot["by_status"] == {"success": 1, "queued": 1, "error": 1}
    assert snapshot["duration_ms"]["count"] == 3
    assert snapshot["duration_ms"]["total"] == 12.0
    assert snapshot["duration_ms"]["average"] == 4.0
    assert snapshot["duration_ms"]["min"] == 0.0
    assert snapshot["duration_ms"]["max"] == 10.0


def test_reset():
    """Test clearing the counters."""
    stats = ExecutionStatistics()
    stats.record(result(ExecutionStatus.SUCCESS, ExecutionMode.IMMEDIATE), ToolType.EXTERNAL_TOOL)

    stats.reset()

    assert stats.snapshot()["total_executions"] == 0


def test_concurrent_records_are_all_counted():
    """Test that updates from many threads are not lost."""
    stats = ExecutionStatistics()

    def worker():
        for _ in range(500):
            stats.record(
                result(ExecutionStatus.SUCCESS, ExecutionMode.IMMEDIATE), ToolType.EXTERNAL_TOOL
            )

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    snapshot = stats.snapshot()
    assert snapshot["total_executions"] == 4000
    assert snapshot["by_status"]["success"] == 4000
