"""Durable directory-backed job queue.

Background tool calls are handed to workers through this queue. Each job is
a JSON file under <queue_dir>/<queue_name>/<job_id>.json, written atomically
so a job either exists completely or not at all and survives a restart.
toolhub-server only produces jobs; consuming them is the worker's concern.
"""

import json
import logging
import os
import re
import uuid
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from toolhub_server.errors import EnqueueError
from toolhub_server.tools.types import utc_now_iso

logger = logging.getLogger(__name__)

DEFAULT_QUEUE = "ai-functions"
DEFAULT_MAX_TRIES = 3
DEFAULT_JOB_TIMEOUT = 300

_QUEUE_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


@dataclass
class Job:
    """A unit of work accepted by the queue."""

    job_id: str
    queue: str
    payload: dict[str, Any]
    enqueued_at: str
    attempts: int = 0
    max_tries: int = DEFAULT_MAX_TRIES
    timeout: int = DEFAULT_JOB_TIMEOUT
    tags: list[str] = field(default_factory=list)


class FileJobQueue:
    """Producer side of a durable at-least-once job queue."""

    def __init__(
        self,
        queue_dir: Path,
        default_queue: str = DEFAULT_QUEUE,
        max_tries: int = DEFAULT_MAX_TRIES,
        timeout: int = DEFAULT_JOB_TIMEOUT,
    ):
        """Initialize the queue.

        Args:
            queue_dir: Root directory; one subdirectory per queue name
            default_queue: Queue used when enqueue() is given none
            max_tries: Attempts a worker may make before giving up
            timeout: Seconds a worker may spend on one job
        """
        self.queue_dir = queue_dir
        self.default_queue = default_queue
        self.max_tries = max_tries
        self.timeout = timeout

    def _queue_path(self, queue: str) -> Path:
        if not _QUEUE_NAME.match(queue):
            raise EnqueueError(f"Invalid queue name: '{queue}'")
        return self.queue_dir / queue

    def enqueue(
        self,
        payload: dict[str, Any],
        queue: str | None = None,
        timeout: int | None = None,
        tags: list[str] | None = None,
    ) -> Job:
        """Durably store a job.

        Args:
            payload: JSON-serializable job body
            queue: Target queue (default: the configured default queue)
            timeout: Per-job timeout override in seconds
            tags: Free-form labels for monitoring

        Returns:
            The stored Job

        Raises:
            EnqueueError: If the job cannot be serialized or written
        """
        queue_name = queue or self.default_queue
        queue_path = self._queue_path(queue_name)

        job = Job(
            job_id=uuid.uuid4().hex,
            queue=queue_name,
            payload=payload,
            enqueued_at=utc_now_iso(),
            max_tries=self.max_tries,
            timeout=timeout if timeout is not None else self.timeout,
            tags=list(tags or []),
        )

        file_path = queue_path / f"{job.job_id}.json"
        tmp_path = queue_path / f".{job.job_id}.tmp"

        try:
            data = json.dumps(asdict(job), indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise EnqueueError(f"Job payload is not serializable: {e}") from e

        try:
            queue_path.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, file_path)
        except OSError as e:
            raise EnqueueError(f"Failed to write job to queue '{queue_name}': {e}") from e

        logger.info(f"Enqueued job {job.job_id} on queue '{queue_name}'")
        return job

    def pending(self, queue: str | None = None) -> list[Job]:
        """List jobs waiting in a queue, oldest first."""
        queue_path = self._queue_path(queue or self.default_queue)
        if not queue_path.exists():
            return []

        jobs: list[Job] = []
        for file_path in queue_path.glob("*.json"):
            try:
                with open(file_path, "r", encoding="utf-8") as f:
                    jobs.append(Job(**json.load(f)))
            except Exception as e:
                logger.warning(f"Failed to read job file {file_path.name}: {e}")
                continue

        jobs.sort(key=lambda job: job.enqueued_at)
        return jobs

    def size(self, queue: str | None = None) -> int:
        """Number of jobs waiting in a queue."""
        queue_path = self._queue_path(queue or self.default_queue)
        if not queue_path.exists():
            return 0
        return sum(1 for _ in queue_path.glob("*.json"))
