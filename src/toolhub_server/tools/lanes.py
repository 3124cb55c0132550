"""Execution lanes.

- ImmediateLane calls an external tool server and waits for the answer,
  bounded by a timeout
- BackgroundLane durably enqueues a local event call for a worker and
  returns an acknowledgment right away
"""

import asyncio
import logging
from typing import Any

from toolhub_server.discovery.external import ExternalServerAdapter
from toolhub_server.errors import EnqueueError, ToolExecutionError
from toolhub_server.storage.queue import FileJobQueue
from toolhub_server.tools.types import ExecutionContext, ToolDescriptor

logger = logging.getLogger(__name__)

DEFAULT_IMMEDIATE_TIMEOUT = 30.0


class ImmediateLane:
    """Synchronous request/response path to external tool servers."""

    def __init__(
        self,
        external: ExternalServerAdapter,
        timeout: float = DEFAULT_IMMEDIATE_TIMEOUT,
    ):
        self.external = external
        self.timeout = timeout

    async def invoke(
        self,
        descriptor: ToolDescriptor,
        arguments: dict[str, Any],
        context: ExecutionContext,
    ) -> Any:
        """Call the tool on the server that advertised it.

        Args:
            descriptor: Catalog entry of the tool
            arguments: Tool arguments
            context: Caller context (only logged here)

        Returns:
            Whatever the server returned

        Raises:
            ToolExecutionError: If the call fails or exceeds the timeout
        """
        logger.debug(
            f"Executing external tool {descriptor.name} on server {descriptor.source} "
            f"(conversation={context.conversation_id})"
        )
        try:
            return await asyncio.wait_for(
                self.external.invoke(descriptor.source, descriptor.name, arguments),
                self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise ToolExecutionError(
                f"Tool '{descriptor.name}' timed out after {self.timeout}s",
                name=descriptor.name,
            ) from e


class BackgroundLane:
    """Durable hand-off of local event calls to background workers."""

    def __init__(self, queue: FileJobQueue):
        self.queue = queue

    def enqueue(
        self,
        descriptor: ToolDescriptor,
        arguments: dict[str, Any],
        context: ExecutionContext,
        call_id: str,
    ) -> dict[str, Any]:
        """Enqueue one local event call.

        The context keys "queue" and "timeout" select the target queue and
        override the job timeout.

        Args:
            descriptor: Catalog entry of the local event
            arguments: Event arguments
            context: Caller context, stored with the job unchanged
            call_id: Id of the originating tool call

        Returns:
            Acknowledgment with job_id, queue, status and message

        Raises:
            EnqueueError: If the queue does not accept the job
        """
        queue_name = context.get("queue")
        timeout = context.get("timeout")
        if timeout is not None:
            try:
                timeout = int(timeout)
            except (TypeError, ValueError) as e:
                raise EnqueueError(f"Invalid job timeout: {timeout!r}") from e

        tags = ["ai-function", f"function:{descriptor.name}"]
        if context.user_id is not None:
            tags.append(f"user:{context.user_id}")

        job = self.queue.enqueue(
            {
                "name": descriptor.name,
                "listener": getattr(descriptor.origin, "listener", None),
                "arguments": arguments,
                "context": context.to_dict(),
                "call_id": call_id,
            },
            queue=queue_name,
            timeout=timeout,
            tags=tags,
        )

        return {
            "job_id": job.job_id,
            "queue": job.queue,
            "status": "queued",
            "message": f"Function '{descriptor.name}' has been queued for background processing",
        }
