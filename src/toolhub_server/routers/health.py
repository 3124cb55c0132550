"""Health check endpoint router."""

import logging

from fastapi import APIRouter, Request

from toolhub_server import __version__
from toolhub_server.models.health import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Health check endpoint.

    Returns the current health status and version of the toolhub-server,
    along with the number of configured servers and cached tools once the
    services are initialized. Does not trigger discovery.

    Args:
        request: The FastAPI request object.

    Returns:
        HealthResponse: Health status and version information.
    """
    servers_configured = None
    tools_cached = None

    if hasattr(request.app.state, "external_servers"):
        servers_configured = len(request.app.state.external_servers.server_names())

    if hasattr(request.app.state, "tool_registry"):
        tools_cached = request.app.state.tool_registry.cached_tool_count

    logger.debug(f"Health check: servers={servers_configured}, tools={tools_cached}")

    return HealthResponse(
        status="ok",
        version=__version__,
        servers_configured=servers_configured,
        tools_cached=tools_cached,
    )
