"""External tool servers router.

This module provides REST API endpoints for:
- Listing the configured external tool servers
- Checking the health of one server
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from toolhub_server.dependencies import get_external_servers
from toolhub_server.discovery import ExternalServerAdapter
from toolhub_server.models.servers import (
    ServerHealthResponse,
    ServerListItem,
    ServerListResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/servers", tags=["servers"])


@router.get(
    "",
    response_model=ServerListResponse,
    summary="List external tool servers",
)
async def list_servers(
    external: Annotated[ExternalServerAdapter, Depends(get_external_servers)],
) -> ServerListResponse:
    """List configured servers in configuration order.

    Args:
        external: Injected ExternalServerAdapter

    Returns:
        Configured servers with their enabled and configured state
    """
    items = []
    for name in external.server_names():
        config = external.get_server(name).config
        items.append(
            ServerListItem(
                name=config.name,
                transport=config.transport,
                enabled=config.enabled,
                configured=config.is_configured(),
                display_name=config.display_name,
                description=config.description,
                missing_env=config.missing_env(),
            )
        )
    return ServerListResponse(servers=items)


@router.get(
    "/{server_name}/health",
    response_model=ServerHealthResponse,
    summary="Check a server's health",
)
async def check_server_health(
    server_name: str,
    external: Annotated[ExternalServerAdapter, Depends(get_external_servers)],
) -> ServerHealthResponse:
    """Probe one server.

    An unhealthy server is reported in the body with status "error".

    Raises:
        HTTPException: 404 if the server is not configured
    """
    if external.get_server(server_name) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Server '{server_name}' not found",
        )

    health = await external.check_health(server_name)
    logger.debug(f"Health of server {server_name}: {health['status']}")
    return ServerHealthResponse(name=server_name, **health)
