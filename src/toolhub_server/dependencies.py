"""Dependency injection providers for FastAPI endpoints.

This module provides FastAPI dependency functions that are used across
multiple routers to inject the settings and the services created at startup.
"""

from functools import lru_cache
from typing import Any

from fastapi import HTTPException, Request

from toolhub_server.config import ToolhubServerSettings
from toolhub_server.discovery import ExternalServerAdapter
from toolhub_server.tools.executor import ToolExecutor
from toolhub_server.tools.registry import ToolRegistry
from toolhub_server.tools.schema import ToolSchemaService


@lru_cache
def get_settings() -> ToolhubServerSettings:
    """Get the application settings instance.

    This function is cached so that the same settings instance is reused
    across all requests. Settings are loaded from environment variables
    with the TOOLHUB_ prefix.

    Returns:
        ToolhubServerSettings: The application configuration settings.
    """
    return ToolhubServerSettings()


def _get_state(request: Request, attribute: str, label: str) -> Any:
    if not hasattr(request.app.state, attribute):
        raise HTTPException(
            status_code=503,
            detail=f"{label} not initialized",
        )
    return getattr(request.app.state, attribute)


def get_tool_registry(request: Request) -> ToolRegistry:
    """Get the tool registry from app state.

    Args:
        request: The FastAPI request object.

    Returns:
        ToolRegistry: The registry created during application startup.

    Raises:
        HTTPException: If the registry is not initialized (503 Service Unavailable).
    """
    return _get_state(request, "tool_registry", "Tool registry")


def get_tool_executor(request: Request) -> ToolExecutor:
    """Get the tool executor from app state.

    Raises:
        HTTPException: If the executor is not initialized (503 Service Unavailable).
    """
    return _get_state(request, "tool_executor", "Tool executor")


def get_tool_schema_service(request: Request) -> ToolSchemaService:
    """Get the tool schema service from app state.

    Raises:
        HTTPException: If the service is not initialized (503 Service Unavailable).
    """
    return _get_state(request, "tool_schema_service", "Tool schema service")


def get_external_servers(request: Request) -> ExternalServerAdapter:
    """Get the external server adapter from app state.

    Raises:
        HTTPException: If the adapter is not initialized (503 Service Unavailable).
    """
    return _get_state(request, "external_servers", "External server adapter")
