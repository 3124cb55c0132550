"""Pydantic models for external tool server endpoints."""

from pydantic import BaseModel, Field


class ServerListItem(BaseModel):
    """A configured external tool server."""

    name: str = Field(..., description="Server name from the servers file")
    transport: str = Field(..., description="command or http")
    enabled: bool = Field(..., description="Whether the server is queried")
    configured: bool = Field(..., description="Whether the server has what its transport needs")
    display_name: str | None = Field(None, description="Human-readable name")
    description: str | None = Field(None, description="Server description")
    missing_env: list[str] = Field(
        default_factory=list, description="Environment variables the server needs but are unset"
    )


class ServerListResponse(BaseModel):
    """Response body for GET /api/v1/servers."""

    servers: list[ServerListItem] = Field(default_factory=list, description="Configured servers")


class ServerHealthResponse(BaseModel):
    """Response body for GET /api/v1/servers/{name}/health."""

    name: str = Field(..., description="Server name")
    status: str = Field(..., description="healthy, error or disabled")
    message: str = Field(..., description="Human-readable status")
    response_time_ms: float | None = Field(None, description="Round-trip time of the health check")
    version: str | None = Field(None, description="Version reported by the server")
