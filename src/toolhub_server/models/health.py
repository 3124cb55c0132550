"""Health check response model."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response model for the health check endpoint.

    Attributes:
        status: Health status indicator ("ok" or "error").
        version: The version of toolhub-server.
        servers_configured: Number of configured external tool servers.
        tools_cached: Number of tools in the current in-memory catalog.
    """

    status: str = Field(..., description="Health status of the service")
    version: str = Field(..., description="Version of toolhub-server")
    servers_configured: int | None = Field(
        default=None,
        description="Number of configured external tool servers",
    )
    tools_cached: int | None = Field(
        default=None,
        description="Number of tools in the in-memory catalog (None before the first discovery)",
    )
