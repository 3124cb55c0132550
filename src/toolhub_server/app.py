"""FastAPI application factory and lifespan management.

This module contains the create_app() factory function that creates and configures
the FastAPI application instance, including lifespan management for startup/shutdown
and router registration.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from toolhub_server import __version__
from toolhub_server.config import ToolhubServerSettings
from toolhub_server.discovery import ExternalServerAdapter, LocalEventRegistry, load_server_configs
from toolhub_server.routers import executions, health, servers, tools
from toolhub_server.storage import FileJobQueue, JsonFileCacheStore
from toolhub_server.tools.executor import ToolExecutor
from toolhub_server.tools.lanes import BackgroundLane, ImmediateLane
from toolhub_server.tools.registry import ToolRegistry
from toolhub_server.tools.schema import ToolSchemaService
from toolhub_server.tools.statistics import ExecutionStatistics

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for FastAPI application.

    Builds the discovery adapters, storage, registry and executor once at
    startup and stores them in app.state for reuse across all requests.
    Discovery itself runs lazily on the first catalog read.

    Args:
        app: The FastAPI application instance.

    Yields:
        None: Control is yielded while the app is running.
    """
    settings: ToolhubServerSettings = app.state.settings

    # Startup: external servers from the servers file
    configs = load_server_configs(settings.resolved_servers_file)
    external = ExternalServerAdapter.from_configs(
        configs, default_timeout=settings.external_tool_timeout
    )
    app.state.external_servers = external
    logger.info(
        f"Configured {len(configs)} external tool servers "
        f"({len(external.enabled_server_names())} enabled)"
    )

    cache_store = JsonFileCacheStore(settings.resolved_cache_dir)
    job_queue = FileJobQueue(
        settings.resolved_queue_dir,
        default_queue=settings.default_queue,
        max_tries=settings.job_max_tries,
        timeout=settings.job_timeout,
    )
    app.state.job_queue = job_queue

    registry = ToolRegistry(
        external=external,
        local_events=app.state.local_events,
        cache_store=cache_store,
        cache_ttl=settings.cache_ttl_seconds,
    )
    app.state.tool_registry = registry
    app.state.tool_executor = ToolExecutor(
        registry=registry,
        immediate_lane=ImmediateLane(external, timeout=settings.external_tool_timeout),
        background_lane=BackgroundLane(job_queue),
        statistics=ExecutionStatistics(),
        execute_concurrently=settings.execute_concurrently,
    )
    app.state.tool_schema_service = ToolSchemaService(registry)
    logger.info(f"Tool registry ready (cache: {settings.resolved_cache_dir})")

    yield

    # Shutdown: Close server transports
    await external.close()
    logger.info("External tool servers closed")


def create_app(
    settings: ToolhubServerSettings | None = None,
    local_events: LocalEventRegistry | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    This factory function creates a FastAPI instance with all routers,
    middleware, and configuration applied. It can accept an optional
    settings object for testing or explicit configuration.

    Args:
        settings: Optional ToolhubServerSettings instance. If not provided,
                  settings will be loaded from environment variables.
        local_events: Optional registry of local event listeners owned by the
                      host application. A fresh one is created otherwise and
                      exposed as app.state.local_events.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        from toolhub_server.dependencies import get_settings

        settings = get_settings()

    app = FastAPI(
        title="toolhub-server",
        description="Unified tool discovery, registry and execution routing",
        version=__version__,
        lifespan=lifespan,
    )

    # Store settings in app.state for lifespan access
    app.state.settings = settings
    app.state.local_events = local_events if local_events is not None else LocalEventRegistry()

    # Note: FastAPI's type hints for add_middleware are overly strict
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routers
    app.include_router(health.router)
    app.include_router(tools.router)
    app.include_router(executions.router)
    app.include_router(servers.router)

    return app
