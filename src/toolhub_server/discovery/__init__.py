"""Discovery adapters for external tool servers and local event listeners."""

from toolhub_server.discovery.external import ExternalServerAdapter, ServerDiscovery
from toolhub_server.discovery.local_events import LocalEventRegistration, LocalEventRegistry
from toolhub_server.discovery.servers import (
    CommandToolServer,
    HttpToolServer,
    ServerConfig,
    load_server_configs,
)

__all__ = [
    "CommandToolServer",
    "ExternalServerAdapter",
    "HttpToolServer",
    "LocalEventRegistration",
    "LocalEventRegistry",
    "ServerConfig",
    "ServerDiscovery",
    "load_server_configs",
]
