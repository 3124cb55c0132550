"""toolhub-server: Unified tool discovery, registry and execution routing.

This package merges tools advertised by external tool servers and tools
registered as local event listeners into one catalog, and routes each tool
call to an immediate lane (call the server now) or a background lane
(durably enqueue for a worker).
"""

__version__ = "0.1.0"

from toolhub_server.app import create_app  # noqa: E402

__all__ = ["create_app", "__version__"]
