"""Exception types raised by toolhub-server.

Per-source discovery failures and per-call execution failures are normally
caught and turned into report entries or error results; these classes exist
so the layers in between can tell the failure kinds apart.
"""


class ToolhubError(Exception):
    """Base class for all toolhub-server errors."""


class DiscoveryError(ToolhubError):
    """A single discovery source could not be queried."""

    def __init__(self, message: str, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source


class ToolServerError(ToolhubError):
    """An external tool server failed or returned malformed data."""

    def __init__(self, message: str, server: str | None = None) -> None:
        super().__init__(message)
        self.server = server


class UnknownToolError(ToolhubError):
    """A tool name is not present in the catalog."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: '{name}'")
        self.name = name


class UnknownToolsError(ToolhubError):
    """Pre-flight validation failed for one or more tool names."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Unknown tools: {', '.join(missing)}")
        self.missing = list(missing)


class MalformedToolCallError(ToolhubError, ValueError):
    """A tool call payload could not be turned into a request."""

    def __init__(self, message: str, name: str = "", call_id: str = "") -> None:
        super().__init__(message)
        self.name = name
        self.call_id = call_id


class ToolExecutionError(ToolhubError):
    """An immediate-lane call failed."""

    def __init__(self, message: str, name: str | None = None) -> None:
        super().__init__(message)
        self.name = name


class EnqueueError(ToolhubError):
    """The durable queue did not accept a background job."""


class CacheUnavailableError(ToolhubError):
    """The cache store could not be read or written."""


class InvalidContextError(ToolhubError, TypeError):
    """An execution context of an unsupported type was passed in."""
