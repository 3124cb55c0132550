"""In-process registry of event listeners exposed as tools.

A host application registers a listener per event name. The registration
carries the tool description and parameter schema; the listener itself is
never called here. Calls to these tools are enqueued for a background
worker, which resolves the listener by its identity string.
"""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from toolhub_server.tools.types import empty_parameters

logger = logging.getLogger(__name__)


@dataclass
class LocalEventRegistration:
    """A registered event listener."""

    event_name: str
    listener: str
    description: str
    parameters: dict[str, Any] = field(default_factory=empty_parameters)
    category: str | None = None
    requires_auth: bool = False


def listener_identity(listener: Any) -> str:
    """Return a stable import-path string for a listener.

    Strings are taken as-is; classes and functions become module.qualname.
    """
    if isinstance(listener, str):
        return listener
    target = listener if inspect.isclass(listener) or inspect.isfunction(listener) else type(listener)
    return f"{target.__module__}.{target.__qualname__}"


class LocalEventRegistry:
    """Owns the map of event name -> listener registration."""

    def __init__(self) -> None:
        self._registrations: dict[str, LocalEventRegistration] = {}

    def listen(
        self,
        event_name: str,
        listener: Any,
        description: str | None = None,
        parameters: dict[str, Any] | None = None,
        category: str | None = None,
        requires_auth: bool = False,
    ) -> LocalEventRegistration:
        """Register a listener for an event.

        If the listener exposes get_function_definition(), its description
        and parameters are used unless given explicitly. Otherwise the
        description falls back to the listener docstring.

        Args:
            event_name: Tool name the event is exposed under
            listener: Listener class, function, instance or import path
            description: Tool description
            parameters: JSON schema for the event arguments
            category: Optional grouping
            requires_auth: Whether callers need credentials

        Returns:
            The stored registration
        """
        if not event_name:
            raise ValueError("Event name must not be empty")

        definition: dict[str, Any] = {}
        get_definition = getattr(listener, "get_function_definition", None)
        if callable(get_definition) and not inspect.isclass(listener):
            definition = get_definition() or {}

        doc = None if isinstance(listener, str) else inspect.getdoc(listener)
        registration = LocalEventRegistration(
            event_name=event_name,
            listener=listener_identity(listener),
            description=(
                description
                or definition.get("description")
                or (doc.splitlines()[0] if doc else None)
                or f"Execute {event_name} action"
            ),
            parameters=parameters or definition.get("parameters") or empty_parameters(),
            category=category,
            requires_auth=requires_auth,
        )

        if event_name in self._registrations:
            logger.warning(f"Replacing listener for event {event_name}")
        self._registrations[event_name] = registration
        logger.info(f"Registered local event: {event_name} -> {registration.listener}")
        return registration

    def listener(
        self,
        event_name: str,
        description: str | None = None,
        parameters: dict[str, Any] | None = None,
        category: str | None = None,
        requires_auth: bool = False,
    ) -> Callable[[Any], Any]:
        """Decorator form of listen()."""

        def decorator(target: Any) -> Any:
            self.listen(
                event_name,
                target,
                description=description,
                parameters=parameters,
                category=category,
                requires_auth=requires_auth,
            )
            return target

        return decorator

    def unlisten(self, event_name: str) -> bool:
        """Remove a registration. Returns True if one existed."""
        return self._registrations.pop(event_name, None) is not None

    def clear(self) -> None:
        self._registrations.clear()

    def get(self, event_name: str) -> LocalEventRegistration | None:
        return self._registrations.get(event_name)

    def registrations(self) -> dict[str, LocalEventRegistration]:
        """Snapshot of all registrations."""
        return dict(self._registrations)
