"""Unit tests for the local event registry."""

from toolhub_server.discovery import LocalEventRegistry
from toolhub_server.discovery.local_events import listener_identity


class GenerateReportListener:
    """Build a PDF report for a conversation.

    Runs in a background worker.
    """


class DefinedListener:
    def get_function_definition(self):
        return {
            "description": "Archive a conversation",
            "parameters": {
                "type": "object",
                "properties": {"conversation_id": {"type": "integer"}},
                "required": ["conversation_id"],
            },
        }


def test_listen_with_explicit_metadata():
    """Test registering with description and parameters."""
    registry = LocalEventRegistry()
    registration = registry.listen(
        "send_email",
        "app.listeners.SendEmailListener",
        description="Send an email",
        parameters={"type": "object", "properties": {"to": {"type": "string"}}},
        category="communication",
        requires_auth=True,
    )

    assert registration.listener == "app.listeners.SendEmailListener"
    assert registration.description == "Send an email"
    assert registration.category == "communication"
    assert registration.requires_auth is True
    assert registry.get("send_email") is registration


def test_listen_falls_back_to_docstring():
    """Test that the first docstring line becomes the description."""
    registry = LocalEventRegistry()
    registration = registry.listen("generate_report", GenerateReportListener)

    assert registration.description == "Build a PDF report for a conversation."
    assert registration.listener.endswith("GenerateReportListener")
    assert registration.parameters == {"type": "object", "properties": {}}


def test_listen_falls_back_to_generic_description():
    """Test the generic description for undocumented string listeners."""
    registry = LocalEventRegistry()
    registration = registry.listen("sync_crm", "app.listeners.SyncCrm")

    assert registration.description == "Execute sync_crm action"


def test_listen_uses_function_definition():
    """Test that get_function_definition() supplies metadata."""
    registry = LocalEventRegistry()
    registration = registry.listen("archive", DefinedListener())

    assert registration.description == "Archive a conversation"
    assert registration.parameters["required"] == ["conversation_id"]


def test_listener_decorator_registers_and_returns_target():
    """Test the decorator form."""
    registry = LocalEventRegistry()

    @registry.listener("notify", description="Notify a user", category="communication")
    def notify(user_id):
        return user_id

    assert notify(3) == 3
    registration = registry.get("notify")
    assert registration is not None
    assert registration.description == "Notify a user"
    assert registration.listener == listener_identity(notify)


def test_listen_replaces_existing_registration(caplog):
    """Test that registering an event twice keeps the latest listener."""
    registry = LocalEventRegistry()
    registry.listen("send_email", "app.A")
    registry.listen("send_email", "app.B")

    assert registry.get("send_email").listener == "app.B"
    assert "Replacing listener" in caplog.text


def test_unlisten_and_clear():
    """Test removing registrations."""
    registry = LocalEventRegistry()
    registry.listen("a", "app.A")
    registry.listen("b", "app.B")

    assert registry.unlisten("a") is True
    assert registry.unlisten("a") is False
    assert list(registry.registrations()) == ["b"]

    registry.clear()
    assert registry.registrations() == {}


def test_registrations_returns_a_copy():
    """Test that callers cannot mutate the registry through the snapshot."""
    registry = LocalEventRegistry()
    registry.listen("a", "app.A")

    snapshot = registry.registrations()
    snapshot.pop("a")

    assert registry.get("a") is not None


def test_listener_identity_for_instances():
    """Test that instances are identified by their class."""
    assert listener_identity(DefinedListener()) == f"{__name__}.DefinedListener"
    assert listener_identity("pkg.Mod") == "pkg.Mod"
