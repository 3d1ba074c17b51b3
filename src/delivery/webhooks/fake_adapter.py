"""In-memory notifiers for development and testing.

They record every call and can be told to fail, which exercises the
best-effort paths without a network.
"""

from delivery.errors import UpstreamUnavailable
from delivery.webhooks.port import AdminNotifier, DriverNotifier


class _RecordingNotifier:
    target = "external"

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Connection refused"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Connection refused") -> None:
        """Configure notifier behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def send(self, event: str, payload: dict) -> None:
        self.calls.append({"event": event, "payload": payload})
        if not self.should_succeed:
            raise UpstreamUnavailable(f"{self.target} system unavailable: {self.failure_reason}", event=event)

    def health_check(self) -> bool:
        return self.should_succeed

    def events(self, name: str) -> list[dict]:
        """Payloads sent for ``name``, oldest first."""
        return [call["payload"] for call in self.calls if call["event"] == name]

    def reset(self) -> None:
        self.calls.clear()
        self.should_succeed = True


class FakeAdminNotifier(_RecordingNotifier, AdminNotifier):
    target = "admin"


class FakeDriverNotifier(_RecordingNotifier, DriverNotifier):
    target = "driver"
