"""Outbound webhook ports (abstract interfaces).

The admin dashboard and the driver application are external systems. The
core talks to them only through these interfaces, so tests and development
run against the in-memory fakes.
"""

from abc import ABC, abstractmethod


class AdminNotifier(ABC):
    """Pushes order, payment and customer events to the admin dashboard."""

    @abstractmethod
    def send(self, event: str, payload: dict) -> None:
        """Deliver one event. Raises UpstreamUnavailable on any failure."""
        ...

    @abstractmethod
    def health_check(self) -> bool:
        """Probe connectivity without raising."""
        ...


class DriverNotifier(ABC):
    """Pushes new orders and delivery codes to the driver application."""

    @abstractmethod
    def send(self, event: str, payload: dict) -> None:
        """Deliver one event. Raises UpstreamUnavailable on any failure."""
        ...

    @abstractmethod
    def health_check(self) -> bool:
        """Probe connectivity without raising."""
        ...
