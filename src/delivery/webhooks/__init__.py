"""Outbound notifier factory.

Provides get/set/reset accessors for the admin and driver notifiers. The
WEBHOOK_ADAPTER environment variable picks the implementation:
- fake (default): in-memory recorders for development and testing
- http: requests-based clients for the real systems
"""

from delivery import config
from delivery.webhooks.port import AdminNotifier, DriverNotifier

_admin_notifier: AdminNotifier | None = None
_driver_notifier: DriverNotifier | None = None


def get_admin_notifier() -> AdminNotifier:
    global _admin_notifier
    if _admin_notifier is None:
        adapter = config.webhook_adapter()
        if adapter == "fake":
            from delivery.webhooks.fake_adapter import FakeAdminNotifier

            _admin_notifier = FakeAdminNotifier()
        elif adapter == "http":
            from delivery.webhooks.http_adapter import HttpAdminNotifier

            _admin_notifier = HttpAdminNotifier()
        else:
            raise ValueError(f"Unknown webhook adapter: {adapter}")
    return _admin_notifier


def get_driver_notifier() -> DriverNotifier:
    global _driver_notifier
    if _driver_notifier is None:
        adapter = config.webhook_adapter()
        if adapter == "fake":
            from delivery.webhooks.fake_adapter import FakeDriverNotifier

            _driver_notifier = FakeDriverNotifier()
        elif adapter == "http":
            from delivery.webhooks.http_adapter import HttpDriverNotifier

            _driver_notifier = HttpDriverNotifier()
        else:
            raise ValueError(f"Unknown webhook adapter: {adapter}")
    return _driver_notifier


def set_notifiers(admin: AdminNotifier | None = None, driver: DriverNotifier | None = None) -> None:
    """Override the active notifiers (useful for tests)."""
    global _admin_notifier, _driver_notifier
    if admin is not None:
        _admin_notifier = admin
    if driver is not None:
        _driver_notifier = driver


def reset_notifiers() -> None:
    global _admin_notifier, _driver_notifier
    _admin_notifier = None
    _driver_notifier = None
