"""HTTP notifiers for the admin dashboard and the driver application.

Every request carries an explicit timeout. Transport errors and non-2xx
responses surface as UpstreamUnavailable; callers decide whether that is
fatal.
"""

import requests
import structlog

from delivery import config
from delivery.errors import UpstreamUnavailable
from delivery.webhooks.port import AdminNotifier, DriverNotifier

logger = structlog.get_logger(__name__)


def _post(url: str, payload: dict, headers: dict, timeout: float, target: str, event: str) -> None:
    try:
        response = requests.post(url, json=payload, headers=headers, timeout=timeout)
    except requests.RequestException as exc:
        raise UpstreamUnavailable(
            f"{target} system unreachable ({exc.__class__.__name__})", target=target, event=event
        ) from exc

    if not response.ok:
        raise UpstreamUnavailable(
            f"{target} system answered HTTP {response.status_code}", target=target, event=event
        )


def _reachable(url: str, headers: dict, timeout: float, target: str) -> bool:
    try:
        response = requests.get(url, headers=headers, timeout=timeout)
    except requests.RequestException as exc:
        logger.warning("Connectivity check failed", target=target, error=exc.__class__.__name__)
        return False
    return response.ok


class HttpAdminNotifier(AdminNotifier):
    """POSTs events to ``{base_url}/api/external/{event}`` with an X-API-Key header."""

    def __init__(self, base_url: str | None = None, api_key: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or config.admin_dashboard_url()).rstrip("/")
        self.api_key = api_key if api_key is not None else config.admin_api_key()
        self.timeout = timeout if timeout is not None else config.outbound_timeout()

    def _headers(self) -> dict:
        return {"Content-Type": "application/json", "X-API-Key": self.api_key}

    def send(self, event: str, payload: dict) -> None:
        _post(f"{self.base_url}/api/external/{event}", payload, self._headers(), self.timeout, "admin", event)

    def health_check(self) -> bool:
        return _reachable(f"{self.base_url}/api/health", self._headers(), self.timeout, "admin")


class HttpDriverNotifier(DriverNotifier):
    """POSTs events to ``{base_url}/api/notifications`` with an X-Api-Secret header."""

    def __init__(self, base_url: str | None = None, api_secret: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or config.driver_app_url()).rstrip("/")
        self.api_secret = api_secret if api_secret is not None else config.driver_app_secret()
        self.timeout = timeout if timeout is not None else config.outbound_timeout()

    def _headers(self) -> dict:
        return {"Content-Type": "application/json", "X-Api-Secret": self.api_secret}

    def send(self, event: str, payload: dict) -> None:
        _post(f"{self.base_url}/api/notifications", payload, self._headers(), self.timeout, "driver", event)

    def health_check(self) -> bool:
        return _reachable(f"{self.base_url}/api/test", self._headers(), self.timeout, "driver")
