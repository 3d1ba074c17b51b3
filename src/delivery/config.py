"""Environment-driven configuration for integrations and background work.

Values are read on every call so tests can monkeypatch the environment.
Business parameters (pricing, thresholds) live in SystemSetting rows instead.
"""

import os


def env() -> str:
    return os.environ.get("PROTEAN_ENV", "development").lower()


def is_production() -> bool:
    return env() == "production"


def _float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return float(raw)


def _int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return int(raw)


# ---------------------------------------------------------------------------
# Payment gateway
# ---------------------------------------------------------------------------
def payment_gateway_adapter() -> str:
    return os.environ.get("PAYMENT_GATEWAY", "fake")


def razorpay_key_id() -> str:
    return os.environ.get("RAZORPAY_KEY_ID", "")


def gateway_key_secret() -> str:
    """Secret used to sign and verify gateway payment signatures."""
    return os.environ.get("RAZORPAY_KEY_SECRET", "test-gateway-secret")


def payment_simulation_delay() -> float:
    return _float("PAYMENT_SIMULATION_DELAY_SECONDS", 2.0)


# ---------------------------------------------------------------------------
# Webhooks (admin dashboard and driver application)
# ---------------------------------------------------------------------------
def webhook_adapter() -> str:
    return os.environ.get("WEBHOOK_ADAPTER", "fake")


def admin_dashboard_url() -> str:
    return os.environ.get("ADMIN_DASHBOARD_URL", "http://localhost:3002").rstrip("/")


def admin_api_key() -> str:
    return os.environ.get("ADMIN_API_KEY", "")


def driver_app_url() -> str:
    return os.environ.get("DRIVER_APP_URL", "http://localhost:3001").rstrip("/")


def driver_app_secret() -> str:
    return os.environ.get("DRIVER_APP_SECRET", "")


def driver_webhook_secret() -> str:
    """Shared secret the driver application presents on inbound webhooks."""
    return os.environ.get("DRIVER_WEBHOOK_SECRET", "dev-driver-secret")


def outbound_timeout() -> float:
    return _float("OUTBOUND_TIMEOUT_SECONDS", 5.0)


def webhook_retry_base() -> float:
    return _float("WEBHOOK_RETRY_BASE_SECONDS", 30.0)


def webhook_max_attempts() -> int:
    return _int("WEBHOOK_MAX_ATTEMPTS", 5)


# ---------------------------------------------------------------------------
# Worker
# ---------------------------------------------------------------------------
def worker_poll_interval() -> float:
    return _float("WORKER_POLL_SECONDS", 1.0)
