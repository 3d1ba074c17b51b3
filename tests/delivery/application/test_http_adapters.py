"""Tests for the requests-based notifier and gateway adapters."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from delivery.errors import UpstreamUnavailable
from delivery.gateway.razorpay_adapter import RazorpayGateway
from delivery.webhooks.http_adapter import HttpAdminNotifier, HttpDriverNotifier


def _response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = body or {}
    return response


class TestHttpAdminNotifier:
    def test_posts_event_with_api_key_and_timeout(self):
        notifier = HttpAdminNotifier(base_url="http://admin.local/", api_key="admin-key", timeout=3)
        with patch("delivery.webhooks.http_adapter.requests.post", return_value=_response()) as mock_post:
            notifier.send("new-order", {"order_id": "ord-001"})

        mock_post.assert_called_once()
        args, kwargs = mock_post.call_args
        assert args[0] == "http://admin.local/api/external/new-order"
        assert kwargs["json"] == {"order_id": "ord-001"}
        assert kwargs["headers"]["X-API-Key"] == "admin-key"
        assert kwargs["timeout"] == 3

    def test_non_2xx_is_upstream_unavailable(self):
        notifier = HttpAdminNotifier(base_url="http://admin.local", api_key="admin-key")
        with patch("delivery.webhooks.http_adapter.requests.post", return_value=_response(503)):
            with pytest.raises(UpstreamUnavailable, match="503"):
                notifier.send("new-order", {"order_id": "ord-001"})

    def test_timeout_is_upstream_unavailable(self):
        notifier = HttpAdminNotifier(base_url="http://admin.local", api_key="admin-key")
        with patch("delivery.webhooks.http_adapter.requests.post", side_effect=requests.Timeout("slow")):
            with pytest.raises(UpstreamUnavailable):
                notifier.send("new-order", {"order_id": "ord-001"})

    def test_health_check(self):
        notifier = HttpAdminNotifier(base_url="http://admin.local", api_key="admin-key")
        with patch("delivery.webhooks.http_adapter.requests.get", return_value=_response()) as mock_get:
            assert notifier.health_check() is True
        assert mock_get.call_args[0][0] == "http://admin.local/api/health"

    def test_health_check_unreachable(self):
        notifier = HttpAdminNotifier(base_url="http://admin.local", api_key="admin-key")
        with patch("delivery.webhooks.http_adapter.requests.get", side_effect=requests.ConnectionError()):
            assert notifier.health_check() is False


class TestHttpDriverNotifier:
    def test_posts_to_notifications_with_secret(self):
        notifier = HttpDriverNotifier(base_url="http://driver.local", api_secret="driver-secret", timeout=5)
        with patch("delivery.webhooks.http_adapter.requests.post", return_value=_response()) as mock_post:
            notifier.send("otp_generated", {"action": "otp_generated", "order_id": "ord-001", "otp": "123456"})

        args, kwargs = mock_post.call_args
        assert args[0] == "http://driver.local/api/notifications"
        assert kwargs["headers"]["X-Api-Secret"] == "driver-secret"
        assert kwargs["timeout"] == 5

    def test_error_message_does_not_carry_payload(self):
        notifier = HttpDriverNotifier(base_url="http://driver.local", api_secret="driver-secret")
        with patch("delivery.webhooks.http_adapter.requests.post", return_value=_response(500)):
            with pytest.raises(UpstreamUnavailable) as exc_info:
                notifier.send("otp_generated", {"order_id": "ord-001", "otp": "123456"})
        assert "123456" not in exc_info.value.message

    def test_reads_configuration_from_environment(self, monkeypatch):
        monkeypatch.setenv("DRIVER_APP_URL", "http://drivers.internal:3001/")
        monkeypatch.setenv("DRIVER_APP_SECRET", "from-env")
        monkeypatch.setenv("OUTBOUND_TIMEOUT_SECONDS", "2.5")
        notifier = HttpDriverNotifier()
        assert notifier.base_url == "http://drivers.internal:3001"
        assert notifier.api_secret == "from-env"
        assert notifier.timeout == 2.5


class TestRazorpayGateway:
    def test_create_order(self):
        gateway = RazorpayGateway(key_id="rzp_test_key", key_secret="secret", timeout=4)
        body = {"id": "order_123", "amount": 3560400, "currency": "INR", "receipt": "FS1"}
        with patch("delivery.gateway.razorpay_adapter.requests.request", return_value=_response(200, body)) as mock_req:
            order = gateway.create_order(amount_minor=3560400, currency="INR", receipt="FS1")

        assert order.gateway_order_id == "order_123"
        assert order.amount_minor == 3560400
        args, kwargs = mock_req.call_args
        assert args == ("POST", "https://api.razorpay.com/v1/orders")
        assert kwargs["auth"] == ("rzp_test_key", "secret")
        assert kwargs["timeout"] == 4
        assert kwargs["json"] == {"amount": 3560400, "currency": "INR", "receipt": "FS1"}

    def test_fetch_payment(self):
        gateway = RazorpayGateway(key_id="rzp_test_key", key_secret="secret")
        body = {"id": "pay_1", "order_id": "order_123", "status": "captured", "method": "card", "amount": 100}
        with patch("delivery.gateway.razorpay_adapter.requests.request", return_value=_response(200, body)):
            payment = gateway.fetch_payment("pay_1")
        assert payment.status == "captured"
        assert payment.method == "card"
        assert payment.raw == body

    def test_gateway_error_is_upstream_unavailable(self):
        gateway = RazorpayGateway(key_id="rzp_test_key", key_secret="secret")
        with patch("delivery.gateway.razorpay_adapter.requests.request", return_value=_response(502)):
            with pytest.raises(UpstreamUnavailable):
                gateway.create_order(amount_minor=100, currency="INR", receipt="FS1")

    def test_connection_error_is_upstream_unavailable(self):
        gateway = RazorpayGateway(key_id="rzp_test_key", key_secret="secret")
        with patch("delivery.gateway.razorpay_adapter.requests.request", side_effect=requests.ConnectionError()):
            with pytest.raises(UpstreamUnavailable):
                gateway.fetch_payment("pay_1")


class TestFactories:
    def test_http_adapter_selected_by_environment(self, monkeypatch):
        from delivery.webhooks import get_admin_notifier, get_driver_notifier, reset_notifiers

        monkeypatch.setenv("WEBHOOK_ADAPTER", "http")
        reset_notifiers()
        assert isinstance(get_admin_notifier(), HttpAdminNotifier)
        assert isinstance(get_driver_notifier(), HttpDriverNotifier)

    def test_unknown_adapter(self, monkeypatch):
        from delivery.webhooks import get_admin_notifier, reset_notifiers

        monkeypatch.setenv("WEBHOOK_ADAPTER", "carrier-pigeon")
        reset_notifiers()
        with pytest.raises(ValueError):
            get_admin_notifier()

    def test_razorpay_selected_by_environment(self, monkeypatch):
        from delivery.gateway import get_gateway, reset_gateway

        monkeypatch.setenv("PAYMENT_GATEWAY", "razorpay")
        reset_gateway()
        assert isinstance(get_gateway(), RazorpayGateway)
