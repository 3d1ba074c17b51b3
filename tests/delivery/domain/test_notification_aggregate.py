"""Tests for the Notification aggregate and templates."""

import pytest

from delivery.errors import PermissionDenied
from delivery.notification.notification import Notification, NotificationCreated, NotificationType
from delivery.notification.templates import STATUS_TEMPLATES, TEMPLATE_REGISTRY, get_template


def _make_notification(**overrides):
    defaults = {
        "user_id": "cust-001",
        "notification_type": NotificationType.ORDER_UPDATE.value,
        "title": "Order placed",
        "message": "Your order FS261019000001 has been placed.",
        "order_id": "ord-001",
    }
    defaults.update(overrides)
    return Notification.create(**defaults)


class TestNotification:
    def test_starts_unread(self):
        notification = _make_notification()
        assert notification.is_read is False
        assert notification.read_at is None

    def test_raises_created_event(self):
        notification = _make_notification()
        assert isinstance(notification._events[0], NotificationCreated)

    def test_mark_read_by_recipient(self):
        notification = _make_notification()
        assert notification.mark_read("cust-001") is True
        assert notification.is_read is True
        assert notification.read_at is not None

    def test_mark_read_is_idempotent(self):
        notification = _make_notification()
        notification.mark_read("cust-001")
        assert notification.mark_read("cust-001") is False

    def test_only_recipient_can_mark_read(self):
        notification = _make_notification()
        with pytest.raises(PermissionDenied):
            notification.mark_read("cust-002")
        assert notification.is_read is False


class TestTemplates:
    def test_every_status_change_has_a_template(self):
        for template_name in STATUS_TEMPLATES.values():
            assert template_name in TEMPLATE_REGISTRY

    def test_cancellation_message_includes_reason(self):
        rendered = get_template("order_cancelled").render({"order_number": "FS1", "reason": "Plans changed"})
        assert "Plans changed" in rendered["message"]

    def test_payment_templates_use_payment_type(self):
        assert get_template("payment_received").notification_type == NotificationType.PAYMENT.value
        assert get_template("cash_on_delivery").notification_type == NotificationType.PAYMENT.value

    def test_unknown_template(self):
        with pytest.raises(ValueError):
            get_template("no_such_template")
