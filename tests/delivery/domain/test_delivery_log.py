"""Tests for the WebhookDelivery log and its retry backoff."""

from datetime import UTC, datetime, timedelta

from delivery.webhooks.delivery_log import DeliveryStatus, WebhookDelivery

NOW = datetime(2026, 10, 19, 10, 0, tzinfo=UTC)


def _failed_record(max_attempts=5):
    return WebhookDelivery.first_attempt(
        "admin",
        "new-order",
        {"order_id": "ord-001", "order_number": "FS1"},
        error="admin system unavailable",
        retry_base=30,
        max_attempts=max_attempts,
    )


class TestFirstAttempt:
    def test_success_is_delivered(self):
        record = WebhookDelivery.first_attempt("driver", "new_order", {"order_id": "ord-001"})
        assert record.status == DeliveryStatus.DELIVERED.value
        assert record.attempts == 1
        assert record.delivered_at is not None
        assert record.next_attempt_at is None

    def test_failure_schedules_retry(self):
        record = _failed_record()
        assert record.status == DeliveryStatus.FAILED.value
        assert record.attempts == 1
        assert record.last_error == "admin system unavailable"
        assert record.next_attempt_at is not None

    def test_keeps_order_reference_and_payload(self):
        record = _failed_record()
        assert record.order_id == "ord-001"
        assert record.decoded_payload() == {"order_id": "ord-001", "order_number": "FS1"}


class TestBackoff:
    def test_delay_doubles_per_attempt(self):
        record = _failed_record()
        record.record_attempt("still down", retry_base=30, max_attempts=5, now=NOW)
        assert record.next_attempt_at == NOW + timedelta(seconds=60)
        record.record_attempt("still down", retry_base=30, max_attempts=5, now=NOW)
        assert record.next_attempt_at == NOW + timedelta(seconds=120)

    def test_abandoned_after_max_attempts(self):
        record = _failed_record(max_attempts=2)
        record.record_attempt("still down", retry_base=30, max_attempts=2, now=NOW)
        assert record.status == DeliveryStatus.ABANDONED.value
        assert record.next_attempt_at is None
        assert not record.is_due(NOW + timedelta(days=1))

    def test_success_after_failure_clears_error(self):
        record = _failed_record()
        record.record_attempt(None, now=NOW)
        assert record.status == DeliveryStatus.DELIVERED.value
        assert record.last_error is None
        assert record.attempts == 2


class TestDue:
    def test_not_due_before_backoff(self):
        record = _failed_record()
        record.record_attempt("down", retry_base=30, max_attempts=5, now=NOW)
        assert not record.is_due(NOW + timedelta(seconds=59))
        assert record.is_due(NOW + timedelta(seconds=60))

    def test_delivered_is_never_due(self):
        record = WebhookDelivery.first_attempt("driver", "new_order", {"order_id": "ord-001"})
        assert not record.is_due(NOW + timedelta(days=1))


class TestAbandon:
    def test_stops_retrying_without_an_attempt(self):
        record = _failed_record()
        record.abandon("Superseded by a newer delivery code send", now=NOW)
        assert record.status == DeliveryStatus.ABANDONED.value
        assert record.attempts == 1
        assert record.next_attempt_at is None
        assert record.last_error == "Superseded by a newer delivery code send"
        assert record.is_due(NOW + timedelta(days=1)) is False
