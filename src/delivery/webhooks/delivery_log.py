"""WebhookDelivery aggregate: durable record of every outbound webhook.

Each event sent to the admin or driver system gets one row. The first
attempt happens inline with a bounded timeout. Failed rows are picked up by
the worker and redelivered with exponential backoff until they succeed or
run out of attempts.

State Machine:
    FAILED -> DELIVERED
    FAILED -> FAILED (another failed attempt, next_attempt_at pushed out)
    FAILED -> ABANDONED (out of attempts, or superseded)
"""

import json
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.fields import DateTime, Integer, String, Text

from delivery.domain import delivery


class WebhookTarget(Enum):
    ADMIN = "admin"
    DRIVER = "driver"


class DeliveryStatus(Enum):
    DELIVERED = "delivered"
    FAILED = "failed"
    ABANDONED = "abandoned"


@delivery.aggregate
class WebhookDelivery:
    target = String(choices=WebhookTarget, required=True)
    event = String(required=True, max_length=100)
    payload = Text(required=True)  # JSON
    order_id = String(max_length=50)
    status = String(choices=DeliveryStatus, required=True)
    attempts = Integer(default=0)
    last_error = String(max_length=500)
    next_attempt_at = DateTime()
    delivered_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def first_attempt(cls, target, event, payload: dict, error=None, retry_base=30.0, max_attempts=5):
        now = datetime.now(UTC)
        record = cls(
            target=target,
            event=event,
            payload=json.dumps(payload, sort_keys=True),
            order_id=payload.get("order_id"),
            status=DeliveryStatus.FAILED.value,
            attempts=0,
            created_at=now,
            updated_at=now,
        )
        record.record_attempt(error, retry_base=retry_base, max_attempts=max_attempts, now=now)
        return record

    def record_attempt(self, error=None, retry_base=30.0, max_attempts=5, now=None):
        """Record the outcome of one attempt. ``error`` is None on success."""
        now = now or datetime.now(UTC)
        self.attempts = (self.attempts or 0) + 1
        self.updated_at = now

        if error is None:
            self.status = DeliveryStatus.DELIVERED.value
            self.delivered_at = now
            self.next_attempt_at = None
            self.last_error = None
            return

        self.last_error = str(error)[:500]
        if self.attempts >= max_attempts:
            self.status = DeliveryStatus.ABANDONED.value
            self.next_attempt_at = None
        else:
            self.status = DeliveryStatus.FAILED.value
            self.next_attempt_at = now + timedelta(seconds=retry_base * 2 ** (self.attempts - 1))

    def is_due(self, as_of) -> bool:
        if self.status != DeliveryStatus.FAILED.value or self.next_attempt_at is None:
            return False
        due = self.next_attempt_at
        # Normalize timezone awareness for comparison
        if due.tzinfo is None and as_of.tzinfo is not None:
            due = due.replace(tzinfo=as_of.tzinfo)
        elif due.tzinfo is not None and as_of.tzinfo is None:
            due = due.replace(tzinfo=None)
        return due <= as_of

    def decoded_payload(self) -> dict:
        return json.loads(self.payload)

    def abandon(self, reason: str, now=None):
        """Stop retrying without another attempt."""
        self.status = DeliveryStatus.ABANDONED.value
        self.next_attempt_at = None
        self.last_error = reason[:500]
        self.updated_at = now or datetime.now(UTC)
