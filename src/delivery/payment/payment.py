"""Payment aggregate (CQRS): one settlement attempt for one order.

State Machine:
    PENDING -> PROCESSING -> COMPLETED -> REFUNDED
    PENDING -> COMPLETED
    PENDING -> FAILED
    PROCESSING -> FAILED

Cash-on-delivery payments stay PENDING; nothing in this core settles them.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text

from delivery.domain import delivery
from delivery.payment.events import PaymentCompleted, PaymentFailed, PaymentRecorded


class PaymentMethod(Enum):
    COD = "cod"
    UPI = "upi"
    CARDS = "cards"
    NETBANKING = "netbanking"
    WALLET = "wallet"


class PaymentStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


_VALID_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PROCESSING, PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.PROCESSING: {PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.COMPLETED: {PaymentStatus.REFUNDED},
    PaymentStatus.FAILED: set(),  # Terminal
    PaymentStatus.REFUNDED: set(),  # Terminal
}

# Gateway method names that differ from ours
_GATEWAY_METHODS = {"card": PaymentMethod.CARDS.value, "emi": PaymentMethod.CARDS.value}


def method_from_gateway(method: str | None, default: str) -> str:
    if not method:
        return default
    mapped = _GATEWAY_METHODS.get(method, method)
    return mapped if mapped in {m.value for m in PaymentMethod} else default


@delivery.aggregate
class Payment:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    amount = String(required=True, max_length=20)
    currency = String(max_length=3, default="INR")
    method = String(choices=PaymentMethod, required=True)
    status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    transaction_id = String(max_length=100)
    gateway_order_id = String(max_length=100)
    gateway_response = Text()  # JSON, audit only
    failure_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def record(cls, order_id, customer_id, amount, method, status=PaymentStatus.PENDING.value, gateway_order_id=None):
        if status not in (PaymentStatus.PENDING.value, PaymentStatus.PROCESSING.value):
            raise ValidationError({"status": ["New payments start pending or processing"]})

        now = datetime.now(UTC)
        payment = cls(
            order_id=order_id,
            customer_id=customer_id,
            amount=amount,
            method=method,
            status=status,
            gateway_order_id=gateway_order_id,
            created_at=now,
            updated_at=now,
        )
        payment.raise_(
            PaymentRecorded(
                payment_id=str(payment.id),
                order_id=str(order_id),
                amount=amount,
                method=method,
                status=status,
                recorded_at=now,
            )
        )
        return payment

    def _assert_can_transition(self, target_status):
        current = PaymentStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition payment from {current.value} to {target_status.value}"]})

    def complete(self, transaction_id, gateway_response: dict | None = None, method=None):
        self._assert_can_transition(PaymentStatus.COMPLETED)

        now = datetime.now(UTC)
        self.status = PaymentStatus.COMPLETED.value
        self.transaction_id = transaction_id
        if gateway_response is not None:
            self.gateway_response = json.dumps(gateway_response, sort_keys=True, default=str)
        if method:
            self.method = method
        self.updated_at = now
        self.raise_(
            PaymentCompleted(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                amount=self.amount,
                method=self.method,
                transaction_id=transaction_id,
                completed_at=now,
            )
        )

    def fail(self, reason):
        self._assert_can_transition(PaymentStatus.FAILED)

        now = datetime.now(UTC)
        self.status = PaymentStatus.FAILED.value
        self.failure_reason = reason
        self.updated_at = now
        self.raise_(PaymentFailed(payment_id=str(self.id), order_id=str(self.order_id), reason=reason, failed_at=now))
