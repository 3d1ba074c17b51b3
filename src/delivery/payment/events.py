"""Domain events for the Payment aggregate."""

from protean.fields import DateTime, Identifier, String

from delivery.domain import delivery


@delivery.event(part_of="Payment")
class PaymentRecorded:
    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = String(required=True)
    method = String(required=True)
    status = String(required=True)
    recorded_at = DateTime(required=True)


@delivery.event(part_of="Payment")
class PaymentCompleted:
    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = String(required=True)
    method = String(required=True)
    transaction_id = String(required=True)
    completed_at = DateTime(required=True)


@delivery.event(part_of="Payment")
class PaymentFailed:
    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = String(required=True)
    failed_at = DateTime(required=True)
