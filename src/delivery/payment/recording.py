"""Payment commands and handler. PaymentReconciler is the only caller."""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.errors import InvalidState
from delivery.payment.payment import Payment, PaymentMethod, PaymentStatus


@delivery.command(part_of="Payment")
class RecordPayment:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    amount = String(required=True, max_length=20)
    method = String(choices=PaymentMethod, required=True)
    status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    gateway_order_id = String(max_length=100)


@delivery.command(part_of="Payment")
class CompletePayment:
    payment_id = Identifier(required=True)
    transaction_id = String(required=True, max_length=100)
    gateway_response = Text()  # JSON
    method = String(choices=PaymentMethod)


@delivery.command(part_of="Payment")
class FailPayment:
    payment_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


def completed_payment_for(order_id) -> Payment | None:
    repo = current_domain.repository_for(Payment)
    completed = repo._dao.query.filter(order_id=order_id, status=PaymentStatus.COMPLETED.value).all().items
    return completed[0] if completed else None


@delivery.command_handler(part_of=Payment)
class PaymentCommandHandler:
    @handle(RecordPayment)
    def record_payment(self, command):
        payment = Payment.record(
            order_id=command.order_id,
            customer_id=command.customer_id,
            amount=command.amount,
            method=command.method,
            status=command.status,
            gateway_order_id=command.gateway_order_id,
        )
        current_domain.repository_for(Payment).add(payment)
        return str(payment.id)

    @handle(CompletePayment)
    def complete_payment(self, command):
        repo = current_domain.repository_for(Payment)
        payment = repo.get(command.payment_id)

        existing = completed_payment_for(payment.order_id)
        if existing is not None and str(existing.id) != str(payment.id):
            raise InvalidState("This order already has a completed payment", order_id=str(payment.order_id))

        payment.complete(
            transaction_id=command.transaction_id,
            gateway_response=json.loads(command.gateway_response) if command.gateway_response else None,
            method=command.method,
        )
        repo.add(payment)

    @handle(FailPayment)
    def fail_payment(self, command):
        repo = current_domain.repository_for(Payment)
        payment = repo.get(command.payment_id)
        payment.fail(command.reason)
        repo.add(payment)
