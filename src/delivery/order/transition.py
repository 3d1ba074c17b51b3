"""Guarded order writes: status transitions and delivery code replacement.

These handlers are the only code that writes status, driver or OTP fields.
Callers hold the order's lock (``delivery.locks.order_lock``) around
``process`` so the re-read, check and write below form one compare-and-swap.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.order.order import Order, OrderStatus


@delivery.command(part_of="Order")
class TransitionOrder:
    order_id = Identifier(required=True)
    expected_status = String(choices=OrderStatus, required=True)
    target_status = String(choices=OrderStatus, required=True)
    changed_by = String(required=True, max_length=100)
    driver_id = Identifier()
    reason = String(max_length=500)


@delivery.command(part_of="Order")
class RecordDeliveryOtp:
    order_id = Identifier(required=True)
    code = String(required=True, max_length=6)


@delivery.command_handler(part_of=Order)
class OrderTransitionHandler:
    @handle(TransitionOrder)
    def transition_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.transition(
            expected_status=command.expected_status,
            target_status=command.target_status,
            changed_by=command.changed_by,
            driver_id=command.driver_id,
            reason=command.reason,
        )
        repo.add(order)

    @handle(RecordDeliveryOtp)
    def record_delivery_otp(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_delivery_otp(command.code)
        repo.add(order)
