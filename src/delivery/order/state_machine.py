"""OrderStateMachine: the only writer of order status, driver and OTP fields.

Every write runs under the order's lock and through a command handler that
re-reads the row, so a transition is a compare-and-swap on the persisted
status. Notifications and outbound webhooks are emitted only after the
write has committed, and webhook failures come back as flags rather than
errors.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

import structlog
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from delivery.actors import Actor
from delivery.customer.customer import Customer
from delivery.driver.driver import Driver
from delivery.errors import ConcurrentModification, InvalidState, PermissionDenied
from delivery.locks import order_lock
from delivery.notification.fanout import NotificationFanout
from delivery.notification.templates import STATUS_TEMPLATES
from delivery.order.order import Order, OrderStatus, parse_status
from delivery.order.placement import PlaceOrder
from delivery.order.transition import RecordDeliveryOtp, TransitionOrder
from delivery.pricing.snapshot import PricingSnapshot, setting_decimal
from delivery.webhooks.outbound import OutboundWebhooks

logger = structlog.get_logger(__name__)

FALLBACK_HIGH_VALUE_THRESHOLD = Decimal("50000")


@dataclass(frozen=True)
class DeliveryTarget:
    address: str
    latitude: str | None = None
    longitude: str | None = None
    address_id: str | None = None


@dataclass(frozen=True)
class Schedule:
    scheduled_date: date
    scheduled_time: str


@dataclass(frozen=True)
class OrderResult:
    """An order after a successful write, plus outbound webhook outcomes."""

    order: Order
    previous_status: str | None = None
    webhooks: dict = field(default_factory=dict)


class OrderStateMachine:
    def __init__(self, fanout: NotificationFanout, outbound: OutboundWebhooks):
        self.fanout = fanout
        self.outbound = outbound

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    @staticmethod
    def load(order_id) -> Order:
        return current_domain.repository_for(Order).get(order_id)

    @staticmethod
    def find(reference) -> Order:
        """Look an order up by id or by order number."""
        repo = current_domain.repository_for(Order)
        try:
            return repo.get(reference)
        except ObjectNotFoundError:
            matches = repo._dao.query.filter(order_number=reference).all().items
            if not matches:
                raise
            return matches[0]

    def visible_order(self, order_id, actor: Actor) -> Order:
        """Load an order the actor may see. Others' orders look missing."""
        order = self.load(order_id)
        if actor.is_customer and not order.is_owned_by(actor.user_id):
            raise ObjectNotFoundError({"_entity": f"Order {order_id} not found"})
        return order

    def orders_for(self, actor: Actor, limit: int = 20) -> list[Order]:
        query = current_domain.repository_for(Order)._dao.query
        if not actor.is_admin:
            query = query.filter(customer_id=actor.user_id)
        return query.order_by("-created_at").limit(limit).all().items

    # -------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------
    def create(self, customer_id, pricing: PricingSnapshot, target: DeliveryTarget, schedule: Schedule) -> OrderResult:
        """Place an order in PENDING with ``pricing`` frozen onto it."""
        order_id = current_domain.process(
            PlaceOrder(
                customer_id=customer_id,
                quantity=pricing.quantity,
                rate_per_liter=pricing.rate_per_liter,
                subtotal=pricing.subtotal,
                delivery_charges=pricing.delivery_charges,
                gst=pricing.gst,
                total_amount=pricing.total_amount,
                delivery_address=target.address,
                delivery_latitude=target.latitude,
                delivery_longitude=target.longitude,
                address_id=target.address_id,
                scheduled_date=schedule.scheduled_date,
                scheduled_time=schedule.scheduled_time,
            ),
            asynchronous=False,
        )
        order = self.load(order_id)
        logger.info(
            "Order placed",
            order_id=order_id,
            order_number=order.order_number,
            total_amount=order.pricing.total_amount,
        )

        customer = self._customer(order.customer_id)
        self._notify(
            self.fanout.notify_from_template,
            order.customer_id,
            "order_placed",
            {
                "order_number": order.order_number,
                "quantity": order.quantity,
                "total_amount": order.pricing.total_amount,
            },
            order_id=order_id,
        )
        webhooks = self.outbound.order_placed(order, customer)

        threshold = setting_decimal("high_value_order_threshold", FALLBACK_HIGH_VALUE_THRESHOLD)
        if Decimal(order.pricing.total_amount) >= threshold:
            self._notify(
                self.fanout.notify_admins,
                "high_value_order",
                {
                    "order_number": order.order_number,
                    "total_amount": order.pricing.total_amount,
                    "threshold": str(threshold),
                },
                order_id=order_id,
            )
            webhooks["high_value"] = self.outbound.high_value_order(order, threshold)

        return OrderResult(order=order, webhooks=webhooks)

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------
    def transition(
        self,
        order_id,
        expected_status,
        target_status,
        actor: Actor,
        driver_id=None,
        reason=None,
    ) -> OrderResult:
        """Compare-and-swap the order from ``expected_status`` to ``target_status``.

        Raises InvalidTransition for an illegal edge and ConcurrentModification
        when the persisted status is no longer ``expected_status``. Nothing is
        written in either case.
        """
        expected = parse_status(expected_status).value
        target = parse_status(target_status).value

        with order_lock(str(order_id)):
            try:
                current_domain.process(
                    TransitionOrder(
                        order_id=order_id,
                        expected_status=expected,
                        target_status=target,
                        changed_by=actor.label(),
                        driver_id=driver_id,
                        reason=reason,
                    ),
                    asynchronous=False,
                )
            except ExpectedVersionError:
                raise ConcurrentModification(
                    "Order was modified concurrently; reload and retry",
                    order_id=str(order_id),
                    expected_status=expected,
                ) from None
            order = self.load(order_id)

        logger.info(
            "Order status changed",
            order_id=str(order_id),
            from_status=expected,
            to_status=target,
            actor=actor.label(),
        )
        return self._announce(order, expected)

    def cancel(self, order_id, reason, actor: Actor) -> OrderResult:
        if not (reason or "").strip():
            raise ValidationError({"reason": ["A cancellation reason is required"]})

        order = self.load(order_id)
        if not (actor.is_admin or (actor.is_customer and order.is_owned_by(actor.user_id))):
            raise PermissionDenied("Only the ordering customer or an admin can cancel this order")

        return self.transition(order_id, order.status, OrderStatus.CANCELLED, actor, reason=reason)

    def assign_driver(self, order_id, driver_id, actor: Actor, expected_status=None) -> OrderResult:
        """Attach an active driver and confirm the order in one write."""
        if not actor.is_admin:
            raise PermissionDenied("Only dispatch can assign drivers")

        driver = current_domain.repository_for(Driver).get(driver_id)
        if not driver.is_active:
            raise InvalidState(f"Driver {driver_id} is not active", driver_id=str(driver_id))

        if expected_status is None:
            expected_status = self.load(order_id).status
        return self.transition(order_id, expected_status, OrderStatus.CONFIRMED, actor, driver_id=driver_id)

    def record_otp(self, order_id, code) -> Order:
        """Write a new delivery code. Only DeliveryOtpManager calls this."""
        with order_lock(str(order_id)):
            try:
                current_domain.process(RecordDeliveryOtp(order_id=order_id, code=code), asynchronous=False)
            except ExpectedVersionError:
                raise ConcurrentModification(
                    "Order was modified concurrently; reload and retry", order_id=str(order_id)
                ) from None
            return self.load(order_id)

    # -------------------------------------------------------------------
    # Side effects
    # -------------------------------------------------------------------
    def _notify(self, send, *args, **kwargs) -> None:
        try:
            send(*args, **kwargs)
        except Exception:
            # The order write already committed; a lost inbox entry must not fail it.
            logger.exception("Could not record order notification", order_id=kwargs.get("order_id"))

    def _announce(self, order: Order, previous_status: str) -> OrderResult:
        self._notify(
            self.fanout.notify_from_template,
            order.customer_id,
            STATUS_TEMPLATES[order.status],
            {"order_number": order.order_number, "reason": order.cancellation_reason},
            order_id=str(order.id),
        )
        if order.status == OrderStatus.CANCELLED.value:
            delivered = self.outbound.order_cancelled(order, previous_status)
        else:
            delivered = self.outbound.order_status_changed(order, previous_status)
        return OrderResult(order=order, previous_status=previous_status, webhooks={"admin": delivered})

    @staticmethod
    def _customer(customer_id):
        try:
            return current_domain.repository_for(Customer).get(customer_id)
        except ObjectNotFoundError:
            return None
