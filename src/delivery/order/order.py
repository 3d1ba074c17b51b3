"""Order aggregate: the fuel delivery order and its status lifecycle.

State Machine:
    PENDING -> CONFIRMED -> IN_TRANSIT -> DELIVERED
    PENDING -> CANCELLED
    CONFIRMED -> CANCELLED

DELIVERED and CANCELLED are terminal. Transitions are compare-and-swap: the
caller names the status it believes the order is in, and the write only
happens if that is still the persisted status.
"""

import re
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Date, DateTime, Identifier, Integer, String, ValueObject

from delivery.domain import delivery
from delivery.errors import ConcurrentModification, InvalidState, InvalidTransition
from delivery.order.events import DeliveryOtpIssued, OrderCancelled, OrderPlaced, OrderStatusChanged


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class TimeSlot(Enum):
    SLOT_0900 = "09:00"
    SLOT_1100 = "11:00"
    SLOT_1300 = "13:00"
    SLOT_1500 = "15:00"
    SLOT_1700 = "17:00"
    SLOT_1900 = "19:00"


# ---------------------------------------------------------------------------
# State Machine
# ---------------------------------------------------------------------------
_LEGAL_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.IN_TRANSIT, OrderStatus.CANCELLED},
    OrderStatus.IN_TRANSIT: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

# The code is only meaningful while the driver is on the way.
_OTP_CLEARING_STATES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

_OTP_PATTERN = re.compile(r"^\d{6}$")


def parse_status(value) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidTransition(f"Unknown order status '{value}'") from None


def is_legal_edge(source, target) -> bool:
    return parse_status(target) in _LEGAL_TRANSITIONS[parse_status(source)]


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@delivery.value_object(part_of="Order")
class OrderPricing:
    """Commercial terms frozen at placement.

    Amounts are canonical decimal strings. Nothing on the order rewrites
    them, even when the configured rate or tax changes later.
    """

    rate_per_liter = String(required=True, max_length=20)
    subtotal = String(required=True, max_length=20)
    delivery_charges = String(required=True, max_length=20)
    gst = String(required=True, max_length=20)
    total_amount = String(required=True, max_length=20)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@delivery.aggregate
class Order:
    order_number = String(required=True, max_length=20)
    customer_id = Identifier(required=True)

    # Commercial snapshot
    quantity = Integer(required=True, min_value=1)
    pricing = ValueObject(OrderPricing)

    # Delivery target
    delivery_address = String(required=True, max_length=500)
    delivery_latitude = String(max_length=20)
    delivery_longitude = String(max_length=20)
    address_id = Identifier()

    # Schedule
    scheduled_date = Date(required=True)
    scheduled_time = String(choices=TimeSlot, required=True)

    # Lifecycle
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    driver_id = Identifier()
    delivery_otp = String(max_length=6)
    status_changed_by = String(max_length=100)
    cancellation_reason = String(max_length=500)
    cancelled_by = String(max_length=100)

    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def place(
        cls,
        order_number,
        customer_id,
        quantity,
        pricing: OrderPricing,
        delivery_address,
        scheduled_date,
        scheduled_time,
        delivery_latitude=None,
        delivery_longitude=None,
        address_id=None,
    ):
        """Create a new order in PENDING status."""
        now = datetime.now(UTC)
        order = cls(
            order_number=order_number,
            customer_id=customer_id,
            quantity=quantity,
            pricing=pricing,
            delivery_address=delivery_address,
            delivery_latitude=delivery_latitude,
            delivery_longitude=delivery_longitude,
            address_id=address_id,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
            status=OrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                customer_id=str(customer_id),
                quantity=quantity,
                rate_per_liter=pricing.rate_per_liter,
                total_amount=pricing.total_amount,
                scheduled_date=order.scheduled_date,
                scheduled_time=scheduled_time,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Compare-and-swap transition
    # -------------------------------------------------------------------
    def transition(self, expected_status, target_status, changed_by, driver_id=None, reason=None):
        """Move from ``expected_status`` to ``target_status``.

        Status, driver and OTP fields change together; any failure leaves the
        order untouched.
        """
        expected = parse_status(expected_status)
        target = parse_status(target_status)

        if target not in _LEGAL_TRANSITIONS[expected]:
            raise InvalidTransition(
                f"Cannot move an order from {expected.value} to {target.value}",
                order_id=str(self.id),
            )
        if self.status != expected.value:
            raise ConcurrentModification(
                f"Order {self.order_number} is {self.status}, not {expected.value}",
                order_id=str(self.id),
                current_status=self.status,
            )
        if target == OrderStatus.CANCELLED and not (reason or "").strip():
            raise ValidationError({"reason": ["A cancellation reason is required"]})

        now = datetime.now(UTC)
        self.status = target.value
        self.status_changed_by = changed_by
        self.updated_at = now
        if driver_id:
            self.driver_id = driver_id
        if target in _OTP_CLEARING_STATES:
            self.delivery_otp = None

        if target == OrderStatus.CANCELLED:
            self.cancellation_reason = reason.strip()
            self.cancelled_by = changed_by
            self.raise_(
                OrderCancelled(
                    order_id=str(self.id),
                    order_number=self.order_number,
                    from_status=expected.value,
                    reason=self.cancellation_reason,
                    cancelled_by=changed_by,
                    cancelled_at=now,
                )
            )
        else:
            self.raise_(
                OrderStatusChanged(
                    order_id=str(self.id),
                    order_number=self.order_number,
                    from_status=expected.value,
                    to_status=target.value,
                    driver_id=self.driver_id,
                    changed_by=changed_by,
                    changed_at=now,
                )
            )

    # -------------------------------------------------------------------
    # Delivery verification code
    # -------------------------------------------------------------------
    def record_delivery_otp(self, code):
        """Replace the active verification code. Only legal while in transit."""
        if self.status != OrderStatus.IN_TRANSIT.value:
            raise InvalidState(
                f"A delivery code can only be issued while the order is in transit (order is {self.status})",
                order_id=str(self.id),
            )
        if not _OTP_PATTERN.match(code or ""):
            raise ValidationError({"delivery_otp": ["Delivery code must be exactly six digits"]})

        now = datetime.now(UTC)
        self.delivery_otp = code
        self.updated_at = now
        self.raise_(DeliveryOtpIssued(order_id=str(self.id), order_number=self.order_number, issued_at=now))

    # -------------------------------------------------------------------
    # Read helpers
    # -------------------------------------------------------------------
    def is_owned_by(self, customer_id) -> bool:
        return str(self.customer_id) == str(customer_id)

    @property
    def is_terminal(self) -> bool:
        return not _LEGAL_TRANSITIONS[OrderStatus(self.status)]
