"""PlaceOrder command and handler: create a PENDING order with frozen pricing."""

import secrets
from datetime import UTC, datetime

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Date, Identifier, Integer, String
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.order.order import Order, OrderPricing, TimeSlot

_ORDER_NUMBER_ATTEMPTS = 10


@delivery.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)

    # Frozen pricing snapshot
    rate_per_liter = String(required=True, max_length=20)
    subtotal = String(required=True, max_length=20)
    delivery_charges = String(required=True, max_length=20)
    gst = String(required=True, max_length=20)
    total_amount = String(required=True, max_length=20)

    delivery_address = String(required=True, max_length=500)
    delivery_latitude = String(max_length=20)
    delivery_longitude = String(max_length=20)
    address_id = Identifier()

    scheduled_date = Date(required=True)
    scheduled_time = String(choices=TimeSlot, required=True)


def generate_order_number() -> str:
    """``FS`` + yymmdd + six random digits, e.g. ``FS261019042137``."""
    return f"FS{datetime.now(UTC):%y%m%d}{secrets.randbelow(10**6):06d}"


def _unused_order_number(repo) -> str:
    for _ in range(_ORDER_NUMBER_ATTEMPTS):
        candidate = generate_order_number()
        if not repo._dao.query.filter(order_number=candidate).all().items:
            return candidate
    raise ValidationError({"order_number": ["Could not allocate a unique order number"]})


@delivery.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        repo = current_domain.repository_for(Order)
        order = Order.place(
            order_number=_unused_order_number(repo),
            customer_id=command.customer_id,
            quantity=command.quantity,
            pricing=OrderPricing(
                rate_per_liter=command.rate_per_liter,
                subtotal=command.subtotal,
                delivery_charges=command.delivery_charges,
                gst=command.gst,
                total_amount=command.total_amount,
            ),
            delivery_address=command.delivery_address,
            delivery_latitude=command.delivery_latitude,
            delivery_longitude=command.delivery_longitude,
            address_id=command.address_id,
            scheduled_date=command.scheduled_date,
            scheduled_time=command.scheduled_time,
        )
        repo.add(order)
        return str(order.id)
