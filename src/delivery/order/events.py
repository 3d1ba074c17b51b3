"""Domain events for the Order aggregate.

Events are versioned, immutable audit facts. They never carry the delivery
verification code itself.
"""

from protean.fields import Date, DateTime, Identifier, Integer, String

from delivery.domain import delivery


@delivery.event(part_of="Order")
class OrderPlaced:
    """A customer placed a new order; pricing was frozen at this moment."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    quantity = Integer(required=True)
    rate_per_liter = String(required=True)
    total_amount = String(required=True)
    scheduled_date = Date(required=True)
    scheduled_time = String(required=True)
    placed_at = DateTime(required=True)


@delivery.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    driver_id = Identifier()
    changed_by = String(required=True)
    changed_at = DateTime(required=True)


@delivery.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    from_status = String(required=True)
    reason = String(required=True)
    cancelled_by = String(required=True)
    cancelled_at = DateTime(required=True)


@delivery.event(part_of="Order")
class DeliveryOtpIssued:
    """A fresh verification code replaced any previous one."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    issued_at = DateTime(required=True)
