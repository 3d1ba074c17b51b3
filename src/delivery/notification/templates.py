"""Notification templates: human wording for each lifecycle event.

Each template names the notification type it produces and renders a title
and message from a context dict.
"""

from delivery.notification.notification import NotificationType


class OrderPlacedTemplate:
    notification_type = NotificationType.ORDER_UPDATE.value

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "title": "Order placed",
            "message": (
                f"Your order {context['order_number']} for {context['quantity']} liters "
                f"(total Rs. {context['total_amount']}) has been placed and is awaiting confirmation."
            ),
        }


class OrderConfirmedTemplate:
    notification_type = NotificationType.ORDER_UPDATE.value

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "title": "Order confirmed",
            "message": f"Your order {context['order_number']} is confirmed and a driver has been assigned.",
        }


class OrderInTransitTemplate:
    notification_type = NotificationType.ORDER_UPDATE.value

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "title": "Driver on the way",
            "message": (
                f"Your order {context['order_number']} is on its way. "
                "Share the delivery code with the driver when the fuel arrives."
            ),
        }


class OrderDeliveredTemplate:
    notification_type = NotificationType.DELIVERY.value

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "title": "Order delivered",
            "message": f"Your order {context['order_number']} has been delivered. Thank you!",
        }


class OrderCancelledTemplate:
    notification_type = NotificationType.ORDER_UPDATE.value

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "title": "Order cancelled",
            "message": f"Your order {context['order_number']} was cancelled: {context['reason']}",
        }


class PaymentReceivedTemplate:
    notification_type = NotificationType.PAYMENT.value

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "title": "Payment successful",
            "message": (
                f"We received Rs. {context['amount']} for order {context['order_number']} "
                f"via {context['method']}."
            ),
        }


class PaymentFailedTemplate:
    notification_type = NotificationType.PAYMENT.value

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "title": "Payment failed",
            "message": f"Payment for order {context['order_number']} did not go through: {context['reason']}",
        }


class CashOnDeliveryTemplate:
    notification_type = NotificationType.PAYMENT.value

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "title": "Cash on delivery selected",
            "message": f"Please keep Rs. {context['amount']} ready when order {context['order_number']} arrives.",
        }


class HighValueOrderTemplate:
    notification_type = NotificationType.ORDER_UPDATE.value

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "title": "High-value order placed",
            "message": (
                f"Order {context['order_number']} totals Rs. {context['total_amount']}, "
                f"above the Rs. {context['threshold']} review threshold."
            ),
        }


class KycSubmittedTemplate:
    notification_type = NotificationType.KYC.value

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "title": "KYC submitted",
            "message": f"{context['customer_name']} submitted KYC documents for review.",
        }


TEMPLATE_REGISTRY: dict[str, type] = {
    "order_placed": OrderPlacedTemplate,
    "order_confirmed": OrderConfirmedTemplate,
    "order_in_transit": OrderInTransitTemplate,
    "order_delivered": OrderDeliveredTemplate,
    "order_cancelled": OrderCancelledTemplate,
    "payment_received": PaymentReceivedTemplate,
    "payment_failed": PaymentFailedTemplate,
    "cash_on_delivery": CashOnDeliveryTemplate,
    "high_value_order": HighValueOrderTemplate,
    "kyc_submitted": KycSubmittedTemplate,
}

# Template used when an order enters each status
STATUS_TEMPLATES = {
    "confirmed": "order_confirmed",
    "in_transit": "order_in_transit",
    "delivered": "order_delivered",
    "cancelled": "order_cancelled",
}


def get_template(name: str):
    template_cls = TEMPLATE_REGISTRY.get(name)
    if template_cls is None:
        raise ValueError(f"No template registered for: {name}")
    return template_cls
