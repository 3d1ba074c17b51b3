"""Configurable fake payment gateway for development and testing.

Simulates the gateway without external calls. It can be told to fail at
runtime and records every call it receives.
"""

from uuid import uuid4

from delivery.errors import UpstreamUnavailable
from delivery.gateway.port import GatewayOrder, GatewayPayment, PaymentGateway


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway timeout"
        self.payment_method: str = "upi"
        self.calls: list[dict] = []
        self.orders: dict[str, GatewayOrder] = {}

    @property
    def key_id(self) -> str:
        return "rzp_test_fake"

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway timeout", payment_method: str = "upi") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.payment_method = payment_method

    def create_order(self, amount_minor: int, currency: str, receipt: str) -> GatewayOrder:
        self.calls.append({"method": "create_order", "amount_minor": amount_minor, "currency": currency, "receipt": receipt})
        if not self.should_succeed:
            raise UpstreamUnavailable(f"Payment gateway unavailable: {self.failure_reason}")

        order = GatewayOrder(
            gateway_order_id=f"order_fake_{uuid4().hex[:14]}",
            amount_minor=amount_minor,
            currency=currency,
            receipt=receipt,
        )
        self.orders[order.gateway_order_id] = order
        return order

    def fetch_payment(self, payment_id: str) -> GatewayPayment:
        self.calls.append({"method": "fetch_payment", "payment_id": payment_id})
        if not self.should_succeed:
            raise UpstreamUnavailable(f"Payment gateway unavailable: {self.failure_reason}")

        # The most recent order stands in for the one the customer paid.
        order = list(self.orders.values())[-1] if self.orders else None
        raw = {
            "id": payment_id,
            "entity": "payment",
            "status": "captured",
            "method": self.payment_method,
            "order_id": order.gateway_order_id if order else None,
            "amount": order.amount_minor if order else None,
            "currency": order.currency if order else "INR",
        }
        return GatewayPayment(
            payment_id=payment_id,
            gateway_order_id=raw["order_id"],
            status="captured",
            method=self.payment_method,
            amount_minor=raw["amount"],
            raw=raw,
        )
