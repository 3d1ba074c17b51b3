"""Payment gateway port (abstract interface).

Defines the contract the payment adapters implement, so the reconciler can
run against FakeGateway in development and tests and against the Razorpay
adapter in production without code changes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class GatewayOrder:
    """A gateway-side order the customer's checkout pays against."""

    gateway_order_id: str
    amount_minor: int  # paise
    currency: str
    receipt: str


@dataclass(frozen=True)
class GatewayPayment:
    """Payment details as reported by the gateway. ``raw`` is kept for audit only."""

    payment_id: str
    gateway_order_id: str | None
    status: str
    method: str | None
    amount_minor: int | None
    raw: dict = field(default_factory=dict)


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @property
    @abstractmethod
    def key_id(self) -> str:
        """Public key the client checkout needs."""
        ...

    @abstractmethod
    def create_order(self, amount_minor: int, currency: str, receipt: str) -> GatewayOrder:
        """Create a gateway order. Raises UpstreamUnavailable on failure."""
        ...

    @abstractmethod
    def fetch_payment(self, payment_id: str) -> GatewayPayment:
        """Fetch payment details. Raises UpstreamUnavailable on failure."""
        ...
