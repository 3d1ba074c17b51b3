"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations. The
PAYMENT_GATEWAY environment variable picks one:
- fake (default): FakeGateway for development and testing
- razorpay: RazorpayGateway against the live REST API
"""

from delivery import config
from delivery.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway."""
    global _current_gateway
    if _current_gateway is None:
        adapter = config.payment_gateway_adapter()
        if adapter == "fake":
            from delivery.gateway.fake_adapter import FakeGateway

            _current_gateway = FakeGateway()
        elif adapter == "razorpay":
            from delivery.gateway.razorpay_adapter import RazorpayGateway

            _current_gateway = RazorpayGateway()
        else:
            raise ValueError(f"Unknown payment gateway: {adapter}")
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to the configured default gateway."""
    global _current_gateway
    _current_gateway = None
