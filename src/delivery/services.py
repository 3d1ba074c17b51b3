"""Composition root: wires the delivery services to their adapters.

Only this module (and the API dependencies that call it) reads the
module-level gateway and notifier factories; every service below receives
its collaborators through its constructor.
"""

from dataclasses import dataclass

from delivery import config
from delivery.customer.onboarding import CustomerOnboarding
from delivery.gateway import get_gateway
from delivery.gateway.port import PaymentGateway
from delivery.notification.fanout import NotificationFanout
from delivery.order.otp import DeliveryOtpManager
from delivery.order.state_machine import OrderStateMachine
from delivery.payment.reconciler import PaymentReconciler
from delivery.webhooks import get_admin_notifier, get_driver_notifier
from delivery.webhooks.inbound import DeliveryStatusReceiver
from delivery.webhooks.outbound import OutboundWebhooks
from delivery.webhooks.port import AdminNotifier, DriverNotifier


@dataclass(frozen=True)
class Services:
    fanout: NotificationFanout
    outbound: OutboundWebhooks
    orders: OrderStateMachine
    otp: DeliveryOtpManager
    payments: PaymentReconciler
    receiver: DeliveryStatusReceiver
    onboarding: CustomerOnboarding


def build_services(
    gateway: PaymentGateway | None = None,
    admin: AdminNotifier | None = None,
    driver: DriverNotifier | None = None,
) -> Services:
    fanout = NotificationFanout()
    outbound = OutboundWebhooks(admin or get_admin_notifier(), driver or get_driver_notifier())
    orders = OrderStateMachine(fanout, outbound)
    otp = DeliveryOtpManager(orders, outbound)
    payments = PaymentReconciler(
        gateway or get_gateway(),
        fanout,
        outbound,
        signing_secret=config.gateway_key_secret(),
        settlement_delay=config.payment_simulation_delay(),
    )
    return Services(
        fanout=fanout,
        outbound=outbound,
        orders=orders,
        otp=otp,
        payments=payments,
        receiver=DeliveryStatusReceiver(orders, otp),
        onboarding=CustomerOnboarding(fanout, outbound),
    )
