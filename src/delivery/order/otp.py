"""DeliveryOtpManager: issue and forward the delivery verification code.

A code is a uniformly random six-digit string (leading zeros allowed). Each
generation replaces the previous code. Generation and forwarding happen
under the order's lock, so two codes for the same order can never reach
the driver system out of order, and a pending retry of an older send is
dropped before the next one goes out.
"""

import secrets
from dataclasses import dataclass

import structlog

from delivery.actors import Actor
from delivery.errors import InvalidState
from delivery.locks import order_lock
from delivery.order.order import OrderStatus
from delivery.order.state_machine import OrderStateMachine
from delivery.webhooks.outbound import OTP_EVENT, OutboundWebhooks

logger = structlog.get_logger(__name__)


def new_code(previous: str | None = None) -> str:
    """Six random digits, always different from ``previous``."""
    while True:
        code = f"{secrets.randbelow(10**6):06d}"
        if code != previous:
            return code


@dataclass(frozen=True)
class OtpIssue:
    code: str
    forwarded: bool


class DeliveryOtpManager:
    def __init__(self, state_machine: OrderStateMachine, outbound: OutboundWebhooks):
        self.state_machine = state_machine
        self.outbound = outbound

    def _check_access(self, order, actor: Actor):
        if actor.is_customer and not order.is_owned_by(actor.user_id):
            raise InvalidState("Delivery codes can only be requested for your own orders", order_id=str(order.id))
        if order.status != OrderStatus.IN_TRANSIT.value:
            raise InvalidState(
                f"A delivery code can only be issued while the order is in transit (order is {order.status})",
                order_id=str(order.id),
            )

    def _forward(self, order, code: str) -> bool:
        superseded = self.outbound.supersede(order.id, OTP_EVENT, "Superseded by a newer delivery code send")
        if superseded:
            logger.info("Pending delivery code retries dropped", order_id=str(order.id), count=superseded)
        return self.outbound.otp_generated(order, code)

    def _issue(self, order) -> OtpIssue:
        code = new_code(order.delivery_otp)
        order = self.state_machine.record_otp(order.id, code)
        forwarded = self._forward(order, code)
        logger.info("Delivery code issued", order_id=str(order.id), forwarded=forwarded)
        return OtpIssue(code=code, forwarded=forwarded)

    def generate(self, order_id, actor: Actor) -> OtpIssue:
        """Issue a fresh code, replacing any active one, and forward it."""
        with order_lock(str(order_id)):
            order = self.state_machine.load(order_id)
            self._check_access(order, actor)
            return self._issue(order)

    def ensure(self, order_id) -> OtpIssue | None:
        """Issue a code only if the in-transit order has none yet."""
        with order_lock(str(order_id)):
            order = self.state_machine.load(order_id)
            if order.status != OrderStatus.IN_TRANSIT.value or order.delivery_otp:
                return None
            return self._issue(order)

    def resend(self, order_id, actor: Actor) -> bool:
        """Forward the active code again without replacing it."""
        with order_lock(str(order_id)):
            order = self.state_machine.load(order_id)
            self._check_access(order, actor)
            if not order.delivery_otp:
                raise InvalidState("No delivery code has been issued for this order", order_id=str(order.id))
            return self._forward(order, order.delivery_otp)
