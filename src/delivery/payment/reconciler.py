"""PaymentReconciler: the only writer of Payment rows.

Two regimes:
- Cash on delivery records a PENDING payment and nothing else.
- Gateway payments run a two-step protocol: ``initiate`` opens a
  gateway order for the exact order total, and ``verify`` checks the
  HMAC signature the checkout returns before completing the payment.

Demo gateway methods submitted through ``submit`` complete through a
deferred ScheduledSettlement instead of a sleep. No payment path ever
changes order status; paid and dispatched are independent facts.
"""

import json
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import structlog
from protean.utils.globals import current_domain

from delivery.actors import Actor
from delivery.errors import InvalidState, PermissionDenied, UpstreamUnavailable
from delivery.gateway.port import PaymentGateway
from delivery.locks import order_lock
from delivery.notification.fanout import NotificationFanout
from delivery.order.order import Order, OrderStatus
from delivery.order.state_machine import OrderStateMachine
from delivery.payment.payment import Payment, PaymentMethod, PaymentStatus, method_from_gateway
from delivery.payment.recording import CompletePayment, FailPayment, RecordPayment, completed_payment_for
from delivery.payment.settlement import (
    ResolveSettlement,
    ScheduleSettlement,
    SettlementStatus,
    scheduled_settlements,
)
from delivery.payment.signature import verify_signature
from delivery.webhooks.outbound import OutboundWebhooks

logger = structlog.get_logger(__name__)

CURRENCY = "INR"


@dataclass(frozen=True)
class GatewayCheckout:
    payment_id: str
    gateway_order_id: str
    amount: str
    amount_minor: int
    currency: str
    key_id: str


class PaymentReconciler:
    def __init__(
        self,
        gateway: PaymentGateway,
        fanout: NotificationFanout,
        outbound: OutboundWebhooks,
        signing_secret: str,
        settlement_delay: float = 2.0,
    ):
        self.gateway = gateway
        self.fanout = fanout
        self.outbound = outbound
        self.signing_secret = signing_secret
        self.settlement_delay = settlement_delay

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @staticmethod
    def _payable_order(order_id, actor: Actor) -> Order:
        order = OrderStateMachine.load(order_id)
        if actor.is_customer and not order.is_owned_by(actor.user_id):
            raise PermissionDenied("Payments can only be made for your own orders", order_id=str(order_id))
        if order.status == OrderStatus.CANCELLED.value:
            raise InvalidState("Cancelled orders cannot be paid", order_id=str(order_id))
        if completed_payment_for(order_id) is not None:
            raise InvalidState("This order is already paid", order_id=str(order_id))
        return order

    @staticmethod
    def _load(payment_id) -> Payment:
        return current_domain.repository_for(Payment).get(payment_id)

    def _record(self, order: Order, method: str, status: str, gateway_order_id=None) -> Payment:
        payment_id = current_domain.process(
            RecordPayment(
                order_id=str(order.id),
                customer_id=str(order.customer_id),
                amount=order.pricing.total_amount,
                method=method,
                status=status,
                gateway_order_id=gateway_order_id,
            ),
            asynchronous=False,
        )
        return self._load(payment_id)

    def _announce_completed(self, payment: Payment, order: Order) -> bool:
        self.fanout.notify_from_template(
            order.customer_id,
            "payment_received",
            {"order_number": order.order_number, "amount": payment.amount, "method": payment.method},
            order_id=str(order.id),
        )
        return self.outbound.payment_completed(payment, order)

    def _announce_failed(self, payment: Payment, order: Order, reason: str) -> bool:
        self.fanout.notify_from_template(
            order.customer_id,
            "payment_failed",
            {"order_number": order.order_number, "reason": reason},
            order_id=str(order.id),
        )
        return self.outbound.payment_failed(payment, order, reason)

    # -------------------------------------------------------------------
    # Cash on delivery
    # -------------------------------------------------------------------
    def record_cod(self, order_id, actor: Actor) -> Payment:
        """Record a PENDING cash-on-delivery payment. The order is not touched."""
        with order_lock(str(order_id)):
            order = self._payable_order(order_id, actor)
            repo = current_domain.repository_for(Payment)
            existing = repo._dao.query.filter(
                order_id=str(order.id), method=PaymentMethod.COD.value, status=PaymentStatus.PENDING.value
            ).all().items
            if existing:
                return existing[0]

            payment = self._record(order, PaymentMethod.COD.value, PaymentStatus.PENDING.value)

        logger.info("Cash on delivery recorded", order_id=str(order.id), payment_id=str(payment.id))
        self.fanout.notify_from_template(
            order.customer_id,
            "cash_on_delivery",
            {"order_number": order.order_number, "amount": payment.amount},
            order_id=str(order.id),
        )
        return payment

    # -------------------------------------------------------------------
    # Direct submission (demo gateway methods settle later)
    # -------------------------------------------------------------------
    def submit(self, order_id, method: str, actor: Actor) -> Payment:
        if method == PaymentMethod.COD.value:
            return self.record_cod(order_id, actor)

        with order_lock(str(order_id)):
            order = self._payable_order(order_id, actor)
            payment = self._record(order, method, PaymentStatus.PROCESSING.value)
            due_at = datetime.now(UTC) + timedelta(seconds=self.settlement_delay)
            current_domain.process(
                ScheduleSettlement(payment_id=str(payment.id), order_id=str(order.id), due_at=due_at),
                asynchronous=False,
            )

        logger.info("Payment processing", order_id=str(order.id), payment_id=str(payment.id), method=method)
        return payment

    def process_due_settlements(self, as_of=None) -> dict:
        """Fire every settlement whose delay has elapsed."""
        as_of = as_of or datetime.now(UTC)
        outcome = {"completed": 0, "cancelled": 0}

        for settlement in scheduled_settlements():
            if not settlement.is_due(as_of):
                continue
            if self._settle(settlement):
                outcome["completed"] += 1
            else:
                outcome["cancelled"] += 1

        if any(outcome.values()):
            logger.info("Settlements processed", as_of=str(as_of), **outcome)
        return outcome

    def _settle(self, settlement) -> bool:
        """Complete one settlement. Returns False when it had to be cancelled."""
        with order_lock(str(settlement.order_id)):
            order = OrderStateMachine.load(settlement.order_id)
            payment = self._load(settlement.payment_id)

            if payment.status == PaymentStatus.COMPLETED.value:
                # Payment completed on an earlier run; only the settlement is left
                self._resolve(settlement, SettlementStatus.COMPLETED, "Payment already completed")
                return True

            reason = None
            if order.status == OrderStatus.CANCELLED.value:
                reason = "Order cancelled before payment completed"
            elif completed_payment_for(order.id) is not None:
                reason = "Order already paid"

            if reason:
                self._fail_payment(payment, reason)
                self._resolve(settlement, SettlementStatus.CANCELLED, reason)
                payment = self._load(payment.id)
            else:
                current_domain.process(
                    CompletePayment(payment_id=str(payment.id), transaction_id=f"SIM{uuid4().hex[:12].upper()}"),
                    asynchronous=False,
                )
                self._resolve(settlement, SettlementStatus.COMPLETED)
                payment = self._load(payment.id)

        if reason:
            self._announce_failed(payment, order, reason)
            return False
        self._announce_completed(payment, order)
        return True

    def cancel_pending_settlements(self, order_id, reason="Order cancelled") -> int:
        """Cancel scheduled settlements for an order. COD payments are untouched."""
        cancelled = 0
        with order_lock(str(order_id)):
            for settlement in scheduled_settlements(order_id=str(order_id)):
                payment = self._load(settlement.payment_id)
                if payment.status in (PaymentStatus.PENDING.value, PaymentStatus.PROCESSING.value):
                    self._fail_payment(payment, reason)
                self._resolve(settlement, SettlementStatus.CANCELLED, reason)
                cancelled += 1

        if cancelled:
            logger.info("Pending settlements cancelled", order_id=str(order_id), count=cancelled)
        return cancelled

    @staticmethod
    def _fail_payment(payment, reason):
        current_domain.process(FailPayment(payment_id=str(payment.id), reason=reason), asynchronous=False)

    @staticmethod
    def _resolve(settlement, outcome: SettlementStatus, note=None):
        current_domain.process(
            ResolveSettlement(settlement_id=str(settlement.id), outcome=outcome.value, note=note),
            asynchronous=False,
        )

    # -------------------------------------------------------------------
    # Gateway two-step
    # -------------------------------------------------------------------
    def initiate(self, order_id, actor: Actor, method: str = PaymentMethod.UPI.value) -> GatewayCheckout:
        """Open a gateway order for the order total and record a PENDING payment.

        The gateway call is the operation itself here, so UpstreamUnavailable
        propagates.
        """
        with order_lock(str(order_id)):
            order = self._payable_order(order_id, actor)
            total = Decimal(order.pricing.total_amount)
            gateway_order = self.gateway.create_order(
                amount_minor=int(total * 100),
                currency=CURRENCY,
                receipt=order.order_number,
            )
            payment = self._record(
                order, method, PaymentStatus.PENDING.value, gateway_order_id=gateway_order.gateway_order_id
            )

        logger.info(
            "Gateway order created",
            order_id=str(order.id),
            gateway_order_id=gateway_order.gateway_order_id,
            amount=order.pricing.total_amount,
        )
        return GatewayCheckout(
            payment_id=str(payment.id),
            gateway_order_id=gateway_order.gateway_order_id,
            amount=order.pricing.total_amount,
            amount_minor=gateway_order.amount_minor,
            currency=gateway_order.currency,
            key_id=self.gateway.key_id,
        )

    def verify(self, order_id, gateway_order_id, gateway_payment_id, signature, actor: Actor) -> Payment:
        """Authenticate a gateway payment and complete it, at most once per order."""
        order = OrderStateMachine.load(order_id)
        if actor.is_customer and not order.is_owned_by(actor.user_id):
            raise PermissionDenied("Payments can only be verified for your own orders", order_id=str(order_id))

        verify_signature(order.id, gateway_order_id, gateway_payment_id, signature, self.signing_secret)

        with order_lock(str(order_id)):
            completed = completed_payment_for(order.id)
            if completed is not None:
                if completed.transaction_id == gateway_payment_id:
                    logger.info("Payment already verified", order_id=str(order.id), payment_id=str(completed.id))
                    return completed
                raise InvalidState("This order is already paid", order_id=str(order.id))

            repo = current_domain.repository_for(Payment)
            matching = (
                repo._dao.query.filter(order_id=str(order.id), gateway_order_id=gateway_order_id)
                .limit(None)
                .all()
                .items
            )
            pending = [
                p
                for p in matching
                if p.status in (PaymentStatus.PENDING.value, PaymentStatus.PROCESSING.value)
            ]
            if not pending:
                raise InvalidState("No open gateway payment matches this order", order_id=str(order.id))
            payment = pending[0]

            try:
                details = self.gateway.fetch_payment(gateway_payment_id)
            except UpstreamUnavailable as exc:
                logger.warning(
                    "Could not fetch gateway payment details",
                    order_id=str(order.id),
                    gateway_payment_id=gateway_payment_id,
                    error=exc.message,
                )
                details = None

            current_domain.process(
                CompletePayment(
                    payment_id=str(payment.id),
                    transaction_id=gateway_payment_id,
                    gateway_response=json.dumps(details.raw, default=str) if details else None,
                    method=method_from_gateway(details.method if details else None, payment.method),
                ),
                asynchronous=False,
            )
            payment = self._load(payment.id)

        logger.info("Gateway payment verified", order_id=str(order.id), payment_id=str(payment.id))
        self._announce_completed(payment, order)
        return payment

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    @staticmethod
    def payments_for_order(order_id, actor: Actor) -> list[Payment]:
        order = OrderStateMachine.load(order_id)
        if actor.is_customer and not order.is_owned_by(actor.user_id):
            raise PermissionDenied("Payments can only be listed for your own orders", order_id=str(order_id))
        repo = current_domain.repository_for(Payment)
        return repo._dao.query.filter(order_id=str(order.id)).order_by("created_at").limit(None).all().items
