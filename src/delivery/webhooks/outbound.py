"""OutboundWebhooks: best-effort pushes to the admin and driver systems.

One inline attempt per event, bounded by the adapter's timeout. The
outcome is returned to the caller as a boolean and recorded in the
WebhookDelivery log; a failure never propagates into the operation that
triggered it. ``redeliver_due`` retries failed rows from the worker. Delivery
codes are not kept in the log: a retry re-reads the order and resends the
code only while it is still active.
"""

import json
from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from delivery import config
from delivery.errors import UpstreamUnavailable
from delivery.locks import order_lock
from delivery.order.order import Order, OrderStatus
from delivery.webhooks.delivery_log import DeliveryStatus, WebhookDelivery, WebhookTarget
from delivery.webhooks.port import AdminNotifier, DriverNotifier

logger = structlog.get_logger(__name__)

OTP_EVENT = "otp_generated"


def _order_summary(order) -> dict:
    return {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "customer_id": str(order.customer_id),
        "status": order.status,
    }


class OutboundWebhooks:
    def __init__(self, admin: AdminNotifier, driver: DriverNotifier, keep_log: bool = True):
        self.admin = admin
        self.driver = driver
        self.keep_log = keep_log

    # -------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------
    def _notifier(self, target: str):
        return self.admin if target == WebhookTarget.ADMIN.value else self.driver

    def _deliver(self, target: str, event: str, payload: dict) -> bool:
        error = None
        try:
            self._notifier(target).send(event, payload)
        except UpstreamUnavailable as exc:
            error = exc.message
            logger.warning(
                "Outbound webhook failed",
                target=target,
                webhook_event=event,
                order_id=payload.get("order_id"),
                error=error,
            )

        if self.keep_log:
            self._log(target, event, payload, error)
        return error is None

    def _log(self, target, event, payload, error):
        if event == OTP_EVENT:
            # The code is re-read from the order on redelivery; it is never stored here.
            payload = {key: value for key, value in payload.items() if key != "otp"}
        try:
            record = WebhookDelivery.first_attempt(
                target,
                event,
                payload,
                error=error,
                retry_base=config.webhook_retry_base(),
                max_attempts=config.webhook_max_attempts(),
            )
            current_domain.repository_for(WebhookDelivery).add(record)
        except Exception:
            # The primary operation already committed; losing the log row must not undo it.
            logger.exception("Could not record outbound webhook", target=target, webhook_event=event)

    def to_admin(self, event: str, payload: dict) -> bool:
        return self._deliver(WebhookTarget.ADMIN.value, event, payload)

    def to_driver(self, event: str, payload: dict) -> bool:
        return self._deliver(WebhookTarget.DRIVER.value, event, payload)

    def supersede(self, order_id, event: str, reason: str) -> int:
        """Abandon pending retries of ``event`` for one order. Returns how many."""
        repo = current_domain.repository_for(WebhookDelivery)
        pending = (
            repo._dao.query.filter(order_id=str(order_id), event=event, status=DeliveryStatus.FAILED.value)
            .limit(None)
            .all()
            .items
        )
        for record in pending:
            record.abandon(reason)
            repo.add(record)
        return len(pending)

    def redeliver_due(self, as_of=None) -> dict:
        """Retry every failed delivery whose backoff has elapsed."""
        as_of = as_of or datetime.now(UTC)
        repo = current_domain.repository_for(WebhookDelivery)
        failed = (
            repo._dao.query.filter(status=DeliveryStatus.FAILED.value)
            .order_by("created_at")
            .limit(None)
            .all()
            .items
        )

        outcome = {"delivered": 0, "failed": 0, "abandoned": 0}
        for record in failed:
            if not record.is_due(as_of):
                continue
            if record.event == OTP_EVENT:
                status = self._redeliver_code(repo, record)
            else:
                status = self._redeliver(repo, record, record.decoded_payload())
            if status:
                outcome[status] += 1

        if any(outcome.values()):
            logger.info("Outbound webhooks redelivered", **outcome)
        return outcome

    def _redeliver(self, repo, record, payload: dict) -> str:
        error = None
        try:
            self._notifier(record.target).send(record.event, payload)
        except UpstreamUnavailable as exc:
            error = exc.message

        record.record_attempt(
            error,
            retry_base=config.webhook_retry_base(),
            max_attempts=config.webhook_max_attempts(),
        )
        repo.add(record)
        return record.status

    def _redeliver_code(self, repo, record) -> str | None:
        """Resend a delivery code only while it is still the order's active code.

        Runs under the order's lock, so it cannot interleave with a new code
        being issued. Returns None when the row was superseded meanwhile.
        """
        with order_lock(record.order_id):
            record = repo.get(record.id)
            if record.status != DeliveryStatus.FAILED.value:
                return None

            try:
                order = current_domain.repository_for(Order).get(record.order_id)
            except ObjectNotFoundError:
                order = None

            if order is None or order.status != OrderStatus.IN_TRANSIT.value or not order.delivery_otp:
                record.abandon("Delivery code is no longer active")
                repo.add(record)
                return record.status
            return self._redeliver(repo, record, {**record.decoded_payload(), "otp": order.delivery_otp})

    def health(self) -> dict:
        return {"admin": self.admin.health_check(), "driver": self.driver.health_check()}

    # -------------------------------------------------------------------
    # Order events
    # -------------------------------------------------------------------
    def order_placed(self, order, customer=None) -> dict:
        """Tell both systems about a new order. Returns per-target outcomes."""
        customer_block = {
            "name": customer.name if customer else None,
            "phone": customer.phone if customer else None,
        }
        admin_ok = self.to_admin(
            "new-order",
            {
                **_order_summary(order),
                "customer_name": customer_block["name"],
                "customer_phone": customer_block["phone"],
                "quantity": order.quantity,
                "total_amount": order.pricing.total_amount,
                "delivery_address": order.delivery_address,
                "scheduled_date": str(order.scheduled_date),
                "scheduled_time": order.scheduled_time,
                "created_at": order.created_at.isoformat() if order.created_at else None,
            },
        )
        driver_ok = self.to_driver(
            "new_order",
            {
                "action": "new_order",
                "order_id": str(order.id),
                "order_number": order.order_number,
                "customer": customer_block,
                "order_details": {
                    "quantity": order.quantity,
                    "rate_per_liter": order.pricing.rate_per_liter,
                    "total_amount": order.pricing.total_amount,
                },
                "delivery": {
                    "address": order.delivery_address,
                    "latitude": order.delivery_latitude,
                    "longitude": order.delivery_longitude,
                    "scheduled_date": str(order.scheduled_date),
                    "scheduled_time": order.scheduled_time,
                },
            },
        )
        return {"admin": admin_ok, "driver": driver_ok}

    def order_status_changed(self, order, previous_status: str) -> bool:
        return self.to_admin(
            "order-status-change",
            {
                **_order_summary(order),
                "old_status": previous_status,
                "new_status": order.status,
                "driver_id": str(order.driver_id) if order.driver_id else None,
                "changed_by": order.status_changed_by,
                "changed_at": order.updated_at.isoformat() if order.updated_at else None,
            },
        )

    def order_cancelled(self, order, previous_status: str) -> bool:
        return self.to_admin(
            "order-cancelled",
            {
                **_order_summary(order),
                "previous_status": previous_status,
                "reason": order.cancellation_reason,
                "cancelled_by": order.cancelled_by,
            },
        )

    def high_value_order(self, order, threshold) -> bool:
        return self.to_admin(
            "high-value-order",
            {
                **_order_summary(order),
                "total_amount": order.pricing.total_amount,
                "threshold": str(threshold),
            },
        )

    def otp_generated(self, order, code: str) -> bool:
        return self.to_driver(
            OTP_EVENT,
            {
                "action": OTP_EVENT,
                "order_id": str(order.id),
                "order_number": order.order_number,
                "otp": code,
            },
        )

    # -------------------------------------------------------------------
    # Payment events
    # -------------------------------------------------------------------
    def payment_completed(self, payment, order) -> bool:
        return self.to_admin(
            "payment-completed",
            {
                **_order_summary(order),
                "payment_id": str(payment.id),
                "amount": payment.amount,
                "method": payment.method,
                "transaction_id": payment.transaction_id,
            },
        )

    def payment_failed(self, payment, order, reason: str) -> bool:
        return self.to_admin(
            "payment-failed",
            {
                **_order_summary(order),
                "payment_id": str(payment.id),
                "amount": payment.amount,
                "method": payment.method,
                "reason": reason,
            },
        )

    # -------------------------------------------------------------------
    # Customer events
    # -------------------------------------------------------------------
    def customer_registered(self, customer) -> bool:
        return self.to_admin(
            "customer-registration",
            {
                "customer_id": str(customer.id),
                "name": customer.name,
                "email": customer.email,
                "phone": customer.phone,
            },
        )

    def kyc_submitted(self, customer) -> bool:
        documents = json.loads(customer.kyc_documents) if customer.kyc_documents else {}
        return self.to_admin(
            "kyc-submission",
            {
                "customer_id": str(customer.id),
                "name": customer.name,
                "email": customer.email,
                "document_types": sorted(documents),
            },
        )
