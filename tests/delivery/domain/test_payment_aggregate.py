"""Tests for the Payment aggregate and its state machine."""

import json

import pytest
from protean.exceptions import ValidationError

from delivery.payment.events import PaymentCompleted, PaymentFailed, PaymentRecorded
from delivery.payment.payment import Payment, PaymentMethod, PaymentStatus, method_from_gateway


def _make_payment(**overrides):
    defaults = {
        "order_id": "ord-001",
        "customer_id": "cust-001",
        "amount": "35604.00",
        "method": PaymentMethod.UPI.value,
    }
    defaults.update(overrides)
    return Payment.record(**defaults)


class TestPaymentRecording:
    def test_defaults_to_pending_in_inr(self):
        payment = _make_payment()
        assert payment.status == PaymentStatus.PENDING.value
        assert payment.currency == "INR"
        assert payment.amount == "35604.00"

    def test_can_start_processing(self):
        payment = _make_payment(status=PaymentStatus.PROCESSING.value)
        assert payment.status == PaymentStatus.PROCESSING.value

    def test_cannot_start_completed(self):
        with pytest.raises(ValidationError):
            _make_payment(status=PaymentStatus.COMPLETED.value)

    def test_rejects_unknown_method(self):
        with pytest.raises(ValidationError):
            _make_payment(method="bitcoin")

    def test_raises_payment_recorded(self):
        payment = _make_payment()
        assert isinstance(payment._events[0], PaymentRecorded)


class TestPaymentStateMachine:
    def test_pending_to_completed(self):
        payment = _make_payment()
        payment.complete("pay_001")
        assert payment.status == PaymentStatus.COMPLETED.value
        assert payment.transaction_id == "pay_001"

    def test_processing_to_completed(self):
        payment = _make_payment(status=PaymentStatus.PROCESSING.value)
        payment.complete("SIM123")
        assert payment.status == PaymentStatus.COMPLETED.value

    def test_completion_keeps_gateway_response_for_audit(self):
        payment = _make_payment()
        payment.complete("pay_001", gateway_response={"status": "captured"}, method="cards")
        assert json.loads(payment.gateway_response) == {"status": "captured"}
        assert payment.method == "cards"

    def test_completion_raises_event(self):
        payment = _make_payment()
        payment._events.clear()
        payment.complete("pay_001")
        assert isinstance(payment._events[0], PaymentCompleted)
        assert payment._events[0].transaction_id == "pay_001"

    def test_failure_records_reason(self):
        payment = _make_payment(status=PaymentStatus.PROCESSING.value)
        payment._events.clear()
        payment.fail("Order cancelled")
        assert payment.status == PaymentStatus.FAILED.value
        assert payment.failure_reason == "Order cancelled"
        assert isinstance(payment._events[0], PaymentFailed)

    def test_cannot_complete_twice(self):
        payment = _make_payment()
        payment.complete("pay_001")
        with pytest.raises(ValidationError):
            payment.complete("pay_002")

    def test_cannot_complete_after_failure(self):
        payment = _make_payment()
        payment.fail("Declined")
        with pytest.raises(ValidationError):
            payment.complete("pay_001")

    def test_cannot_fail_completed(self):
        payment = _make_payment()
        payment.complete("pay_001")
        with pytest.raises(ValidationError):
            payment.fail("Too late")


class TestGatewayMethodMapping:
    def test_card_maps_to_cards(self):
        assert method_from_gateway("card", "upi") == "cards"

    def test_known_method_passes_through(self):
        assert method_from_gateway("netbanking", "upi") == "netbanking"

    def test_unknown_method_keeps_default(self):
        assert method_from_gateway("paylater", "upi") == "upi"

    def test_missing_method_keeps_default(self):
        assert method_from_gateway(None, "wallet") == "wallet"
