"""Customer onboarding: registration and KYC, with admin-facing side effects."""

import json
from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from delivery.customer.customer import Customer, CustomerRole
from delivery.customer.registration import RegisterCustomer, SubmitKyc
from delivery.notification.fanout import NotificationFanout
from delivery.webhooks.outbound import OutboundWebhooks

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class OnboardingResult:
    customer: Customer
    admin_notified: bool


class CustomerOnboarding:
    def __init__(self, fanout: NotificationFanout, outbound: OutboundWebhooks):
        self.fanout = fanout
        self.outbound = outbound

    def register(self, name, email, phone=None, role=CustomerRole.CUSTOMER.value) -> OnboardingResult:
        customer_id = current_domain.process(
            RegisterCustomer(name=name, email=email, phone=phone, role=role),
            asynchronous=False,
        )
        customer = current_domain.repository_for(Customer).get(customer_id)
        logger.info("Customer registered", customer_id=customer_id, role=role)

        admin_notified = self.outbound.customer_registered(customer)
        return OnboardingResult(customer=customer, admin_notified=admin_notified)

    def submit_kyc(self, customer_id, documents: dict) -> OnboardingResult:
        current_domain.process(
            SubmitKyc(customer_id=customer_id, documents=json.dumps(documents)),
            asynchronous=False,
        )
        customer = current_domain.repository_for(Customer).get(customer_id)
        logger.info("KYC submitted", customer_id=str(customer_id), documents=len(documents))

        self.fanout.notify_admins("kyc_submitted", {"customer_name": customer.name})
        admin_notified = self.outbound.kyc_submitted(customer)
        return OnboardingResult(customer=customer, admin_notified=admin_notified)
