"""Customer aggregate: app users, including admins who receive broadcasts."""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text

from delivery.domain import delivery


class CustomerRole(Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class KycStatus(Enum):
    NOT_SUBMITTED = "not_submitted"
    SUBMITTED = "submitted"


@delivery.event(part_of="Customer")
class CustomerRegistered:
    __version__ = 1

    customer_id = Identifier(required=True)
    name = String(required=True)
    email = String(required=True)
    role = String(required=True)
    registered_at = DateTime(required=True)


@delivery.event(part_of="Customer")
class KycSubmitted:
    __version__ = 1

    customer_id = Identifier(required=True)
    document_types = Text()  # JSON list of submitted document kinds
    submitted_at = DateTime(required=True)


@delivery.aggregate
class Customer:
    name = String(required=True, max_length=200)
    email = String(required=True, max_length=255)
    phone = String(max_length=20)
    role = String(choices=CustomerRole, default=CustomerRole.CUSTOMER.value)
    kyc_status = String(choices=KycStatus, default=KycStatus.NOT_SUBMITTED.value)
    kyc_documents = Text()  # JSON: document kind -> external storage reference
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def register(cls, name, email, phone=None, role=CustomerRole.CUSTOMER.value):
        now = datetime.now(UTC)
        customer = cls(
            name=name,
            email=email.strip().lower(),
            phone=phone,
            role=role,
            kyc_status=KycStatus.NOT_SUBMITTED.value,
            created_at=now,
            updated_at=now,
        )
        customer.raise_(
            CustomerRegistered(
                customer_id=str(customer.id),
                name=name,
                email=customer.email,
                role=role,
                registered_at=now,
            )
        )
        return customer

    @property
    def is_admin(self) -> bool:
        return self.role == CustomerRole.ADMIN.value

    def submit_kyc(self, documents: dict):
        if not documents:
            raise ValidationError({"documents": ["At least one KYC document reference is required"]})

        now = datetime.now(UTC)
        self.kyc_documents = json.dumps(documents, sort_keys=True)
        self.kyc_status = KycStatus.SUBMITTED.value
        self.updated_at = now
        self.raise_(
            KycSubmitted(
                customer_id=str(self.id),
                document_types=json.dumps(sorted(documents)),
                submitted_at=now,
            )
        )
