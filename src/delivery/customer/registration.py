"""Customer registration and KYC submission commands."""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from delivery.customer.customer import Customer, CustomerRole
from delivery.domain import delivery


@delivery.command(part_of="Customer")
class RegisterCustomer:
    name = String(required=True, max_length=200)
    email = String(required=True, max_length=255)
    phone = String(max_length=20)
    role = String(choices=CustomerRole, default=CustomerRole.CUSTOMER.value)


@delivery.command(part_of="Customer")
class SubmitKyc:
    customer_id = Identifier(required=True)
    documents = Text(required=True)  # JSON object


@delivery.command_handler(part_of=Customer)
class CustomerCommandHandler:
    @handle(RegisterCustomer)
    def register_customer(self, command):
        repo = current_domain.repository_for(Customer)
        email = command.email.strip().lower()
        if repo._dao.query.filter(email=email).all().items:
            raise ValidationError({"email": ["A customer with this email already exists"]})

        customer = Customer.register(
            name=command.name,
            email=email,
            phone=command.phone,
            role=command.role,
        )
        repo.add(customer)
        return str(customer.id)

    @handle(SubmitKyc)
    def submit_kyc(self, command):
        repo = current_domain.repository_for(Customer)
        customer = repo.get(command.customer_id)
        customer.submit_kyc(json.loads(command.documents))
        repo.add(customer)


def admin_ids() -> list[str]:
    """Ids of every admin-role user, read fresh for each broadcast."""
    repo = current_domain.repository_for(Customer)
    admins = repo._dao.query.filter(role=CustomerRole.ADMIN.value).limit(None).all().items
    return [str(admin.id) for admin in admins]
