from datetime import date, timedelta

import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def delivery_bed():
    from delivery.domain import delivery

    bed = DomainFixture(delivery)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(delivery_bed):
    """Push the domain context for each test and wipe all stores afterwards."""
    with delivery_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()

        for _, broker in current_domain.brokers.items():
            broker._data_reset()

        current_domain.event_store.store._data_reset()


# ---------------------------------------------------------------------------
# External systems
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def fakes():
    """Install fresh in-memory adapters for the gateway and both notifiers."""
    from delivery.gateway import reset_gateway, set_gateway
    from delivery.gateway.fake_adapter import FakeGateway
    from delivery.webhooks import reset_notifiers, set_notifiers
    from delivery.webhooks.fake_adapter import FakeAdminNotifier, FakeDriverNotifier

    gateway = FakeGateway()
    admin = FakeAdminNotifier()
    driver = FakeDriverNotifier()
    set_gateway(gateway)
    set_notifiers(admin=admin, driver=driver)

    yield {"gateway": gateway, "admin": admin, "driver": driver}

    reset_gateway()
    reset_notifiers()


@pytest.fixture()
def gateway(fakes):
    return fakes["gateway"]


@pytest.fixture()
def admin_system(fakes):
    return fakes["admin"]


@pytest.fixture()
def driver_system(fakes):
    return fakes["driver"]


@pytest.fixture()
def services(fakes):
    from delivery.services import build_services

    return build_services()


# ---------------------------------------------------------------------------
# People and settings
# ---------------------------------------------------------------------------
@pytest.fixture()
def settings():
    from delivery.pricing.management import seed_default_settings

    return seed_default_settings()


@pytest.fixture()
def customer(services):
    return services.onboarding.register(name="Asha Patil", email="asha@example.com", phone="+91-98200-00001").customer


@pytest.fixture()
def other_customer(services):
    return services.onboarding.register(name="Ravi Kulkarni", email="ravi@example.com").customer


@pytest.fixture()
def admin(services):
    from delivery.customer.customer import CustomerRole

    return services.onboarding.register(
        name="Dispatch Desk", email="dispatch@example.com", role=CustomerRole.ADMIN.value
    ).customer


@pytest.fixture()
def customer_actor(customer):
    from delivery.actors import Actor, ActorRole

    return Actor(user_id=str(customer.id), role=ActorRole.CUSTOMER)


@pytest.fixture()
def other_actor(other_customer):
    from delivery.actors import Actor, ActorRole

    return Actor(user_id=str(other_customer.id), role=ActorRole.CUSTOMER)


@pytest.fixture()
def admin_actor(admin):
    from delivery.actors import Actor, ActorRole

    return Actor(user_id=str(admin.id), role=ActorRole.ADMIN)


@pytest.fixture()
def driver():
    from protean import current_domain

    from delivery.driver.driver import Driver
    from delivery.driver.management import RegisterDriver

    driver_id = current_domain.process(
        RegisterDriver(name="Sunil Jadhav", phone="+91-98200-00099", vehicle_number="MH12AB1234"),
        asynchronous=False,
    )
    return current_domain.repository_for(Driver).get(driver_id)


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
@pytest.fixture()
def place_order(services, customer):
    """Factory placing an order at the current pricing terms."""
    from delivery.order.state_machine import DeliveryTarget, Schedule
    from delivery.pricing.snapshot import snapshot

    def _place(quantity=500, owner=None):
        result = services.orders.create(
            customer_id=str((owner or customer).id),
            pricing=snapshot(quantity),
            target=DeliveryTarget(
                address="Plot 12, MIDC Industrial Area, Pune",
                latitude="18.5204",
                longitude="73.8567",
            ),
            schedule=Schedule(scheduled_date=date.today() + timedelta(days=2), scheduled_time="11:00"),
        )
        return result.order

    return _place


@pytest.fixture()
def order(place_order):
    return place_order()


@pytest.fixture()
def move_order(services):
    """Walk an order forward along the legal path up to ``status``."""
    from delivery.actors import Actor

    path = ["pending", "confirmed", "in_transit", "delivered"]

    def _move(order, status):
        current = services.orders.load(order.id)
        for source, target in zip(path, path[1:]):
            if current.status == status:
                break
            if current.status == source:
                services.orders.transition(current.id, source, target, Actor.driver_system())
                current = services.orders.load(order.id)
        return current

    return _move
