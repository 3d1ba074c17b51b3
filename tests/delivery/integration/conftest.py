import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean.integrations.fastapi import register_exception_handlers

from delivery.api.errors import register_delivery_error_handlers
from delivery.api.routes import routers


@pytest.fixture()
def client():
    app = FastAPI()
    for router in routers:
        app.include_router(router)
    register_exception_handlers(app)
    register_delivery_error_handlers(app)
    return TestClient(app)

@pytest.fixture()
def as_customer(customer):
    return {"X-User-Id": str(customer.id)}

@pytest.fixture()
def as_other(other_customer):
    return {"X-User-Id": str(other_customer.id)}

@pytest.fixture()
def as_admin(admin):
    return {"X-User-Id": str(admin.id)}

@pytest.fixture()
def order_payload():
    from datetime import date, timedelta

    return {
        "quantity": 500,
        "delivery_address": "Plot 12, MIDC Industrial Area, Pune",
        "delivery_latitude": 18.5204,
        "delivery_longitude": 73.8567,
        "scheduled_date": (date.today() + timedelta(days=2)).isoformat(),
        "scheduled_time": "11:00",
    }
