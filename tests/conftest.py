import os

import pytest

# Values the suite relies on; a developer's shell must not leak real endpoints in.
TEST_ENVIRONMENT = {
    "PAYMENT_GATEWAY": "fake",
    "WEBHOOK_ADAPTER": "fake",
    "DRIVER_WEBHOOK_SECRET": "dev-driver-secret",
    "RAZORPAY_KEY_SECRET": "test-gateway-secret",
}

# Test layer markers, keyed by the directory a test lives in
LAYER_MARKERS = {
    "domain": pytest.mark.domain,
    "application": pytest.mark.application,
    "integration": pytest.mark.integration,
}


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pin the environment before any delivery module reads it."""
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ.update(TEST_ENVIRONMENT)


def pytest_collection_modifyitems(config, items):
    for item in items:
        layer = next((part for part in item.path.parts if part in LAYER_MARKERS), None)
        if layer is None:
            continue
        item.add_marker(LAYER_MARKERS[layer])
        if layer == "integration" and not item.get_closest_marker("fast"):
            item.add_marker(pytest.mark.slow)
