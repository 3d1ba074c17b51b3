"""Fuel delivery bounded context.

Coordinates a fuel-delivery order from placement through payment, driver
dispatch, in-transit verification and completion. The customer app, the
external driver application and the admin/dispatch actor all write to the
same order, so every status change goes through a compare-and-swap guarded
state machine.
"""

import structlog
from protean.domain import Domain

delivery = Domain(name="delivery")

logger = structlog.get_logger(__name__)
