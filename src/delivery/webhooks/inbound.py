"""DeliveryStatusReceiver: apply status events pushed by the driver application.

The receiver reads the order's current status and offers it as the
expected status of a compare-and-swap. If the driver system raced with
another writer, the swap fails with ConcurrentModification and the driver
system re-fetches and retries; nothing is forced.
"""

from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from delivery.actors import Actor
from delivery.driver.driver import Driver
from delivery.driver.management import UpdateDriverLocation
from delivery.order.order import OrderStatus
from delivery.order.otp import DeliveryOtpManager
from delivery.order.state_machine import OrderResult, OrderStateMachine

logger = structlog.get_logger(__name__)

# Statuses the driver application is allowed to report
DRIVER_REPORTABLE = (OrderStatus.CONFIRMED.value, OrderStatus.IN_TRANSIT.value, OrderStatus.DELIVERED.value)


@dataclass(frozen=True)
class DeliveryStatusOutcome:
    result: OrderResult
    otp_issued: bool = False
    otp_forwarded: bool = False


class DeliveryStatusReceiver:
    def __init__(self, state_machine: OrderStateMachine, otp_manager: DeliveryOtpManager):
        self.state_machine = state_machine
        self.otp_manager = otp_manager

    def receive(self, order_reference, status, driver_id=None, timestamp=None) -> DeliveryStatusOutcome:
        order = self.state_machine.find(order_reference)
        logger.info(
            "Delivery status received",
            order_id=str(order.id),
            current_status=order.status,
            reported_status=status,
            reported_at=str(timestamp) if timestamp else None,
        )

        result = self.state_machine.transition(
            order.id,
            expected_status=order.status,
            target_status=status,
            actor=Actor.driver_system(),
            driver_id=driver_id,
        )

        if status != OrderStatus.IN_TRANSIT.value:
            return DeliveryStatusOutcome(result=result)

        issue = self.otp_manager.ensure(order.id)
        return DeliveryStatusOutcome(
            result=result,
            otp_issued=issue is not None,
            otp_forwarded=issue.forwarded if issue else False,
        )

    @staticmethod
    def record_driver_location(driver_id, latitude, longitude) -> Driver:
        current_domain.process(
            UpdateDriverLocation(driver_id=driver_id, latitude=str(latitude), longitude=str(longitude)),
            asynchronous=False,
        )
        return current_domain.repository_for(Driver).get(driver_id)
