"""Driver commands: registration, availability and location updates."""

from protean import handle
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.driver.driver import Driver


@delivery.command(part_of="Driver")
class RegisterDriver:
    name = String(required=True, max_length=200)
    phone = String(required=True, max_length=20)
    vehicle_number = String(max_length=20)


@delivery.command(part_of="Driver")
class SetDriverAvailability:
    driver_id = Identifier(required=True)
    is_active = Boolean(required=True)


@delivery.command(part_of="Driver")
class UpdateDriverLocation:
    driver_id = Identifier(required=True)
    latitude = String(required=True, max_length=20)
    longitude = String(required=True, max_length=20)


@delivery.command_handler(part_of=Driver)
class DriverCommandHandler:
    @handle(RegisterDriver)
    def register_driver(self, command):
        driver = Driver.register(
            name=command.name,
            phone=command.phone,
            vehicle_number=command.vehicle_number,
        )
        current_domain.repository_for(Driver).add(driver)
        return str(driver.id)

    @handle(SetDriverAvailability)
    def set_availability(self, command):
        repo = current_domain.repository_for(Driver)
        driver = repo.get(command.driver_id)
        driver.set_active(command.is_active)
        repo.add(driver)

    @handle(UpdateDriverLocation)
    def update_location(self, command):
        repo = current_domain.repository_for(Driver)
        driver = repo.get(command.driver_id)
        driver.record_location(command.latitude, command.longitude)
        repo.add(driver)
