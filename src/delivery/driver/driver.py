"""Driver aggregate: dispatchable drivers and their last-known position."""

from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, String

from delivery.domain import delivery


@delivery.event(part_of="Driver")
class DriverRegistered:
    __version__ = 1

    driver_id = Identifier(required=True)
    name = String(required=True)
    registered_at = DateTime(required=True)


@delivery.event(part_of="Driver")
class DriverAvailabilityChanged:
    __version__ = 1

    driver_id = Identifier(required=True)
    is_active = Boolean(required=True)
    changed_at = DateTime(required=True)


def _coordinate(value, name, limit):
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError({name: [f"'{value}' is not a coordinate"]}) from None
    if not number.is_finite() or abs(number) > limit:
        raise ValidationError({name: [f"{name} must be between -{limit} and {limit}"]})
    return str(number)


@delivery.aggregate
class Driver:
    name = String(required=True, max_length=200)
    phone = String(required=True, max_length=20)
    vehicle_number = String(max_length=20)
    is_active = Boolean(default=True)
    current_latitude = String(max_length=20)
    current_longitude = String(max_length=20)
    last_location_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def register(cls, name, phone, vehicle_number=None):
        now = datetime.now(UTC)
        driver = cls(
            name=name,
            phone=phone,
            vehicle_number=vehicle_number,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        driver.raise_(DriverRegistered(driver_id=str(driver.id), name=name, registered_at=now))
        return driver

    def set_active(self, is_active: bool):
        if self.is_active == is_active:
            return
        now = datetime.now(UTC)
        self.is_active = is_active
        self.updated_at = now
        self.raise_(DriverAvailabilityChanged(driver_id=str(self.id), is_active=is_active, changed_at=now))

    def record_location(self, latitude, longitude, recorded_at=None):
        """Store the last-known position. No history is kept."""
        self.current_latitude = _coordinate(latitude, "latitude", 90)
        self.current_longitude = _coordinate(longitude, "longitude", 180)
        self.last_location_at = recorded_at or datetime.now(UTC)
        self.updated_at = datetime.now(UTC)
