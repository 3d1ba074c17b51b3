"""SystemSetting aggregate: admin-editable configuration rows.

Pricing parameters (rate per liter, delivery charge, tax rate) and order
thresholds are stored here and read by PricingSnapshot at order creation.
"""

import json
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, String, Text

from delivery.domain import delivery


class SettingType(Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    JSON = "json"


# (key, value, data_type, category, description, is_editable)
DEFAULT_SETTINGS = [
    ("rate_per_liter", "70.50", "number", "pricing", "Current diesel rate per liter", True),
    ("delivery_charges", "300", "number", "pricing", "Flat delivery charge per order", True),
    ("gst_rate", "0.18", "number", "pricing", "GST rate applied to the delivery charge", True),
    ("minimum_order_quantity", "100", "number", "orders", "Minimum order quantity in liters", True),
    ("maximum_order_quantity", "10000", "number", "orders", "Maximum order quantity in liters", True),
    ("order_step", "50", "number", "orders", "Quantity step in liters", True),
    ("high_value_order_threshold", "50000", "number", "orders", "Order total that alerts admins", True),
    ("company_name", "Fuelstream", "string", "general", "Company name shown to customers", True),
    ("support_phone", "+91-1800-000-0000", "string", "general", "Customer support phone", True),
    ("support_email", "support@fuelstream.example", "string", "general", "Customer support email", True),
]


@delivery.event(part_of="SystemSetting")
class SettingChanged:
    __version__ = 1

    key = String(required=True)
    value = Text()
    change = String(required=True)  # created, updated, deleted
    changed_by = String()
    changed_at = DateTime(required=True)


@delivery.aggregate
class SystemSetting:
    key = String(identifier=True, max_length=100)
    value = Text(required=True)
    data_type = String(choices=SettingType, default=SettingType.STRING.value)
    category = String(max_length=50, default="general")
    description = String(max_length=500)
    is_editable = Boolean(default=True)
    updated_by = String(max_length=100)
    updated_at = DateTime()

    @classmethod
    def create(cls, key, value, data_type="string", category="general", description=None, is_editable=True, updated_by=None):
        _validate_value(value, data_type)
        now = datetime.now(UTC)
        setting = cls(
            key=key,
            value=str(value),
            data_type=data_type,
            category=category,
            description=description,
            is_editable=is_editable,
            updated_by=updated_by,
            updated_at=now,
        )
        setting.raise_(
            SettingChanged(key=key, value=str(value), change="created", changed_by=updated_by, changed_at=now)
        )
        return setting

    def change_value(self, value, updated_by=None, description=None):
        if not self.is_editable:
            raise ValidationError({"key": [f"Setting '{self.key}' is not editable"]})
        _validate_value(value, self.data_type)

        now = datetime.now(UTC)
        self.value = str(value)
        if description is not None:
            self.description = description
        self.updated_by = updated_by
        self.updated_at = now
        self.raise_(
            SettingChanged(key=self.key, value=self.value, change="updated", changed_by=updated_by, changed_at=now)
        )

    def mark_deleted(self, deleted_by=None):
        if not self.is_editable:
            raise ValidationError({"key": [f"Setting '{self.key}' is not editable"]})
        self.raise_(
            SettingChanged(key=self.key, change="deleted", changed_by=deleted_by, changed_at=datetime.now(UTC))
        )

    def typed_value(self):
        """Return the value converted according to ``data_type``."""
        if self.data_type == SettingType.NUMBER.value:
            return Decimal(self.value)
        if self.data_type == SettingType.BOOLEAN.value:
            return self.value.lower() == "true"
        if self.data_type == SettingType.JSON.value:
            return json.loads(self.value)
        return self.value


def _validate_value(value, data_type):
    value = str(value)
    if data_type == SettingType.NUMBER.value:
        try:
            number = Decimal(value)
        except InvalidOperation:
            raise ValidationError({"value": [f"'{value}' is not a number"]}) from None
        if not number.is_finite():
            raise ValidationError({"value": [f"'{value}' is not a finite number"]})
    elif data_type == SettingType.BOOLEAN.value:
        if value.lower() not in ("true", "false"):
            raise ValidationError({"value": ["Boolean settings must be 'true' or 'false'"]})
    elif data_type == SettingType.JSON.value:
        try:
            json.loads(value)
        except ValueError:
            raise ValidationError({"value": ["Value is not valid JSON"]}) from None
