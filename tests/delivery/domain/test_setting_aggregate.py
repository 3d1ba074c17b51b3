"""Tests for SystemSetting validation and typing."""

from decimal import Decimal

import pytest
from protean.exceptions import ValidationError

from delivery.pricing.setting import DEFAULT_SETTINGS, SystemSetting


class TestSettingCreation:
    def test_number_setting(self):
        setting = SystemSetting.create(key="rate_per_liter", value="70.50", data_type="number", category="pricing")
        assert setting.typed_value() == Decimal("70.50")

    def test_boolean_setting(self):
        setting = SystemSetting.create(key="cod_enabled", value="true", data_type="boolean")
        assert setting.typed_value() is True

    def test_json_setting(self):
        setting = SystemSetting.create(key="slots", value='["09:00", "11:00"]', data_type="json")
        assert setting.typed_value() == ["09:00", "11:00"]

    @pytest.mark.parametrize(
        "value,data_type",
        [("seventy", "number"), ("NaN", "number"), ("yes", "boolean"), ("{broken", "json")],
    )
    def test_rejects_value_not_matching_type(self, value, data_type):
        with pytest.raises(ValidationError):
            SystemSetting.create(key="bad", value=value, data_type=data_type)


class TestSettingChanges:
    def test_change_value(self):
        setting = SystemSetting.create(key="gst_rate", value="0.18", data_type="number")
        setting.change_value("0.12", updated_by="admin:1")
        assert setting.value == "0.12"
        assert setting.updated_by == "admin:1"

    def test_locked_setting_rejects_change(self):
        setting = SystemSetting.create(key="company_name", value="Fuelstream", is_editable=False)
        with pytest.raises(ValidationError):
            setting.change_value("Other")

    def test_locked_setting_rejects_delete(self):
        setting = SystemSetting.create(key="company_name", value="Fuelstream", is_editable=False)
        with pytest.raises(ValidationError):
            setting.mark_deleted("admin:1")


class TestDefaults:
    def test_pricing_defaults(self):
        defaults = {key: value for key, value, *_ in DEFAULT_SETTINGS}
        assert defaults["rate_per_liter"] == "70.50"
        assert defaults["delivery_charges"] == "300"
        assert defaults["gst_rate"] == "0.18"
        assert defaults["high_value_order_threshold"] == "50000"
