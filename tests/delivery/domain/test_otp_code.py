"""Tests for delivery code generation."""

from unittest.mock import patch

from delivery.order.otp import new_code


class TestNewCode:
    def test_six_digits(self):
        for _ in range(50):
            code = new_code()
            assert len(code) == 6
            assert code.isdigit()

    def test_keeps_leading_zeros(self):
        with patch("delivery.order.otp.secrets.randbelow", return_value=42):
            assert new_code() == "000042"

    def test_never_repeats_previous(self):
        with patch("delivery.order.otp.secrets.randbelow", side_effect=[123456, 123456, 654321]):
            assert new_code(previous="123456") == "654321"
