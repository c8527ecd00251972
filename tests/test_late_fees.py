"""
Tests for the late fee policy
"""

import pytest
from decimal import Decimal
from datetime import date

from emi_engine.late_fees import LateFeeCalculator


DUE = date(2026, 1, 1)


class TestIsLate:
    """Test grace period boundaries"""

    def setup_method(self):
        self.calculator = LateFeeCalculator()

    def test_on_due_date_is_not_late(self):
        for grace in (0, 3, 10):
            assert not self.calculator.is_late(DUE, DUE, grace)

    def test_before_due_date_is_not_late(self):
        assert not self.calculator.is_late(DUE, date(2025, 12, 20), 0)

    @pytest.mark.parametrize("day", [2, 3, 4])
    def test_within_grace_is_not_late(self, day):
        assert not self.calculator.is_late(DUE, date(2026, 1, day), 3)

    def test_after_grace_is_late(self):
        assert self.calculator.is_late(DUE, date(2026, 1, 5), 3)

    def test_no_grace(self):
        assert self.calculator.is_late(DUE, date(2026, 1, 2), 0)
        assert self.calculator.is_late(DUE, date(2026, 1, 2), None)

    def test_negative_grace_counts_as_none(self):
        assert self.calculator.is_late(DUE, date(2026, 1, 2), -5)
        assert self.calculator.chargeable_late_days(DUE, date(2026, 1, 3), -5) == 2


class TestChargeableDays:

    def setup_method(self):
        self.calculator = LateFeeCalculator()

    def test_days_beyond_grace(self):
        assert self.calculator.chargeable_late_days(DUE, date(2026, 1, 6), 3) == 2

    def test_within_grace_is_zero(self):
        assert self.calculator.chargeable_late_days(DUE, date(2026, 1, 3), 3) == 0

    def test_early_payment_is_zero(self):
        assert self.calculator.chargeable_late_days(DUE, date(2025, 12, 1), 0) == 0

    def test_missing_grace(self):
        assert self.calculator.chargeable_late_days(DUE, date(2026, 1, 11), None) == 10


class TestCalculateLateFee:
    """Test fee = EMI x percent per day x chargeable days / 100"""

    def setup_method(self):
        self.calculator = LateFeeCalculator()

    def test_fee_after_grace(self):
        fee = self.calculator.calculate_late_fee(Decimal("5000"), DUE, date(2026, 1, 6), Decimal("2"), 3)
        assert fee == Decimal("200.00")

    def test_fee_within_grace(self):
        fee = self.calculator.calculate_late_fee(Decimal("5000"), DUE, date(2026, 1, 3), Decimal("2"), 3)
        assert fee == Decimal("0.00")

    def test_fee_rounding(self):
        # 1234.57 x 0.5 x 3 / 100 = 18.51855
        fee = self.calculator.calculate_late_fee("1234.57", DUE, date(2026, 1, 4), "0.5", 0)
        assert fee == Decimal("18.52")

    @pytest.mark.parametrize("rate", ["0", "-1"])
    def test_non_positive_rate(self, rate):
        assert self.calculator.calculate_late_fee("5000", DUE, date(2026, 2, 1), rate, 0) == Decimal("0.00")

    def test_missing_values(self):
        assert self.calculator.calculate_late_fee(None, DUE, date(2026, 2, 1), "2", 0) == Decimal("0.00")
        assert self.calculator.calculate_late_fee("5000", None, date(2026, 2, 1), "2", 0) == Decimal("0.00")
        assert self.calculator.calculate_late_fee("5000", DUE, None, "2", 0) == Decimal("0.00")

    def test_fee_has_two_decimals(self):
        fee = self.calculator.calculate_late_fee("5000", DUE, date(2026, 1, 10), "2", 3)
        assert fee == Decimal("600.00")
        assert fee.as_tuple().exponent == -2

    def test_missing_rate(self):
        fee = self.calculator.calculate_late_fee(Decimal("5000"), DUE, date(2026, 1, 6), None, 3)
        assert fee == Decimal("0.00")


class TestMissingDates:
    """Absent dates are never late"""

    def setup_method(self):
        self.calculator = LateFeeCalculator()

    def test_is_late(self):
        assert not self.calculator.is_late(None, date(2026, 1, 6), 3)
        assert not self.calculator.is_late(DUE, None, 3)
        assert not self.calculator.is_late(None, None, 0)

    def test_chargeable_days(self):
        assert self.calculator.chargeable_late_days(None, date(2026, 1, 6), 3) == 0
        assert self.calculator.chargeable_late_days(DUE, None, 3) == 0
