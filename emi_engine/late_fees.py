"""
Late Fee Module

Grace-period and per-day percentage late fee policy. Pure and stateless.
"""

from decimal import Decimal
from datetime import date, timedelta
from typing import Optional

from .currency import AmountLike, ZERO, to_decimal, quantize_amount


class LateFeeCalculator:
    """
    Late fee = EMI x percent per day x chargeable days / 100

    Chargeable days are the days past the due date beyond the grace period.
    A missing or negative grace period counts as no grace.
    """

    def is_late(self, due_date: Optional[date], payment_date: Optional[date],
                grace_days: Optional[int] = 0) -> bool:
        if due_date is None or payment_date is None:
            return False
        if payment_date <= due_date:
            return False
        return payment_date > due_date + _grace(grace_days)

    def chargeable_late_days(self, due_date: Optional[date], payment_date: Optional[date],
                             grace_days: Optional[int] = 0) -> int:
        if due_date is None or payment_date is None:
            return 0
        if payment_date <= due_date:
            return 0
        days_late = (payment_date - due_date).days
        return max(0, days_late - _grace(grace_days).days)

    def calculate_late_fee(
        self,
        emi_amount: Optional[AmountLike],
        due_date: Optional[date],
        payment_date: Optional[date],
        late_fee_percent_per_day: Optional[AmountLike],
        grace_days: Optional[int] = 0
    ) -> Decimal:
        """
        Calculate the late fee for a payment

        Returns 0.00 when the amount, a date or the rate is missing, when the
        rate is not positive, or when the payment falls within the grace period.
        """
        if None in (emi_amount, due_date, payment_date, late_fee_percent_per_day):
            return ZERO

        rate = to_decimal(late_fee_percent_per_day)
        if rate <= 0:
            return ZERO

        if not self.is_late(due_date, payment_date, grace_days):
            return ZERO

        days = self.chargeable_late_days(due_date, payment_date, grace_days)
        return quantize_amount(to_decimal(emi_amount) * rate * days / Decimal('100'))


def _grace(grace_days: Optional[int]) -> timedelta:
    if grace_days is None or grace_days < 0:
        return timedelta(days=0)
    return timedelta(days=grace_days)
