"""
Amortization Module

EMI calculation for monthly reducing-balance loans:

    R   = annual_rate / 12 / 100
    EMI = P * R * (1 + R)^N / ((1 + R)^N - 1)

Intermediate divisions are carried to 10 fractional digits; results are
rounded half-up to 2 places.
"""

from decimal import Decimal, ROUND_HALF_UP
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict
import calendar

from .currency import AmountLike, to_decimal, quantize_amount, format_amount
from .errors import InvalidInput
from .logging_config import get_logger


RATE_PRECISION = Decimal('1E-10')
MONTHS_PER_YEAR = Decimal('12')
HUNDRED = Decimal('100')


@dataclass(frozen=True)
class EmiQuote:
    """EMI and loan totals for a principal/rate/tenure combination"""
    principal: Decimal
    annual_rate_percent: Decimal
    tenure_months: int
    emi: Decimal
    total_interest: Decimal
    total_payable: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "principal": format_amount(self.principal),
            "annual_rate_percent": str(self.annual_rate_percent),
            "tenure_months": self.tenure_months,
            "emi": format_amount(self.emi),
            "total_interest": format_amount(self.total_interest),
            "total_payable": format_amount(self.total_payable),
        }


def add_months(start_date: date, months: int) -> date:
    """Add months to a date, clamping the day to the end of shorter months"""
    month = start_date.month - 1 + months
    year = start_date.year + month // 12
    month = month % 12 + 1
    day = min(start_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


class AmortizationCalculator:
    """Pure numeric engine: EMI amount, total interest and total payable"""

    def __init__(self):
        self.logger = get_logger("emi.amortization")

    def monthly_rate(self, annual_rate_percent: AmountLike) -> Decimal:
        """Annual percentage rate to a monthly decimal rate (10 fractional digits)"""
        annual = to_decimal(annual_rate_percent)
        per_month = (annual / MONTHS_PER_YEAR).quantize(RATE_PRECISION, rounding=ROUND_HALF_UP)
        return (per_month / HUNDRED).quantize(RATE_PRECISION, rounding=ROUND_HALF_UP)

    def calculate_emi(
        self,
        principal: AmountLike,
        annual_rate_percent: AmountLike,
        tenure_months: int
    ) -> Decimal:
        """
        Calculate the equated monthly installment

        Args:
            principal: Loan principal, must be positive
            annual_rate_percent: Annual interest rate in percent (12 means 12%)
            tenure_months: Number of monthly installments

        Returns:
            EMI rounded half-up to 2 decimal places

        Raises:
            InvalidInput: If any argument is zero or negative
        """
        principal, annual_rate = self._validate(principal, annual_rate_percent, tenure_months)

        rate = self.monthly_rate(annual_rate)
        growth = (Decimal('1') + rate) ** tenure_months

        numerator = principal * rate * growth
        denominator = growth - Decimal('1')
        emi = quantize_amount(numerator / denominator)

        self.logger.debug(
            f"EMI calculated: {emi} for principal {principal}, rate {annual_rate}%, "
            f"tenure {tenure_months} months"
        )
        return emi

    def calculate_total_interest(
        self,
        emi: AmountLike,
        principal: AmountLike,
        tenure_months: int
    ) -> Decimal:
        """Total interest = EMI x tenure - principal"""
        return quantize_amount(to_decimal(emi) * tenure_months - to_decimal(principal))

    def calculate_total_payable(self, emi: AmountLike, tenure_months: int) -> Decimal:
        """Total payable = EMI x tenure"""
        return quantize_amount(to_decimal(emi) * tenure_months)

    def quote(
        self,
        principal: AmountLike,
        annual_rate_percent: AmountLike,
        tenure_months: int
    ) -> EmiQuote:
        """EMI plus totals, as shown to a prospective borrower"""
        emi = self.calculate_emi(principal, annual_rate_percent, tenure_months)
        return EmiQuote(
            principal=quantize_amount(principal),
            annual_rate_percent=to_decimal(annual_rate_percent),
            tenure_months=tenure_months,
            emi=emi,
            total_interest=self.calculate_total_interest(emi, principal, tenure_months),
            total_payable=self.calculate_total_payable(emi, tenure_months)
        )

    def _validate(self, principal: AmountLike, annual_rate_percent: AmountLike, tenure_months: int):
        try:
            principal = to_decimal(principal)
            annual_rate = to_decimal(annual_rate_percent)
        except (TypeError, ValueError) as e:
            raise InvalidInput(str(e))

        if principal <= 0:
            raise InvalidInput("Principal must be greater than zero")
        if annual_rate <= 0:
            raise InvalidInput("Interest rate must be greater than zero")
        if not isinstance(tenure_months, int) or isinstance(tenure_months, bool) or tenure_months <= 0:
            raise InvalidInput("Tenure must be greater than zero")

        return principal, annual_rate
