"""
EMI Summary Module

Read-side rollups for reporting and dashboards. Nothing here writes; reads
may observe a slightly stale snapshot while payments or sweeps are running.

Overdue figures are recomputed from due dates on every read, so an unpaid
installment past its due date counts as overdue even before the sweeper
has persisted the OVERDUE status.
"""

from decimal import Decimal
from datetime import date, timedelta
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .currency import format_amount, sum_amounts
from .errors import InvalidInput, NotFound, EMI_SCHEDULE_NOT_FOUND
from .logging_config import get_logger
from .models import Installment, InstallmentStatus
from .repository import InstallmentRepository


@dataclass
class LoanEmiSummary:
    """Per-loan repayment progress"""
    loan_id: str
    total_emis: int
    paid_emis: int
    pending_emis: int
    overdue_emis: int
    total_amount: Decimal
    paid_amount: Decimal
    pending_amount: Decimal
    outstanding_amount: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "loan_id": self.loan_id,
            "total_emis": self.total_emis,
            "paid_emis": self.paid_emis,
            "pending_emis": self.pending_emis,
            "overdue_emis": self.overdue_emis,
            "total_amount": format_amount(self.total_amount),
            "paid_amount": format_amount(self.paid_amount),
            "pending_amount": format_amount(self.pending_amount),
            "outstanding_amount": format_amount(self.outstanding_amount),
        }


@dataclass
class OverdueStatistics:
    overdue_count: int
    overdue_amount: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overdue_count": self.overdue_count,
            "overdue_amount": format_amount(self.overdue_amount),
        }


@dataclass
class CustomerEmiSummary:
    """What a customer owes and what is due next"""
    customer_id: str
    total_pending: Decimal
    pending_count: int
    overdue_count: int
    next_due: Optional[Installment] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "customer_id": self.customer_id,
            "total_pending": format_amount(self.total_pending),
            "pending_count": self.pending_count,
            "overdue_count": self.overdue_count,
            "next_due": self.next_due.to_response() if self.next_due else None,
        }


def _is_past_due(installment: Installment, today: date) -> bool:
    return installment.status != InstallmentStatus.PAID and installment.due_date < today


class SummaryAggregator:
    """Outstanding, collected, pending and overdue rollups"""

    def __init__(self, repository: InstallmentRepository):
        self.repository = repository
        self.logger = get_logger("emi.summary")

    def per_loan_summary(self, loan_id: str, today: Optional[date] = None) -> LoanEmiSummary:
        """
        Summarize one loan's schedule

        Raises:
            NotFound: The loan has no schedule
        """
        today = today or date.today()
        installments = self.repository.for_loan(loan_id)
        if not installments:
            raise NotFound(EMI_SCHEDULE_NOT_FOUND)

        paid = [i for i in installments if i.status == InstallmentStatus.PAID]
        overdue = [i for i in installments if i.is_overdue(today)]
        pending_count = len(installments) - len(paid) - len(overdue)

        total_amount = sum_amounts(i.emi_amount for i in installments)
        paid_amount = sum_amounts(i.emi_amount for i in paid)

        return LoanEmiSummary(
            loan_id=loan_id,
            total_emis=len(installments),
            paid_emis=len(paid),
            pending_emis=pending_count,
            overdue_emis=len(overdue),
            total_amount=total_amount,
            paid_amount=paid_amount,
            pending_amount=total_amount - paid_amount,
            outstanding_amount=sum_amounts(i.emi_amount for i in installments if i.status.is_unpaid)
        )

    def outstanding_amount(self, loan_id: str) -> Decimal:
        """Sum of EMI amounts not yet PAID; 0.00 for an unknown loan"""
        return sum_amounts(i.emi_amount for i in self.repository.for_loan(loan_id) if i.status.is_unpaid)

    def total_collected(self) -> Decimal:
        return sum_amounts(
            i.emi_amount for i in self.repository.where(lambda i: i.status == InstallmentStatus.PAID)
        )

    def total_pending(self) -> Decimal:
        """PENDING + PARTIAL_PAID + OVERDUE across all loans"""
        return sum_amounts(i.emi_amount for i in self.repository.where(lambda i: i.status.is_unpaid))

    def overdue_installments(self, today: Optional[date] = None) -> List[Installment]:
        today = today or date.today()
        return sorted(
            self.repository.where(lambda i: _is_past_due(i, today)),
            key=lambda i: (i.due_date, i.loan_id, i.emi_number)
        )

    def overdue_installments_for_customer(self, customer_id: str,
                                          today: Optional[date] = None) -> List[Installment]:
        today = today or date.today()
        return [i for i in self.repository.for_customer(customer_id) if _is_past_due(i, today)]

    def overdue_statistics(self, today: Optional[date] = None) -> OverdueStatistics:
        """Count and amount of unpaid installments past their due date"""
        today = today or date.today()
        overdue = self.overdue_installments(today)
        self.logger.debug(f"{len(overdue)} overdue installments as of {today}")
        return OverdueStatistics(
            overdue_count=len(overdue),
            overdue_amount=sum_amounts(i.emi_amount for i in overdue)
        )

    def customer_emi_summary(self, customer_id: str, today: Optional[date] = None) -> CustomerEmiSummary:
        today = today or date.today()
        unpaid = [i for i in self.repository.for_customer(customer_id) if i.status.is_unpaid]

        return CustomerEmiSummary(
            customer_id=customer_id,
            total_pending=sum_amounts(i.emi_amount for i in unpaid),
            pending_count=len(unpaid),
            overdue_count=sum(1 for i in unpaid if _is_past_due(i, today)),
            next_due=unpaid[0] if unpaid else None  # for_customer is ordered by due date
        )

    def upcoming_emis(self, days_ahead: int, today: Optional[date] = None) -> List[Installment]:
        """Installments due within [today, today + days_ahead], any status"""
        if days_ahead < 0:
            raise InvalidInput("days_ahead must not be negative")
        today = today or date.today()
        return self.repository.due_between(today, today + timedelta(days=days_ahead))
