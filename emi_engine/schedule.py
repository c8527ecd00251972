"""
Schedule Generation Module

Turns a disbursed loan's principal, rate and tenure into its month-by-month
amortization schedule and answers schedule queries. Schedules are written
exactly once per loan.
"""

from datetime import datetime, date, timezone
from typing import List, Optional
import uuid

from .amortization import AmortizationCalculator, add_months
from .currency import AmountLike, ZERO, to_decimal, quantize_amount
from .errors import InvalidInput, NotFound, EMI_NOT_FOUND, EMI_SCHEDULE_NOT_FOUND
from .events import EventDispatcher, create_schedule_event
from .logging_config import get_logger, log_action
from .models import Installment, InstallmentStatus
from .repository import InstallmentRepository


class ScheduleGenerator:
    """Builds, persists and queries amortization schedules"""

    def __init__(
        self,
        repository: InstallmentRepository,
        calculator: Optional[AmortizationCalculator] = None,
        dispatcher: Optional[EventDispatcher] = None
    ):
        self.repository = repository
        self.calculator = calculator or AmortizationCalculator()
        self.dispatcher = dispatcher
        self.logger = get_logger("emi.schedule")

    def build(
        self,
        loan_id: str,
        customer_id: str,
        principal: AmountLike,
        annual_rate_percent: AmountLike,
        tenure_months: int,
        start_date: date
    ) -> List[Installment]:
        """
        Build the schedule without persisting it.

        Each row splits the EMI into interest on the current outstanding and
        the principal remainder. The last row takes whatever principal is
        left, so its EMI absorbs the rounding drift of earlier rows and the
        final outstanding balance is exactly zero.
        """
        if not loan_id or not customer_id:
            raise InvalidInput("Loan id and customer id are required")
        if start_date is None:
            raise InvalidInput("Start date is required")

        emi = self.calculator.calculate_emi(principal, annual_rate_percent, tenure_months)
        rate = self.calculator.monthly_rate(annual_rate_percent)
        outstanding = quantize_amount(principal)
        now = datetime.now(timezone.utc)

        installments = []
        for number in range(1, tenure_months + 1):
            interest = quantize_amount(outstanding * rate)
            if number == tenure_months:
                principal_part = outstanding
                emi_amount = principal_part + interest
            else:
                principal_part = emi - interest
                emi_amount = emi

            outstanding = outstanding - principal_part
            if outstanding < 0:
                outstanding = ZERO

            installments.append(Installment(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                loan_id=loan_id,
                customer_id=customer_id,
                emi_number=number,
                due_date=add_months(start_date, number - 1),
                principal_component=principal_part,
                interest_component=interest,
                emi_amount=emi_amount,
                outstanding_balance=outstanding,
                status=InstallmentStatus.PENDING
            ))

        return installments

    def generate(
        self,
        loan_id: str,
        customer_id: str,
        principal: AmountLike,
        annual_rate_percent: AmountLike,
        tenure_months: int,
        start_date: date
    ) -> List[Installment]:
        """
        Generate and persist the schedule for a disbursed loan

        Raises:
            InvalidInput: Bad principal, rate, tenure or identifiers
            AlreadyExists: A schedule was already generated for the loan
        """
        installments = self.build(
            loan_id, customer_id, principal, annual_rate_percent, tenure_months, start_date
        )
        self.repository.save_schedule(loan_id, installments)

        log_action(
            self.logger, "info", f"Generated {len(installments)} EMIs for loan {loan_id}",
            action="generate_schedule", resource=f"loan:{loan_id}",
            extra={
                "customer_id": customer_id,
                "principal": str(quantize_amount(principal)),
                "annual_rate_percent": str(to_decimal(annual_rate_percent)),
                "tenure_months": tenure_months,
                "emi_amount": str(installments[0].emi_amount),
            }
        )

        if self.dispatcher:
            self.dispatcher.publish(create_schedule_event(loan_id, customer_id, installments))

        return installments

    def get_schedule(self, loan_id: str) -> List[Installment]:
        """Installments of a loan in EMI number order"""
        installments = self.repository.for_loan(loan_id)
        if not installments:
            raise NotFound(EMI_SCHEDULE_NOT_FOUND)
        return installments

    def get_customer_schedule(self, customer_id: str) -> List[Installment]:
        return self.repository.for_customer(customer_id)

    def get_pending_for_customer(self, customer_id: str) -> List[Installment]:
        return [i for i in self.repository.for_customer(customer_id) if i.status.is_unpaid]

    def get_installment(self, installment_id: str) -> Installment:
        installment = self.repository.get(installment_id)
        if not installment:
            raise NotFound(EMI_NOT_FOUND)
        return installment

    def next_pending(self, loan_id: str) -> Optional[Installment]:
        """Earliest unpaid installment of the loan, None when fully paid"""
        for installment in self.get_schedule(loan_id):
            if installment.status.is_unpaid:
                return installment
        return None

    def all_paid(self, loan_id: str) -> bool:
        """True when every installment of the loan is PAID (loan can be closed)"""
        return all(i.status == InstallmentStatus.PAID for i in self.get_schedule(loan_id))

