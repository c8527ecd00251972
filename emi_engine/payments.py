"""
Payment Recording Module

Applies a payment to one installment and moves the installment through its
status machine. The installment read-modify-write and the payment insert run
in one storage transaction, so a concurrent sweep or payment on the same
installment cannot interleave with it. Event publication and payer-name
enrichment happen after commit and cannot fail the payment.
"""

from decimal import Decimal
from datetime import datetime, date, timezone
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union
import uuid

from .amortization import add_months
from .currency import AmountLike, ZERO, to_decimal, quantize_amount, format_amount, sum_amounts
from .errors import (
    InvalidInput, NotFound, AlreadyPaid, InvalidAmount, ReferenceRequired, DuplicateReference,
    EMI_NOT_FOUND, EMI_ALREADY_PAID, PAYMENT_NOT_FOUND, INVALID_PAYMENT_AMOUNT,
    TRANSACTION_REFERENCE_REQUIRED, DUPLICATE_TRANSACTION_REFERENCE
)
from .events import EventDispatcher, create_payment_event
from .identity import IdentityDirectory, placeholder_name
from .late_fees import LateFeeCalculator
from .logging_config import get_logger, log_action
from .models import (
    Installment, InstallmentStatus, Payment, PaymentMethod, classify_payment, transition
)
from .repository import InstallmentRepository, PaymentRepository


@dataclass
class PaymentReceipt:
    """Result of recording a payment"""
    payment: Payment
    emi_number: int
    installment_status: InstallmentStatus
    paid_by_name: str
    late_fee: Decimal = ZERO  # informational, not persisted

    def to_response(self) -> Dict[str, Any]:
        response = self.payment.to_response()
        response.update({
            "emi_number": self.emi_number,
            "installment_status": self.installment_status.value,
            "paid_by_name": self.paid_by_name,
            "late_fee": format_amount(self.late_fee),
        })
        return response


@dataclass
class PaymentStatistics:
    """Payments received within a date range"""
    start_date: date
    end_date: date
    payment_count: int
    total_amount: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "payment_count": self.payment_count,
            "total_amount": format_amount(self.total_amount),
        }


class PaymentRecorder:
    """Records EMI payments and answers payment queries"""

    def __init__(
        self,
        installments: InstallmentRepository,
        payments: PaymentRepository,
        late_fee_calculator: Optional[LateFeeCalculator] = None,
        identity: Optional[IdentityDirectory] = None,
        dispatcher: Optional[EventDispatcher] = None,
        late_fee_percent_per_day: AmountLike = Decimal('2.0'),
        grace_period_days: Optional[int] = 3
    ):
        self.installments = installments
        self.payments = payments
        self.storage = installments.storage
        self.late_fee_calculator = late_fee_calculator or LateFeeCalculator()
        self.identity = identity
        self.dispatcher = dispatcher
        self.late_fee_percent_per_day = to_decimal(late_fee_percent_per_day)
        self.grace_period_days = grace_period_days
        self.logger = get_logger("emi.payments")

    def record_payment(
        self,
        installment_id: str,
        amount: AmountLike,
        payment_date: date,
        method: Union[PaymentMethod, str],
        paid_by: str,
        transaction_reference: Optional[str] = None,
        remarks: Optional[str] = None
    ) -> PaymentReceipt:
        """
        Record a payment against an installment

        A payment whose own amount reaches the installment's EMI amount marks
        it PAID; anything less marks it PARTIAL_PAID.

        Raises:
            NotFound: Unknown installment
            AlreadyPaid: Installment is already PAID
            InvalidAmount: Amount is zero or negative
            ReferenceRequired: Non-cash method without a transaction reference
            DuplicateReference: Reference already used by another payment
        """
        if not paid_by:
            raise InvalidInput("paid_by is required")
        if payment_date is None:
            raise InvalidInput("Payment date is required")
        try:
            method = PaymentMethod(method)
            amount = quantize_amount(amount)
        except (TypeError, ValueError) as e:
            raise InvalidInput(str(e))

        reference = transaction_reference.strip() if transaction_reference else None
        reference = reference or None

        with self.storage.atomic():
            installment = self.installments.get(installment_id)
            if not installment:
                raise NotFound(EMI_NOT_FOUND)
            if installment.status == InstallmentStatus.PAID:
                raise AlreadyPaid(EMI_ALREADY_PAID)
            if amount <= 0:
                raise InvalidAmount(INVALID_PAYMENT_AMOUNT)
            if method.requires_transaction_reference and not reference:
                raise ReferenceRequired(TRANSACTION_REFERENCE_REQUIRED)
            if reference and self.payments.reference_exists(reference):
                raise DuplicateReference(DUPLICATE_TRANSACTION_REFERENCE)

            now = datetime.now(timezone.utc)
            payment = Payment(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                installment_id=installment.id,
                loan_id=installment.loan_id,
                amount=amount,
                payment_date=payment_date,
                method=method,
                paid_by=paid_by,
                transaction_reference=reference,
                remarks=remarks
            )
            # Reference index insert is the final uniqueness guard
            self.payments.add(payment)

            installment.status = transition(
                installment.status, classify_payment(amount, installment.emi_amount)
            )
            installment.updated_at = now
            self.installments.save(installment)

        log_action(
            self.logger, "info",
            f"Payment {format_amount(amount)} recorded for EMI #{installment.emi_number} "
            f"of loan {installment.loan_id}, status {installment.status.value}",
            user_id=paid_by, action="record_payment", resource=f"installment:{installment.id}",
            extra={"payment_id": payment.id, "method": method.value, "transaction_reference": reference}
        )

        if self.dispatcher:
            self.dispatcher.publish(create_payment_event(payment, installment))

        return PaymentReceipt(
            payment=payment,
            emi_number=installment.emi_number,
            installment_status=installment.status,
            paid_by_name=self._payer_name(paid_by),
            late_fee=self.late_fee_for(installment, payment_date)
        )

    def late_fee_for(self, installment: Installment, payment_date: date) -> Decimal:
        """Late fee under the configured policy for paying on payment_date"""
        return self.late_fee_calculator.calculate_late_fee(
            installment.emi_amount,
            installment.due_date,
            payment_date,
            self.late_fee_percent_per_day,
            self.grace_period_days
        )

    def _payer_name(self, paid_by: str) -> str:
        if self.identity is None:
            return placeholder_name(paid_by)
        return self.identity.display_name(paid_by)

    def get_payment_history(self, loan_id: str) -> List[Payment]:
        """Payments of a loan, newest first"""
        return self.payments.for_loan(loan_id)

    def get_installment_payments(self, installment_id: str) -> List[Payment]:
        return self.payments.for_installment(installment_id)

    def get_payment(self, payment_id: str) -> Payment:
        payment = self.payments.get(payment_id)
        if not payment:
            raise NotFound(PAYMENT_NOT_FOUND)
        return payment

    def get_payment_by_reference(self, transaction_reference: str) -> Payment:
        payment = self.payments.find_by_reference(transaction_reference)
        if not payment:
            raise NotFound(PAYMENT_NOT_FOUND)
        return payment

    def payment_statistics(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        today: Optional[date] = None
    ) -> PaymentStatistics:
        """Count and total of payments in the inclusive range, default the last month"""
        today = today or date.today()
        end_date = end_date or today
        start_date = start_date or add_months(end_date, -1)
        if start_date > end_date:
            raise InvalidInput("Start date must not be after end date")

        payments = self.payments.between(start_date, end_date)
        return PaymentStatistics(
            start_date=start_date,
            end_date=end_date,
            payment_count=len(payments),
            total_amount=sum_amounts(p.amount for p in payments)
        )
