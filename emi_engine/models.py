"""
EMI Domain Models

Installment and payment records, the installment status state machine and
payment methods.
"""

from decimal import Decimal
from datetime import datetime, date
from dataclasses import dataclass
from typing import Any, Dict, Optional
from enum import Enum

from .currency import quantize_amount, format_amount
from .errors import AlreadyPaid, EMI_ALREADY_PAID
from .storage import StorageRecord


class InstallmentStatus(Enum):
    """Payment status of a single installment"""
    PENDING = "PENDING"
    PARTIAL_PAID = "PARTIAL_PAID"
    PAID = "PAID"
    OVERDUE = "OVERDUE"

    @property
    def display_name(self) -> str:
        return {
            InstallmentStatus.PENDING: "Pending",
            InstallmentStatus.PARTIAL_PAID: "Partial Paid",
            InstallmentStatus.PAID: "Paid",
            InstallmentStatus.OVERDUE: "Overdue",
        }[self]

    @property
    def is_unpaid(self) -> bool:
        return self != InstallmentStatus.PAID

    @property
    def can_mark_as_paid(self) -> bool:
        return self != InstallmentStatus.PAID

    @property
    def can_become_overdue(self) -> bool:
        """Only untouched or partially paid installments are swept to OVERDUE"""
        return self in (InstallmentStatus.PENDING, InstallmentStatus.PARTIAL_PAID)


class InstallmentEvent(Enum):
    """Events that drive installment status transitions"""
    FULL_PAYMENT = "full_payment"
    PARTIAL_PAYMENT = "partial_payment"
    DUE_DATE_PASSED = "due_date_passed"


def transition(status: InstallmentStatus, event: InstallmentEvent) -> InstallmentStatus:
    """
    Pure status transition used by the payment recorder and the overdue sweeper.

    A PAID installment rejects any payment event with AlreadyPaid and ignores
    the passage of its due date. OVERDUE is only entered from PENDING or
    PARTIAL_PAID, which is what makes repeated sweeps idempotent.
    """
    if event == InstallmentEvent.DUE_DATE_PASSED:
        if status.can_become_overdue:
            return InstallmentStatus.OVERDUE
        return status

    if status == InstallmentStatus.PAID:
        raise AlreadyPaid(EMI_ALREADY_PAID)

    if event == InstallmentEvent.FULL_PAYMENT:
        return InstallmentStatus.PAID
    if event == InstallmentEvent.PARTIAL_PAYMENT:
        return InstallmentStatus.PARTIAL_PAID

    raise ValueError(f"Unsupported installment event: {event}")


def classify_payment(amount: Decimal, emi_amount: Decimal) -> InstallmentEvent:
    """
    A payment is full when its own amount reaches the installment's fixed
    EMI amount; earlier partial payments are not added to it.
    """
    if amount >= emi_amount:
        return InstallmentEvent.FULL_PAYMENT
    return InstallmentEvent.PARTIAL_PAYMENT


class PaymentMethod(Enum):
    """Accepted payment methods"""
    CASH = "CASH"
    CHEQUE = "CHEQUE"
    NEFT = "NEFT"
    RTGS = "RTGS"
    UPI = "UPI"
    DEBIT_CARD = "DEBIT_CARD"
    CREDIT_CARD = "CREDIT_CARD"
    NET_BANKING = "NET_BANKING"
    DEMAND_DRAFT = "DEMAND_DRAFT"

    @property
    def requires_transaction_reference(self) -> bool:
        return self != PaymentMethod.CASH


@dataclass
class Installment(StorageRecord):
    """One due month of a loan's amortization schedule"""
    loan_id: str
    customer_id: str
    emi_number: int                     # 1-based, unique per loan
    due_date: date
    principal_component: Decimal
    interest_component: Decimal
    emi_amount: Decimal
    outstanding_balance: Decimal        # Principal left after this installment
    status: InstallmentStatus = InstallmentStatus.PENDING

    def __post_init__(self):
        for field_name in ('principal_component', 'interest_component',
                           'emi_amount', 'outstanding_balance'):
            setattr(self, field_name, quantize_amount(getattr(self, field_name)))

    def is_overdue(self, today: date) -> bool:
        """Overdue by date comparison, whether or not the sweeper has run"""
        if self.status == InstallmentStatus.OVERDUE:
            return True
        return self.status.can_become_overdue and self.due_date < today

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Installment':
        data = dict(data)
        data['due_date'] = date.fromisoformat(data['due_date'])
        data['status'] = InstallmentStatus(data['status'])
        for field_name in ('principal_component', 'interest_component',
                           'emi_amount', 'outstanding_balance'):
            data[field_name] = Decimal(data[field_name])
        return super().from_dict(data)

    def to_response(self) -> Dict[str, Any]:
        """Serialize for callers; currency fields always carry 2 decimals"""
        return {
            "id": self.id,
            "loan_id": self.loan_id,
            "customer_id": self.customer_id,
            "emi_number": self.emi_number,
            "due_date": self.due_date.isoformat(),
            "principal_component": format_amount(self.principal_component),
            "interest_component": format_amount(self.interest_component),
            "emi_amount": format_amount(self.emi_amount),
            "outstanding_balance": format_amount(self.outstanding_balance),
            "status": self.status.value,
        }


@dataclass
class Payment(StorageRecord):
    """Append-only record of money received against one installment"""
    installment_id: str
    loan_id: str
    amount: Decimal
    payment_date: date
    method: PaymentMethod
    paid_by: str
    transaction_reference: Optional[str] = None
    remarks: Optional[str] = None

    def __post_init__(self):
        self.amount = quantize_amount(self.amount)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Payment':
        data = dict(data)
        data['payment_date'] = date.fromisoformat(data['payment_date'])
        data['method'] = PaymentMethod(data['method'])
        data['amount'] = Decimal(data['amount'])
        return super().from_dict(data)

    def to_response(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "installment_id": self.installment_id,
            "loan_id": self.loan_id,
            "amount": format_amount(self.amount),
            "payment_date": self.payment_date.isoformat(),
            "method": self.method.value,
            "transaction_reference": self.transaction_reference,
            "paid_by": self.paid_by,
            "remarks": self.remarks,
            "created_at": self.created_at.isoformat(),
        }
