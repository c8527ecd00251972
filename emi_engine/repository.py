"""
EMI Persistence Mapping

Maps installments and payments onto a StorageInterface. Uniqueness rules are
enforced with create-only inserts so they hold under concurrent writers:
- one schedule marker row per loan id (write-once schedules)
- one reference index row per transaction reference
"""

from datetime import date, datetime, timezone
from typing import Callable, Iterable, List, Optional

from .errors import (
    AlreadyExists, DuplicateReference,
    EMI_ALREADY_EXISTS, DUPLICATE_TRANSACTION_REFERENCE
)
from .models import Installment, Payment
from .storage import StorageInterface, DuplicateKeyError


class InstallmentRepository:
    """Installment store keyed by installment id"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.installments_table = "emi_installments"
        self.schedules_table = "emi_loan_schedules"

    def save_schedule(self, loan_id: str, installments: List[Installment]) -> List[Installment]:
        """Persist a full schedule once; a second attempt for the loan raises AlreadyExists"""
        with self.storage.atomic():
            try:
                self.storage.insert(self.schedules_table, loan_id, {
                    "loan_id": loan_id,
                    "installment_count": len(installments),
                    "created_at": datetime.now(timezone.utc).isoformat()
                })
            except DuplicateKeyError:
                raise AlreadyExists(EMI_ALREADY_EXISTS)

            for installment in installments:
                self.storage.insert(self.installments_table, installment.id, installment.to_dict())

        return installments

    def schedule_exists(self, loan_id: str) -> bool:
        return self.storage.exists(self.schedules_table, loan_id)

    def get(self, installment_id: str) -> Optional[Installment]:
        data = self.storage.load(self.installments_table, installment_id)
        if data:
            return Installment.from_dict(data)
        return None

    def save(self, installment: Installment) -> None:
        self.storage.save(self.installments_table, installment.id, installment.to_dict())

    def save_all(self, installments: Iterable[Installment]) -> None:
        self.storage.save_many(
            self.installments_table,
            {installment.id: installment.to_dict() for installment in installments}
        )

    def for_loan(self, loan_id: str) -> List[Installment]:
        """Installments of one loan ordered by EMI number"""
        rows = self.storage.find(self.installments_table, {"loan_id": loan_id})
        return sorted((Installment.from_dict(row) for row in rows), key=lambda i: i.emi_number)

    def for_customer(self, customer_id: str) -> List[Installment]:
        """Installments of one customer ordered by due date"""
        rows = self.storage.find(self.installments_table, {"customer_id": customer_id})
        return sorted(
            (Installment.from_dict(row) for row in rows),
            key=lambda i: (i.due_date, i.loan_id, i.emi_number)
        )

    def all(self) -> List[Installment]:
        return [Installment.from_dict(row) for row in self.storage.load_all(self.installments_table)]

    def where(self, predicate: Callable[[Installment], bool]) -> List[Installment]:
        return [installment for installment in self.all() if predicate(installment)]

    def due_between(self, start: date, end: date) -> List[Installment]:
        """Installments due in the inclusive range, ordered by due date"""
        return sorted(
            self.where(lambda i: start <= i.due_date <= end),
            key=lambda i: (i.due_date, i.loan_id, i.emi_number)
        )


class PaymentRepository:
    """Append-only payment store with a unique transaction reference index"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.payments_table = "emi_payments"
        self.references_table = "emi_payment_references"

    def add(self, payment: Payment) -> Payment:
        """Insert a payment; a reused transaction reference raises DuplicateReference"""
        with self.storage.atomic():
            if payment.transaction_reference:
                try:
                    self.storage.insert(self.references_table, payment.transaction_reference, {
                        "payment_id": payment.id
                    })
                except DuplicateKeyError:
                    raise DuplicateReference(DUPLICATE_TRANSACTION_REFERENCE)
            self.storage.insert(self.payments_table, payment.id, payment.to_dict())
        return payment

    def get(self, payment_id: str) -> Optional[Payment]:
        data = self.storage.load(self.payments_table, payment_id)
        if data:
            return Payment.from_dict(data)
        return None

    def reference_exists(self, transaction_reference: str) -> bool:
        return self.storage.exists(self.references_table, transaction_reference)

    def find_by_reference(self, transaction_reference: str) -> Optional[Payment]:
        index = self.storage.load(self.references_table, transaction_reference)
        if not index:
            return None
        return self.get(index["payment_id"])

    def for_loan(self, loan_id: str) -> List[Payment]:
        """Payments of a loan, newest payment date first"""
        rows = self.storage.find(self.payments_table, {"loan_id": loan_id})
        return sorted(
            (Payment.from_dict(row) for row in rows),
            key=lambda p: (p.payment_date, p.created_at),
            reverse=True
        )

    def for_installment(self, installment_id: str) -> List[Payment]:
        rows = self.storage.find(self.payments_table, {"installment_id": installment_id})
        return sorted((Payment.from_dict(row) for row in rows), key=lambda p: p.created_at)

    def between(self, start: date, end: date) -> List[Payment]:
        """Payments dated within the inclusive range"""
        payments = [Payment.from_dict(row) for row in self.storage.load_all(self.payments_table)]
        return sorted(
            (p for p in payments if start <= p.payment_date <= end),
            key=lambda p: p.payment_date
        )
