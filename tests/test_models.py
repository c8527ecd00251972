"""
Tests for installment status transitions, payment methods and records
"""

import pytest
from decimal import Decimal
from datetime import date, datetime, timezone

from emi_engine.errors import AlreadyPaid
from emi_engine.models import (
    Installment, InstallmentEvent, InstallmentStatus, Payment, PaymentMethod,
    classify_payment, transition
)


class TestTransitions:
    """Test the status table"""

    @pytest.mark.parametrize("status,event,expected", [
        (InstallmentStatus.PENDING, InstallmentEvent.FULL_PAYMENT, InstallmentStatus.PAID),
        (InstallmentStatus.PENDING, InstallmentEvent.PARTIAL_PAYMENT, InstallmentStatus.PARTIAL_PAID),
        (InstallmentStatus.PENDING, InstallmentEvent.DUE_DATE_PASSED, InstallmentStatus.OVERDUE),
        (InstallmentStatus.PARTIAL_PAID, InstallmentEvent.FULL_PAYMENT, InstallmentStatus.PAID),
        (InstallmentStatus.PARTIAL_PAID, InstallmentEvent.PARTIAL_PAYMENT, InstallmentStatus.PARTIAL_PAID),
        (InstallmentStatus.PARTIAL_PAID, InstallmentEvent.DUE_DATE_PASSED, InstallmentStatus.OVERDUE),
        (InstallmentStatus.OVERDUE, InstallmentEvent.FULL_PAYMENT, InstallmentStatus.PAID),
        (InstallmentStatus.OVERDUE, InstallmentEvent.PARTIAL_PAYMENT, InstallmentStatus.PARTIAL_PAID),
        (InstallmentStatus.OVERDUE, InstallmentEvent.DUE_DATE_PASSED, InstallmentStatus.OVERDUE),
        (InstallmentStatus.PAID, InstallmentEvent.DUE_DATE_PASSED, InstallmentStatus.PAID),
    ])
    def test_transition(self, status, event, expected):
        assert transition(status, event) == expected

    @pytest.mark.parametrize("event", [InstallmentEvent.FULL_PAYMENT, InstallmentEvent.PARTIAL_PAYMENT])
    def test_paid_rejects_payments(self, event):
        with pytest.raises(AlreadyPaid):
            transition(InstallmentStatus.PAID, event)

    def test_classify_payment(self):
        assert classify_payment(Decimal("5000.00"), Decimal("5000.00")) == InstallmentEvent.FULL_PAYMENT
        assert classify_payment(Decimal("5000.01"), Decimal("5000.00")) == InstallmentEvent.FULL_PAYMENT
        assert classify_payment(Decimal("4999.99"), Decimal("5000.00")) == InstallmentEvent.PARTIAL_PAYMENT


class TestStatusHelpers:

    def test_display_names(self):
        assert InstallmentStatus.PENDING.display_name == "Pending"
        assert InstallmentStatus.PARTIAL_PAID.display_name == "Partial Paid"
        assert InstallmentStatus.PAID.display_name == "Paid"
        assert InstallmentStatus.OVERDUE.display_name == "Overdue"

    def test_unpaid_and_payable(self):
        for status in (InstallmentStatus.PENDING, InstallmentStatus.PARTIAL_PAID, InstallmentStatus.OVERDUE):
            assert status.is_unpaid
            assert status.can_mark_as_paid
        assert not InstallmentStatus.PAID.is_unpaid
        assert not InstallmentStatus.PAID.can_mark_as_paid


class TestPaymentMethod:

    def test_only_cash_skips_reference(self):
        assert not PaymentMethod.CASH.requires_transaction_reference
        for method in PaymentMethod:
            if method != PaymentMethod.CASH:
                assert method.requires_transaction_reference

    def test_all_methods(self):
        assert {m.value for m in PaymentMethod} == {
            "CASH", "CHEQUE", "NEFT", "RTGS", "UPI", "DEBIT_CARD",
            "CREDIT_CARD", "NET_BANKING", "DEMAND_DRAFT"
        }


class TestRecords:
    """Test persistence shapes of installments and payments"""

    def setup_method(self):
        now = datetime(2026, 1, 1, 9, 30, tzinfo=timezone.utc)
        self.installment = Installment(
            id="inst-1", created_at=now, updated_at=now,
            loan_id="LN-1", customer_id="CUST-1", emi_number=1, due_date=date(2026, 2, 5),
            principal_component=Decimal("7884.88"), interest_component=Decimal("1000"),
            emi_amount=Decimal("8884.875"), outstanding_balance=Decimal("92115.12")
        )
        self.payment = Payment(
            id="pay-1", created_at=now, updated_at=now,
            installment_id="inst-1", loan_id="LN-1", amount=Decimal("100.5"),
            payment_date=date(2026, 2, 1), method=PaymentMethod.NEFT, paid_by="user-1",
            transaction_reference="NEFT-1"
        )

    def test_amounts_quantized(self):
        assert str(self.installment.interest_component) == "1000.00"
        assert str(self.installment.emi_amount) == "8884.88"
        assert str(self.payment.amount) == "100.50"

    def test_installment_storage_shape(self):
        data = self.installment.to_dict()

        assert data["due_date"] == "2026-02-05"
        assert data["status"] == "PENDING"
        assert data["emi_amount"] == "8884.88"

        restored = Installment.from_dict(data)
        assert restored == self.installment

    def test_payment_storage_shape(self):
        data = self.payment.to_dict()
        assert data["method"] == "NEFT"
        assert Payment.from_dict(data) == self.payment

    def test_responses_use_two_decimals(self):
        response = self.installment.to_response()
        assert response["interest_component"] == "1000.00"
        assert response["status"] == "PENDING"
        assert self.payment.to_response()["amount"] == "100.50"

    def test_is_overdue(self):
        assert not self.installment.is_overdue(date(2026, 2, 5))
        assert self.installment.is_overdue(date(2026, 2, 6))

        self.installment.status = InstallmentStatus.PAID
        assert not self.installment.is_overdue(date(2026, 3, 1))

        self.installment.status = InstallmentStatus.OVERDUE
        assert self.installment.is_overdue(date(2026, 1, 1))
