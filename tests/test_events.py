"""
Tests for the event dispatcher and event factories
"""

import logging
import uuid
from decimal import Decimal
from datetime import date, datetime, timezone
from unittest.mock import Mock

from emi_engine.events import (
    DomainEvent, EventDispatcher, EventPayload,
    create_installment_event, create_payment_event, create_schedule_event
)
from emi_engine.models import Installment, InstallmentStatus, Payment, PaymentMethod


def make_installment(emi_number=1, emi_amount="8884.88", due_date=date(2026, 2, 5)):
    now = datetime.now(timezone.utc)
    return Installment(
        id=str(uuid.uuid4()), created_at=now, updated_at=now,
        loan_id="LN-1", customer_id="CUST-1", emi_number=emi_number, due_date=due_date,
        principal_component=Decimal("7884.88"), interest_component=Decimal("1000.00"),
        emi_amount=Decimal(emi_amount), outstanding_balance=Decimal("92115.12")
    )


def make_event(event_type=DomainEvent.EMI_DUE_SOON):
    return EventPayload(event_type=event_type, entity_type="installment", entity_id="inst-1", data={})


class TestEventDispatcher:

    def setup_method(self):
        self.dispatcher = EventDispatcher()

    def test_subscribe_and_publish(self):
        handler = Mock()
        self.dispatcher.subscribe(DomainEvent.EMI_DUE_SOON, handler)

        event = make_event()
        self.dispatcher.publish(event)

        handler.assert_called_once_with(event)

    def test_only_matching_type_is_delivered(self):
        handler = Mock()
        self.dispatcher.subscribe(DomainEvent.EMI_MARKED_OVERDUE, handler)

        self.dispatcher.publish(make_event(DomainEvent.EMI_DUE_SOON))

        handler.assert_not_called()

    def test_global_handlers_see_everything(self):
        handler = Mock()
        self.dispatcher.subscribe_all(handler)

        self.dispatcher.publish(make_event(DomainEvent.EMI_DUE_SOON))
        self.dispatcher.publish(make_event(DomainEvent.EMI_PAYMENT_RECORDED))

        assert handler.call_count == 2

    def test_unsubscribe(self):
        handler = Mock()
        self.dispatcher.subscribe(DomainEvent.EMI_DUE_SOON, handler)
        self.dispatcher.unsubscribe(DomainEvent.EMI_DUE_SOON, handler)

        self.dispatcher.publish(make_event())

        handler.assert_not_called()
        # Unknown handlers are tolerated
        self.dispatcher.unsubscribe(DomainEvent.EMI_DUE_SOON, handler)

    def test_handler_error_does_not_reach_publisher(self, caplog):
        def failing_handler(event):
            raise RuntimeError("boom")

        second = Mock()
        self.dispatcher.subscribe(DomainEvent.EMI_DUE_SOON, failing_handler)
        self.dispatcher.subscribe(DomainEvent.EMI_DUE_SOON, second)

        with caplog.at_level(logging.ERROR, logger="emi.events"):
            self.dispatcher.publish(make_event())

        second.assert_called_once()
        assert "failing_handler" in caplog.text

    def test_handler_count_and_clear(self):
        self.dispatcher.subscribe(DomainEvent.EMI_DUE_SOON, Mock())
        self.dispatcher.subscribe(DomainEvent.EMI_MARKED_OVERDUE, Mock())
        self.dispatcher.subscribe_all(Mock())

        assert self.dispatcher.get_handler_count(DomainEvent.EMI_DUE_SOON) == 1
        assert self.dispatcher.get_handler_count() == 3

        self.dispatcher.clear()
        assert self.dispatcher.get_handler_count() == 0

    def test_handler_may_subscribe_while_publishing(self):
        late = Mock()

        def subscribing_handler(event):
            self.dispatcher.subscribe(DomainEvent.EMI_DUE_SOON, late)

        self.dispatcher.subscribe(DomainEvent.EMI_DUE_SOON, subscribing_handler)
        self.dispatcher.publish(make_event())

        late.assert_not_called()
        self.dispatcher.publish(make_event())
        late.assert_called_once()


class TestEventPayload:

    def test_dict_shape(self):
        event = make_event(DomainEvent.EMI_MARKED_OVERDUE)
        data = event.to_dict()

        assert data["event_type"] == "emi.marked_overdue"
        assert data["entity_id"] == "inst-1"

        restored = EventPayload.from_dict(data)
        assert restored.event_type == DomainEvent.EMI_MARKED_OVERDUE
        assert restored.timestamp == event.timestamp
        assert restored.event_id == event.event_id


class TestEventFactories:

    def test_schedule_event(self):
        installments = [
            make_installment(1, "100.00", date(2026, 2, 5)),
            make_installment(2, "100.01", date(2026, 3, 5)),
        ]

        event = create_schedule_event("LN-1", "CUST-1", installments)

        assert event.event_type == DomainEvent.EMI_SCHEDULE_GENERATED
        assert event.entity_id == "LN-1"
        assert event.data["installment_count"] == 2
        assert event.data["emi_amount"] == "100.00"
        assert event.data["total_amount"] == "200.01"
        assert event.data["first_due_date"] == "2026-02-05"

    def test_payment_event(self):
        installment = make_installment()
        installment.status = InstallmentStatus.PARTIAL_PAID
        now = datetime.now(timezone.utc)
        payment = Payment(
            id="pay-1", created_at=now, updated_at=now,
            installment_id=installment.id, loan_id="LN-1", amount=Decimal("500"),
            payment_date=date(2026, 2, 1), method=PaymentMethod.UPI, paid_by="user-7",
            transaction_reference="UPI-77"
        )

        event = create_payment_event(payment, installment)

        assert event.event_type == DomainEvent.EMI_PAYMENT_RECORDED
        assert event.entity_id == "pay-1"
        assert event.data["amount"] == "500.00"
        assert event.data["status"] == "PARTIAL_PAID"
        assert event.data["method"] == "UPI"
        assert event.data["customer_id"] == "CUST-1"
        assert event.data["paid_by"] == "user-7"

    def test_installment_event(self):
        installment = make_installment()
        installment.status = InstallmentStatus.OVERDUE

        event = create_installment_event(DomainEvent.EMI_MARKED_OVERDUE, installment)

        assert event.entity_type == "installment"
        assert event.entity_id == installment.id
        assert event.data == {
            "loan_id": "LN-1",
            "customer_id": "CUST-1",
            "emi_number": 1,
            "amount": "8884.88",
            "due_date": "2026-02-05",
            "status": "OVERDUE",
        }
