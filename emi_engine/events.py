"""
Event System Module

Publish/subscribe dispatcher for EMI domain events. Downstream notification
delivery subscribes here; handler failures are logged and never reach the
publisher.
"""

from enum import Enum
from typing import Callable, Dict, List, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone
import uuid
import logging
from threading import RLock

from .currency import format_amount, sum_amounts


class DomainEvent(Enum):
    """Domain events emitted by the EMI engine"""
    EMI_SCHEDULE_GENERATED = "emi.schedule_generated"
    EMI_PAYMENT_RECORDED = "emi.payment_recorded"
    EMI_MARKED_OVERDUE = "emi.marked_overdue"
    EMI_DUE_SOON = "emi.due_soon"


@dataclass
class EventPayload:
    """Payload for domain events"""
    event_type: DomainEvent
    entity_type: str
    entity_id: str
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'event_type': self.event_type.value,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'data': self.data,
            'timestamp': self.timestamp.isoformat(),
            'event_id': self.event_id
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EventPayload':
        """Create from dictionary"""
        return cls(
            event_type=DomainEvent(data['event_type']),
            entity_type=data['entity_type'],
            entity_id=data['entity_id'],
            data=data['data'],
            timestamp=datetime.fromisoformat(data['timestamp']) if isinstance(data['timestamp'], str) else data['timestamp'],
            event_id=data['event_id']
        )


class EventDispatcher:
    """Central event dispatcher, publish/subscribe pattern"""

    def __init__(self):
        self._handlers: Dict[DomainEvent, List[Callable]] = {}
        self._global_handlers: List[Callable] = []  # catch-all handlers
        self._lock = RLock()
        self.logger = logging.getLogger("emi.events")

    def subscribe(self, event_type: DomainEvent, handler: Callable) -> None:
        """Subscribe to a specific event type"""
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
            self.logger.debug(f"Subscribed handler {_handler_name(handler)} to {event_type.value}")

    def subscribe_all(self, handler: Callable) -> None:
        """Subscribe to ALL events"""
        with self._lock:
            self._global_handlers.append(handler)
            self.logger.debug(f"Subscribed global handler {_handler_name(handler)}")

    def unsubscribe(self, event_type: DomainEvent, handler: Callable) -> None:
        """Unsubscribe from a specific event type"""
        with self._lock:
            try:
                self._handlers.get(event_type, []).remove(handler)
            except ValueError:
                self.logger.warning(f"Handler {_handler_name(handler)} was not subscribed to {event_type.value}")

    def publish(self, event: EventPayload) -> None:
        """Publish event to all subscribers"""
        with self._lock:
            handlers = list(self._handlers.get(event.event_type, [])) + list(self._global_handlers)

        self.logger.debug(f"Publishing event {event.event_type.value} for {event.entity_type}:{event.entity_id}")

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                # Log but don't break the main operation
                self.logger.error(
                    f"Error in event handler {_handler_name(handler)} for {event.event_type.value}: {e}"
                )

    def clear(self) -> None:
        """Clear all handlers"""
        with self._lock:
            self._handlers.clear()
            self._global_handlers.clear()

    def get_handler_count(self, event_type: Optional[DomainEvent] = None) -> int:
        """Get count of handlers for a specific event type or all"""
        with self._lock:
            if event_type:
                return len(self._handlers.get(event_type, []))
            total = sum(len(handlers) for handlers in self._handlers.values())
            return total + len(self._global_handlers)


def _handler_name(handler: Callable) -> str:
    return getattr(handler, "__name__", repr(handler))


def create_schedule_event(loan_id: str, customer_id: str, installments) -> EventPayload:
    """Schedule generated for a disbursed loan"""
    return EventPayload(
        event_type=DomainEvent.EMI_SCHEDULE_GENERATED,
        entity_type="loan",
        entity_id=loan_id,
        data={
            "loan_id": loan_id,
            "customer_id": customer_id,
            "installment_count": len(installments),
            "emi_amount": format_amount(installments[0].emi_amount) if installments else None,
            "total_amount": format_amount(sum_amounts(i.emi_amount for i in installments)),
            "first_due_date": installments[0].due_date.isoformat() if installments else None,
        }
    )


def create_payment_event(payment, installment) -> EventPayload:
    """Payment recorded against an installment"""
    return EventPayload(
        event_type=DomainEvent.EMI_PAYMENT_RECORDED,
        entity_type="payment",
        entity_id=payment.id,
        data={
            "loan_id": payment.loan_id,
            "customer_id": installment.customer_id,
            "installment_id": installment.id,
            "emi_number": installment.emi_number,
            "amount": format_amount(payment.amount),
            "payment_date": payment.payment_date.isoformat(),
            "due_date": installment.due_date.isoformat(),
            "method": payment.method.value,
            "transaction_reference": payment.transaction_reference,
            "status": installment.status.value,
            "paid_by": payment.paid_by,
        }
    )


def create_installment_event(event_type: DomainEvent, installment) -> EventPayload:
    """Installment-level event (overdue, due soon)"""
    return EventPayload(
        event_type=event_type,
        entity_type="installment",
        entity_id=installment.id,
        data={
            "loan_id": installment.loan_id,
            "customer_id": installment.customer_id,
            "emi_number": installment.emi_number,
            "amount": format_amount(installment.emi_amount),
            "due_date": installment.due_date.isoformat(),
            "status": installment.status.value,
        }
    )
