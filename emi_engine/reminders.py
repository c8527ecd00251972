"""
Due Reminder Job

Signals "installment due soon" for unpaid installments due within the next
few days. Delivery is handled by whoever subscribes to EMI_DUE_SOON.
"""

from datetime import date, timedelta
from typing import Optional

from .events import DomainEvent, EventDispatcher, create_installment_event
from .logging_config import get_logger
from .repository import InstallmentRepository


class DueReminderJob:
    """Publishes EMI_DUE_SOON for unpaid installments due in [today, today + days_ahead]"""

    def __init__(self, repository: InstallmentRepository, dispatcher: EventDispatcher,
                 days_ahead: int = 3):
        self.repository = repository
        self.dispatcher = dispatcher
        self.days_ahead = days_ahead
        self.logger = get_logger("emi.reminders")

    def run(self, today: Optional[date] = None) -> int:
        if not today:
            today = date.today()

        due_soon = self.repository.due_between(today, today + timedelta(days=self.days_ahead))
        sent = 0
        for installment in due_soon:
            if not installment.status.is_unpaid:
                continue
            try:
                self.dispatcher.publish(create_installment_event(DomainEvent.EMI_DUE_SOON, installment))
                sent += 1
            except Exception as e:
                self.logger.error(f"Failed to signal due reminder for installment {installment.id}: {e}")

        self.logger.info(f"Sent {sent} EMI due reminders for {today.isoformat()}")
        return sent
