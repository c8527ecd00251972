"""
EMI system wiring and request dependencies
"""

from decimal import Decimal
from datetime import date
from typing import Optional
import threading

from fastapi import HTTPException, status

from ..amortization import AmortizationCalculator
from ..config import EmiEngineConfig, get_config
from ..currency import decimal_from_string
from ..errors import (
    NotFound, AlreadyExists, AlreadyPaid, DuplicateReference
)
from ..events import EventDispatcher
from ..identity import IdentityDirectory, create_identity_directory
from ..late_fees import LateFeeCalculator
from ..notifications import NotificationService, create_notification_service
from ..payments import PaymentRecorder
from ..reminders import DueReminderJob
from ..repository import InstallmentRepository, PaymentRepository
from ..schedule import ScheduleGenerator
from ..storage import StorageInterface, create_storage
from ..summary import SummaryAggregator
from ..sweeper import OverdueSweeper, SweepScheduler, build_daily_job


class EmiSystem:
    """EMI engine with all components initialized against one store"""

    def __init__(
        self,
        config: Optional[EmiEngineConfig] = None,
        storage: Optional[StorageInterface] = None,
        identity: Optional[IdentityDirectory] = None,
        notifications: Optional[NotificationService] = None
    ):
        self.config = config or get_config()

        self.storage = storage or create_storage(self.config.database_url)
        self.dispatcher = EventDispatcher()
        self.installments = InstallmentRepository(self.storage)
        self.payments = PaymentRepository(self.storage)

        self.calculator = AmortizationCalculator()
        self.late_fee_calculator = LateFeeCalculator()
        self.identity = identity or create_identity_directory(
            self.config.identity_service_url, self.config.identity_timeout
        )

        self.schedule_generator = ScheduleGenerator(self.installments, self.calculator, self.dispatcher)
        self.payment_recorder = PaymentRecorder(
            self.installments, self.payments,
            late_fee_calculator=self.late_fee_calculator,
            identity=self.identity,
            dispatcher=self.dispatcher,
            late_fee_percent_per_day=self.config.late_fee_percent_per_day,
            grace_period_days=self.config.grace_period_days
        )
        self.sweeper = OverdueSweeper(self.installments, self.dispatcher)
        self.reminder_job = DueReminderJob(self.installments, self.dispatcher, self.config.reminder_days_ahead)
        self.summary = SummaryAggregator(self.installments)

        self.notifications = notifications or create_notification_service(
            self.config.notification_webhook_url, self.config.notification_timeout
        )
        self.notifications.register(self.dispatcher)

        self.scheduler = SweepScheduler(
            build_daily_job(self.sweeper, self.reminder_job),
            interval_seconds=self.config.sweep_interval_seconds
        )

    def close(self) -> None:
        self.scheduler.stop()
        self.notifications.shutdown()
        self.identity.close()
        self.storage.close()


_system: Optional[EmiSystem] = None
_system_lock = threading.Lock()


def get_emi_system() -> EmiSystem:
    """Process-wide EMI system, created on first use"""
    global _system
    with _system_lock:
        if _system is None:
            _system = EmiSystem()
        return _system


def to_http_exception(error: ValueError) -> HTTPException:
    """Map engine errors onto HTTP status codes"""
    if isinstance(error, NotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, (AlreadyExists, AlreadyPaid, DuplicateReference)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))


def parse_amount(value: str) -> Decimal:
    return decimal_from_string(value)


def parse_date(value: str) -> date:
    if not value:
        raise ValueError("Date is required")
    return date.fromisoformat(value)
