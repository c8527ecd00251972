"""
Overdue Sweep Module

Periodic batch job that reclassifies unpaid installments whose due date has
passed, plus the timer that drives it.
"""

from datetime import datetime, date, timezone
from typing import Any, Callable, Dict, Optional
import threading

from .events import DomainEvent, EventDispatcher, create_installment_event
from .logging_config import get_logger, log_action
from .models import Installment, InstallmentEvent, transition
from .repository import InstallmentRepository


class OverdueSweeper:
    """Marks PENDING and PARTIAL_PAID installments past their due date as OVERDUE"""

    def __init__(self, repository: InstallmentRepository, dispatcher: Optional[EventDispatcher] = None):
        self.repository = repository
        self.storage = repository.storage
        self.dispatcher = dispatcher
        self.logger = get_logger("emi.sweeper")

    def sweep(self, today: Optional[date] = None) -> int:
        """
        Run one sweep pass

        Rows already OVERDUE or PAID are not selected, so a second pass on the
        same day transitions nothing. A row that cannot be read or moved is
        logged and skipped; a failure of the bulk write propagates to the caller.

        Args:
            today: Business date of the sweep (defaults to today)

        Returns:
            Number of installments moved to OVERDUE
        """
        if not today:
            today = date.today()

        transitioned = []
        with self.storage.atomic():
            for row in self.storage.load_all(self.repository.installments_table):
                try:
                    installment = Installment.from_dict(row)
                    if installment.due_date >= today or not installment.status.can_become_overdue:
                        continue
                    installment.status = transition(installment.status, InstallmentEvent.DUE_DATE_PASSED)
                    installment.updated_at = datetime.now(timezone.utc)
                    transitioned.append(installment)
                except Exception as e:
                    self.logger.error(f"Skipping installment {row.get('id')} during sweep: {e}")

            if transitioned:
                self.repository.save_all(transitioned)

        log_action(
            self.logger, "info", f"Overdue sweep for {today.isoformat()} marked {len(transitioned)} EMIs",
            action="overdue_sweep", resource="installments",
            extra={"sweep_date": today.isoformat(), "count": len(transitioned)}
        )

        if self.dispatcher:
            for installment in transitioned:
                self.dispatcher.publish(create_installment_event(DomainEvent.EMI_MARKED_OVERDUE, installment))

        return len(transitioned)


class SweepScheduler:
    """
    Runs a job every interval_seconds on a daemon threading.Timer chain.

    Each tick makes one attempt; a failing job is logged and the next tick is
    still scheduled. Retrying a failed pass is left to the next tick.
    """

    def __init__(self, job: Callable[[], Any], interval_seconds: float = 86400.0):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.job = job
        self.interval_seconds = interval_seconds
        self.last_result: Any = None
        self.last_error: Optional[Exception] = None
        self.runs = 0
        self._timer: Optional[threading.Timer] = None
        self._running = False
        self._lock = threading.Lock()
        self.logger = get_logger("emi.scheduler")

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._running = True
            self._schedule_next()
        self.logger.info(f"Sweep scheduler started, interval {self.interval_seconds}s")

    def stop(self) -> None:
        with self._lock:
            self._running = False
            if self._timer:
                self._timer.cancel()
                self._timer = None
        self.logger.info("Sweep scheduler stopped")

    def is_running(self) -> bool:
        return self._running

    def run_once(self) -> Any:
        """Run the job now; returns its result, or None when it failed"""
        self.runs += 1
        try:
            self.last_result = self.job()
            self.last_error = None
            return self.last_result
        except Exception as e:
            self.last_error = e
            self.logger.exception(f"Scheduled job failed: {e}")
            return None

    def _schedule_next(self) -> None:
        self._timer = threading.Timer(self.interval_seconds, self._tick)
        self._timer.name = "emi-sweep-timer"
        self._timer.daemon = True
        self._timer.start()

    def _tick(self) -> None:
        self.run_once()
        with self._lock:
            if self._running:
                self._schedule_next()


def build_daily_job(sweeper: OverdueSweeper, reminder_job=None,
                    clock: Callable[[], date] = date.today) -> Callable[[], Dict[str, int]]:
    """The job run on each tick: overdue sweep, then due-soon reminders"""

    def run_daily_jobs() -> Dict[str, int]:
        today = clock()
        results = {"overdue_marked": sweeper.sweep(today)}
        if reminder_job is not None:
            results["reminders_sent"] = reminder_job.run(today)
        return results

    return run_daily_jobs
