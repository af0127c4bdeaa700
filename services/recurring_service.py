"""
services/recurring_service.py
------------------------------
Business logic for managing recurring payment schedules.

Ties the pure scheduler to the repository and answers the questions the
rest of the portal asks: which tenants need a "due in N days" reminder,
what the next payments on a lease are, and how much a lease is expected
to bring in over a window.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from config import DASHBOARD_PERIODS, MAX_WINDOW_DAYS, REMINDER_DAYS_AHEAD
from models.obligation import PaymentObligation
from models.recurring import RecurringPaymentSchedule
from repositories.recurring_repo import RecurringRepository
from services import scheduler
from utils.dates import add_months, to_local_date
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Reminder:
    """A schedule whose next payment falls inside the reminder horizon."""
    schedule: RecurringPaymentSchedule
    due_date: date
    days_until: int

    def __str__(self) -> str:
        when = "today" if self.days_until == 0 else f"in {self.days_until} day(s)"
        return (
            f"Lease {self.schedule.lease_id}: {self.schedule.payment_type.value} "
            f"{self.schedule.amount:.2f} due {when} ({self.due_date})"
        )


class RecurringService:
    """
    Handles all business logic for recurring payments.

    Responsibilities:
        - Create, cancel, reactivate and correct schedules.
        - Find schedules that need a payment reminder.
        - Report upcoming payments and expected totals per lease.
    """

    def __init__(self, repo: Optional[RecurringRepository] = None):
        self.repo = repo or RecurringRepository()

    # ── LIFECYCLE ─────────────────────────────────────────

    def create_schedule(self, data: dict, created_by: Optional[int] = None) -> RecurringPaymentSchedule:
        """
        Validate and store a new schedule (lease setup or autopay enrollment).

        Raises:
            InvalidScheduleError: The candidate is rejected and nothing is stored.
        """
        payload = dict(data)
        payload.pop("id", None)
        if created_by is not None:
            payload["created_by"] = created_by
        schedule = scheduler.validate_schedule(payload)
        saved = self.repo.add(schedule)
        logger.info(f"Created schedule #{saved.id}: {saved}")
        return saved

    def deactivate_schedule(self, schedule_id: int, effective_date=None) -> RecurringPaymentSchedule:
        """Cancel a schedule from `effective_date` on (default: today)."""
        current = self.repo.get_by_id(schedule_id)
        effective = effective_date if effective_date is not None else _now()
        updated = scheduler.deactivate(current, effective)
        if updated is current:
            return current
        saved = self.repo.update(updated, expected_updated_at=current.updated_at)
        logger.info(f"Deactivated schedule #{schedule_id} as of {saved.deactivated_on}")
        return saved

    def reactivate_schedule(self, schedule_id: int, effective_date=None) -> RecurringPaymentSchedule:
        """
        Resume a cancelled schedule from `effective_date` (default: today).
        Periods due while it was off stay cancelled.
        """
        current = self.repo.get_by_id(schedule_id)
        effective = effective_date if effective_date is not None else _now()
        updated = scheduler.reactivate(current, effective)
        if updated is current:
            return current
        saved = self.repo.update(updated, expected_updated_at=current.updated_at)
        logger.info(f"Reactivated schedule #{schedule_id} as of {to_local_date(effective)}")
        return saved

    def correct_schedule(self, schedule_id: int, amount=None, due_day=None) -> RecurringPaymentSchedule:
        """
        Correct a schedule's amount and/or due day.

        Raises:
            InvalidScheduleError: If the correction breaks an invariant.
            StaleScheduleError: If someone else changed the schedule meanwhile.
        """
        current = self.repo.get_by_id(schedule_id)
        updated = scheduler.correct_schedule(current, amount=amount, due_day=due_day)
        if updated is current:
            return current
        saved = self.repo.update(updated, expected_updated_at=current.updated_at)
        logger.info(f"Corrected schedule #{schedule_id}: amount={saved.amount}, due_day={saved.due_day}")
        return saved

    # ── QUERIES ───────────────────────────────────────────

    def get_due_reminders(self, now=None, days_ahead: int = REMINDER_DAYS_AHEAD) -> list[Reminder]:
        """
        Get all schedules whose next payment is due within `days_ahead` days.
        Called by the daily reminder job. Schedules cancelled with a future
        effective date are still reminded of until that date.

        Returns:
            Reminders sorted by due date.
        """
        today = to_local_date(now if now is not None else _now())
        horizon = today + timedelta(days=days_ahead)
        reminders = []
        for schedule in self.repo.get_active(as_of=today):
            due = scheduler.compute_due_date(schedule, today)
            if due is None or due > horizon:
                continue
            reminders.append(Reminder(schedule=schedule, due_date=due, days_until=(due - today).days))
        reminders.sort(key=lambda r: (r.due_date, r.schedule.id or 0))
        logger.info(f"{len(reminders)} payment reminder(s) due within {days_ahead} days of {today}")
        return reminders

    def next_payments(self, lease_id: int, now=None, periods: int = DASHBOARD_PERIODS) -> list[PaymentObligation]:
        """
        Upcoming obligations for a lease, covering the next `periods`
        periods of each active schedule. Used by the dashboard widget.
        """
        today = to_local_date(now if now is not None else _now())
        upcoming = []
        for schedule in self.repo.get_by_lease(lease_id, active_only=True, as_of=today):
            window_end = add_months(today, periods * schedule.frequency.months)
            upcoming.extend(scheduler.enumerate_obligations(schedule, today, window_end))
        upcoming.sort(key=lambda o: (o.due_date, o.schedule_id or 0))
        return upcoming

    def forecast(self, lease_id: int, start, end) -> dict[str, Decimal]:
        """
        Expected amount per payment type for obligations due in [start, end).

        Raises:
            ValueError: If the window is empty or longer than MAX_WINDOW_DAYS.
        """
        window_start = to_local_date(start)
        window_end = to_local_date(end)
        if window_end <= window_start:
            raise ValueError(f"Forecast window is empty: [{window_start}, {window_end})")
        if (window_end - window_start).days > MAX_WINDOW_DAYS:
            raise ValueError(f"Forecast window exceeds {MAX_WINDOW_DAYS} days")

        totals: dict[str, Decimal] = defaultdict(lambda: Decimal("0.00"))
        for schedule in self.repo.get_by_lease(lease_id):
            total = scheduler.enumerate_obligations(schedule, window_start, window_end).total()
            if total:
                totals[schedule.payment_type.value] += total
        return dict(totals)


def _now() -> datetime:
    return datetime.now(timezone.utc)
