"""
models/recurring.py
-------------------
Domain model for recurring payment schedules attached to a lease.
"""

import enum
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Tuple


class PaymentType(str, enum.Enum):
    """What a recurring charge is for."""
    RENT = "rent"
    UTILITY = "utility"
    MAINTENANCE_FEE = "maintenance_fee"
    OTHER = "other"


class Frequency(str, enum.Enum):
    """How often a schedule produces an obligation."""
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"

    @property
    def months(self) -> int:
        """Length of one billing period, in calendar months."""
        return _PERIOD_MONTHS[self]


_PERIOD_MONTHS = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
    Frequency.ANNUAL: 12,
}


@dataclass(frozen=True)
class RecurringPaymentSchedule:
    """
    A recurring-payment definition (rent, utility, ...) for one lease.

    Instances are immutable: every mutation (deactivate, correction, ...)
    produces a new version, which the store persists.

    Attributes:
        lease_id: Owning lease (lifecycle owned elsewhere).
        payment_type: Kind of charge.
        amount: Charge per period, in currency units with cent precision.
        frequency: monthly, quarterly or annual.
        due_day: Day of the period's first month the payment is due (1-31).
            Clamped to the month's length at evaluation time.
        start_date: First period begins in this month.
        end_date: Exclusive end of the active range (None = open ended).
        is_active: False once the schedule is cancelled (soft delete).
        deactivated_on: Date from which no more obligations are produced.
        suspensions: Past [deactivated_on, reactivated_on) gaps left behind
            by reactivation. No obligation falls due inside a gap.
        created_by: User who created the schedule.
        id: Database primary key (None for new records).
        created_at: Timestamp when the record was created.
        updated_at: Timestamp of the last mutation.
    """
    lease_id: int
    payment_type: PaymentType
    amount: Decimal
    frequency: Frequency
    due_day: int
    start_date: date
    end_date: Optional[date] = None
    is_active: bool = True
    deactivated_on: Optional[date] = None
    suspensions: Tuple[Tuple[date, date], ...] = ()
    created_by: Optional[int] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def active_until(self) -> Optional[date]:
        """Exclusive upper bound on due dates: the earlier of end_date and deactivated_on."""
        bounds = [d for d in (self.end_date, self.deactivated_on) if d is not None]
        return min(bounds) if bounds else None

    def is_suspended_on(self, day: date) -> bool:
        """True if an obligation due on `day` is cancelled by a deactivation."""
        if self.deactivated_on is not None and day >= self.deactivated_on:
            return True
        return any(start <= day < end for start, end in self.suspensions)

    def __str__(self) -> str:
        status = "active" if self.is_active else "inactive"
        until = self.end_date.isoformat() if self.end_date else "open"
        return (
            f"#{self.id} lease {self.lease_id} {self.payment_type.value}: "
            f"{self.amount:.2f} {self.frequency.value} on day {self.due_day} "
            f"({self.start_date} -> {until}, {status})"
        )
