"""
models/obligation.py
--------------------
Domain model for a single period's payment obligation.
Obligations are derived from a schedule; they are never the source of truth.
"""

import enum
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal

from models.errors import InvalidTransitionError


class ObligationStatus(str, enum.Enum):
    UPCOMING = "upcoming"
    DUE = "due"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (ObligationStatus.PAID, ObligationStatus.CANCELLED)

    def can_transition_to(self, other: "ObligationStatus") -> bool:
        """True if the lifecycle allows moving from this status to `other`."""
        if other == self:
            return True
        return other in _TRANSITIONS[self]


# upcoming -> due -> {paid | overdue}; overdue -> paid (late payment);
# upcoming|due -> cancelled when the schedule is deactivated first.
# An upcoming obligation may be paid early.
_TRANSITIONS = {
    ObligationStatus.UPCOMING: {ObligationStatus.DUE, ObligationStatus.PAID, ObligationStatus.CANCELLED},
    ObligationStatus.DUE: {ObligationStatus.PAID, ObligationStatus.OVERDUE, ObligationStatus.CANCELLED},
    ObligationStatus.OVERDUE: {ObligationStatus.PAID},
    ObligationStatus.PAID: set(),
    ObligationStatus.CANCELLED: set(),
}


@dataclass(frozen=True)
class PaymentObligation:
    """
    Money owed for one period of a schedule.

    Attributes:
        schedule_id: Schedule this obligation was generated from.
        period_start: First day of the billing period.
        period_end: First day of the next period (exclusive).
        due_date: Due day of the period, clamped to month length.
        amount: Amount owed.
        status: Lifecycle status; `upcoming` unless overlaid by payment history.
    """
    schedule_id: int
    period_start: date
    period_end: date
    due_date: date
    amount: Decimal
    status: ObligationStatus = ObligationStatus.UPCOMING

    def transition(self, new_status: ObligationStatus) -> "PaymentObligation":
        """
        Return a copy in `new_status`.

        Raises:
            InvalidTransitionError: If the lifecycle forbids the move.
        """
        new_status = ObligationStatus(new_status)
        if not self.status.can_transition_to(new_status):
            raise InvalidTransitionError(self.status.value, new_status.value)
        if new_status == self.status:
            return self
        return replace(self, status=new_status)

    def to_dict(self) -> dict:
        return {
            "schedule_id": self.schedule_id,
            "period_start": self.period_start,
            "period_end": self.period_end,
            "due_date": self.due_date,
            "amount": self.amount,
            "status": self.status.value,
        }
