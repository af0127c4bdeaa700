"""
services/payment_history.py
---------------------------
Overlays recorded payments on computed obligations.

The scheduler only knows dates; whether an obligation was paid, is
overdue or got cancelled comes from payment events recorded elsewhere.
This module derives the status from those events and walks the
obligation through its lifecycle (see models.obligation).
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from config import DEFAULT_GRACE_PERIOD_DAYS
from models.obligation import ObligationStatus, PaymentObligation
from models.recurring import RecurringPaymentSchedule
from utils.dates import to_local_date
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PaymentEvent:
    """A payment recorded against one obligation (identified by schedule + due date)."""
    schedule_id: int
    due_date: date
    amount: Decimal
    paid_on: date


def amount_paid(obligation: PaymentObligation, events: Iterable[PaymentEvent], as_of=None) -> Decimal:
    """Total paid towards `obligation`, optionally counting only payments made by `as_of`."""
    cutoff = to_local_date(as_of) if as_of is not None else None
    total = Decimal("0.00")
    for event in events:
        if event.schedule_id != obligation.schedule_id or event.due_date != obligation.due_date:
            continue
        if cutoff is not None and event.paid_on > cutoff:
            continue
        total += Decimal(str(event.amount))
    return total


def days_overdue(obligation: PaymentObligation, as_of) -> int:
    """Days elapsed since the due date (0 on or before it)."""
    return max(0, (to_local_date(as_of) - obligation.due_date).days)


def _target_status(
    obligation: PaymentObligation,
    paid: Decimal,
    ref: date,
    grace_period_days: int,
    schedule: Optional[RecurringPaymentSchedule],
) -> ObligationStatus:
    if paid >= obligation.amount:
        return ObligationStatus.PAID
    if schedule is not None and schedule.is_suspended_on(obligation.due_date):
        return ObligationStatus.CANCELLED
    if ref < obligation.due_date:
        return ObligationStatus.UPCOMING
    if (ref - obligation.due_date).days <= grace_period_days:
        return ObligationStatus.DUE
    return ObligationStatus.OVERDUE


def resolve_status(
    obligation: PaymentObligation,
    events: Iterable[PaymentEvent],
    as_of,
    grace_period_days: int = DEFAULT_GRACE_PERIOD_DAYS,
    schedule: Optional[RecurringPaymentSchedule] = None,
) -> PaymentObligation:
    """
    Return `obligation` with its status brought up to date as of `as_of`.

    Rules, in order:
        - paid in full (payments made by as_of) -> paid
        - schedule deactivated on or before the due date, or the due date
          falls in a past suspension -> cancelled
        - before the due date -> upcoming
        - from the due date through the grace period -> due
        - afterwards -> overdue

    The move is applied through the obligation lifecycle, stepping through
    'due' when an obligation jumps straight from upcoming to overdue.
    Terminal statuses (paid, cancelled) are kept as they are.
    """
    if obligation.status.is_terminal:
        return obligation

    ref = to_local_date(as_of)
    paid = amount_paid(obligation, events, as_of=ref)
    target = _target_status(obligation, paid, ref, grace_period_days, schedule)

    if obligation.status == ObligationStatus.OVERDUE and target != ObligationStatus.PAID:
        # A late payment is the only way out of overdue.
        return obligation
    if obligation.status == ObligationStatus.DUE and target == ObligationStatus.UPCOMING:
        return obligation

    if obligation.status == ObligationStatus.UPCOMING and target == ObligationStatus.OVERDUE:
        obligation = obligation.transition(ObligationStatus.DUE)
    return obligation.transition(target)


def overlay_statuses(
    obligations: Iterable[PaymentObligation],
    events: Iterable[PaymentEvent],
    as_of,
    grace_period_days: int = DEFAULT_GRACE_PERIOD_DAYS,
    schedule: Optional[RecurringPaymentSchedule] = None,
) -> list[PaymentObligation]:
    """Resolve the status of every obligation in order."""
    events = list(events)
    resolved = [
        resolve_status(o, events, as_of, grace_period_days=grace_period_days, schedule=schedule)
        for o in obligations
    ]
    logger.debug(f"Overlaid {len(events)} payment events on {len(resolved)} obligations")
    return resolved
