"""
services/scheduler.py
---------------------
Recurring billing scheduler: turns a schedule into due dates and
payment obligations.

Everything here is a pure function of its inputs. Schedules are frozen
dataclasses, so mutations (deactivate, correction, ...) return a new
version for the repository to persist, and results handed out earlier
are never affected.

Period model:
    Period k starts on the first day of the month
    `start_date.month + k * frequency.months` and ends (exclusive) where
    period k+1 starts. Monthly periods are therefore calendar months;
    quarterly and annual blocks are anchored to start_date's month.
    The due date of a period is `due_day` in the period's first month,
    clamped to that month's last day.
"""

from dataclasses import fields, replace
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Iterator, Mapping, Optional, Tuple

from models.errors import InvalidScheduleError
from models.obligation import PaymentObligation
from models.recurring import Frequency, PaymentType, RecurringPaymentSchedule
from utils.dates import add_months, clamp_day, first_of_month, month_index, parse_date, to_local_date
from utils.logger import get_logger

logger = get_logger(__name__)

CENT = Decimal("0.01")
MIN_DUE_DAY = 1
MAX_DUE_DAY = 31


# ── VALIDATION ────────────────────────────────────────────

def validate_schedule(candidate) -> RecurringPaymentSchedule:
    """
    Check a schedule candidate and return it normalized.

    Args:
        candidate: A RecurringPaymentSchedule, or a mapping with snake_case
            keys (a database row or an API payload). Enum values may be
            strings, dates may be ISO strings, amounts may be str/int/float.

    Returns:
        A new RecurringPaymentSchedule with typed, normalized fields.

    Raises:
        InvalidScheduleError: Listing every violated invariant. Nothing is
            returned on failure, so callers must not persist the candidate.
        TypeError: If `candidate` is neither a schedule nor a mapping.
    """
    if isinstance(candidate, RecurringPaymentSchedule):
        data = {f.name: getattr(candidate, f.name) for f in fields(candidate)}
    elif isinstance(candidate, Mapping):
        data = dict(candidate)
    else:
        raise TypeError(f"Cannot validate a {type(candidate).__name__} as a schedule")

    errors: list[str] = []

    lease_id = data.get("lease_id")
    if lease_id is None:
        errors.append("lease_id is required")

    payment_type = _coerce_enum(PaymentType, data.get("payment_type"), "payment_type", errors)
    frequency = _coerce_enum(Frequency, data.get("frequency"), "frequency", errors)
    amount = _coerce_amount(data.get("amount"), errors)
    due_day = _coerce_due_day(data.get("due_day"), errors)

    start_date = _coerce_date(data.get("start_date"), "start_date", errors, required=True)
    end_date = _coerce_date(data.get("end_date"), "end_date", errors)
    deactivated_on = _coerce_date(data.get("deactivated_on"), "deactivated_on", errors)
    suspensions = _coerce_suspensions(data.get("suspensions"), errors)

    if start_date is not None and end_date is not None and end_date <= start_date:
        errors.append(f"end_date {end_date} must be after start_date {start_date}")

    if errors:
        logger.debug(f"Rejected schedule candidate: {errors}")
        raise InvalidScheduleError(errors)

    is_active = data.get("is_active")
    is_active = True if is_active is None else bool(is_active)

    return RecurringPaymentSchedule(
        id=data.get("id"),
        lease_id=lease_id,
        payment_type=payment_type,
        amount=amount,
        frequency=frequency,
        due_day=due_day,
        start_date=start_date,
        end_date=end_date,
        is_active=is_active,
        deactivated_on=None if is_active else deactivated_on,
        suspensions=suspensions,
        created_by=data.get("created_by"),
        created_at=data.get("created_at"),
        updated_at=data.get("updated_at"),
    )


def _coerce_enum(enum_cls, value, name: str, errors: list):
    if value is None:
        errors.append(f"{name} is required")
        return None
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        errors.append(f"{name} {value!r} is not one of: {allowed}")
        return None


def _coerce_amount(value, errors: list) -> Optional[Decimal]:
    if value is None:
        errors.append("amount is required")
        return None
    if isinstance(value, bool):
        errors.append(f"amount {value!r} is not a number")
        return None
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        errors.append(f"amount {value!r} is not a number")
        return None
    if not amount.is_finite():
        errors.append(f"amount {value!r} is not a finite number")
        return None
    if amount <= 0:
        errors.append(f"amount must be greater than 0 (got {amount})")
        return None
    if amount != amount.quantize(CENT):
        errors.append(f"amount {amount} is finer than one cent")
        return None
    return amount.quantize(CENT)


def _coerce_due_day(value, errors: list) -> Optional[int]:
    if value is None:
        errors.append("due_day is required")
        return None
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, bool) or not isinstance(value, int):
        errors.append(f"due_day {value!r} is not an integer")
        return None
    if not MIN_DUE_DAY <= value <= MAX_DUE_DAY:
        errors.append(f"due_day must be between {MIN_DUE_DAY} and {MAX_DUE_DAY} (got {value})")
        return None
    return value


def _coerce_date(value, name: str, errors: list, required: bool = False) -> Optional[date]:
    try:
        parsed = parse_date(value)
    except (TypeError, ValueError):
        errors.append(f"{name} {value!r} is not a valid date")
        return None
    if parsed is None and required:
        errors.append(f"{name} is required")
    return parsed


def _coerce_suspensions(value, errors: list) -> Tuple[Tuple[date, date], ...]:
    """Accepts None or a sequence of (start, end) pairs; JSON rows give lists of ISO strings."""
    if not value:
        return ()
    gaps = []
    for pair in value:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            errors.append(f"suspension {pair!r} is not a (start, end) pair")
            continue
        start = _coerce_date(pair[0], "suspension start", errors, required=True)
        end = _coerce_date(pair[1], "suspension end", errors, required=True)
        if start is None or end is None:
            continue
        if end <= start:
            errors.append(f"suspension end {end} must be after its start {start}")
            continue
        gaps.append((start, end))
    return tuple(sorted(gaps))


# ── PERIODS ───────────────────────────────────────────────

def _period(schedule: RecurringPaymentSchedule, k: int) -> Tuple[date, date, date]:
    """(period_start, period_end, due_date) of period number k."""
    months = schedule.frequency.months
    start = add_months(first_of_month(schedule.start_date), k * months)
    end = add_months(start, months)
    due = clamp_day(start.year, start.month, schedule.due_day)
    return start, end, due


def _periods_from(schedule: RecurringPaymentSchedule, lower: date) -> Iterator[Tuple[date, date, date]]:
    """
    Yield periods whose due date is >= lower and inside the active range,
    in ascending order, skipping due dates inside past suspensions.
    Unbounded when the schedule has no end.
    """
    lower = max(lower, schedule.start_date)
    upper = schedule.active_until
    offset = month_index(lower) - month_index(schedule.start_date)
    # Periods before k have due dates in months earlier than `lower`.
    k = max(0, offset // schedule.frequency.months)
    while True:
        start, end, due = _period(schedule, k)
        if upper is not None and due >= upper:
            return
        if due >= lower and not schedule.is_suspended_on(due):
            yield start, end, due
        k += 1


# ── QUERIES ───────────────────────────────────────────────

def compute_due_date(schedule: RecurringPaymentSchedule, as_of, tz=None) -> Optional[date]:
    """
    Find the due date of the period containing or following `as_of`.

    If `as_of` is already past this period's due date, the next period's
    due date is returned.

    Args:
        schedule: The schedule to evaluate.
        as_of: Reference instant (date, naive datetime or aware datetime).
        tz: Billing time zone for aware datetimes (default BILLING_TIMEZONE).

    A schedule deactivated with a future effective date keeps producing due
    dates until that date.

    Returns:
        The due date, or None if the schedule is inactive without an
        effective date, or has no due date left before its end_date or
        deactivation date.
    """
    if not schedule.is_active and schedule.deactivated_on is None:
        return None
    ref = to_local_date(as_of, tz)
    for _, _, due in _periods_from(schedule, ref):
        return due
    return None


class ObligationSequence:
    """
    Lazy, restartable sequence of obligations for a bounded window.

    Each iteration recomputes from the captured schedule, so iterating
    twice yields the same obligations and nothing beyond `window_end`
    is ever computed.
    """

    def __init__(self, schedule: RecurringPaymentSchedule, window_start: date, window_end: date):
        self.schedule = schedule
        self.window_start = window_start
        self.window_end = window_end

    def __iter__(self) -> Iterator[PaymentObligation]:
        schedule = self.schedule
        if not schedule.is_active and schedule.deactivated_on is None:
            return
        if self.window_end <= self.window_start:
            return
        for start, end, due in _periods_from(schedule, self.window_start):
            if due >= self.window_end:
                return
            yield PaymentObligation(
                schedule_id=schedule.id,
                period_start=start,
                period_end=end,
                due_date=due,
                amount=schedule.amount,
            )

    def first(self) -> Optional[PaymentObligation]:
        return next(iter(self), None)

    def total(self) -> Decimal:
        return sum((o.amount for o in self), Decimal("0.00"))

    def __repr__(self) -> str:
        return (
            f"ObligationSequence(schedule_id={self.schedule.id}, "
            f"window=[{self.window_start}, {self.window_end}))"
        )


def enumerate_obligations(
    schedule: RecurringPaymentSchedule, window_start, window_end, tz=None
) -> ObligationSequence:
    """
    Obligations whose due date falls in [window_start, window_end).

    The window is intersected with the schedule's active range
    [start_date, min(end_date, deactivated_on)). Results are ascending by
    due date, all with status 'upcoming'; payment history is overlaid by
    the caller (see services.payment_history).
    """
    return ObligationSequence(
        schedule,
        to_local_date(window_start, tz),
        to_local_date(window_end, tz),
    )


def next_obligation(schedule: RecurringPaymentSchedule, as_of, tz=None) -> Optional[PaymentObligation]:
    """The obligation whose due date compute_due_date() returns, or None."""
    due = compute_due_date(schedule, as_of, tz)
    if due is None:
        return None
    return enumerate_obligations(schedule, due, due + timedelta(days=1)).first()


# ── MUTATIONS ─────────────────────────────────────────────

def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def deactivate(
    schedule: RecurringPaymentSchedule, effective_date, now: Optional[datetime] = None
) -> RecurringPaymentSchedule:
    """
    Cancel a schedule as of `effective_date`.

    Obligations due on or after the effective date are no longer produced;
    earlier ones remain as history. Deactivating an already inactive
    schedule keeps the earlier effective date; an inactive row stored
    without one (legacy soft delete) gets `effective_date`.

    Returns:
        A new schedule version (the input is untouched).
    """
    effective = to_local_date(effective_date)
    if not schedule.is_active:
        current = schedule.deactivated_on
        if current is not None and current <= effective:
            logger.debug(f"Schedule #{schedule.id} already inactive since {current}")
            return schedule
    logger.debug(f"Deactivating schedule #{schedule.id} as of {effective}")
    return replace(schedule, is_active=False, deactivated_on=effective, updated_at=_now(now))


def reactivate(
    schedule: RecurringPaymentSchedule, effective_date, now: Optional[datetime] = None
) -> RecurringPaymentSchedule:
    """
    Turn a deactivated schedule back on from `effective_date`.

    The span between the deactivation date and `effective_date` is kept as
    a suspension, so obligations cancelled by the deactivation stay
    cancelled. Reactivating on or before the deactivation date withdraws
    the deactivation without leaving a gap.

    Returns:
        A new schedule version (the input is untouched).
    """
    if schedule.is_active:
        return schedule
    resume = to_local_date(effective_date)
    suspensions = schedule.suspensions
    stopped = schedule.deactivated_on
    if stopped is not None and resume > stopped:
        suspensions = tuple(sorted(suspensions + ((stopped, resume),)))
        logger.debug(f"Reactivating schedule #{schedule.id} from {resume}, suspended since {stopped}")
    else:
        logger.debug(f"Reactivating schedule #{schedule.id}, deactivation withdrawn")
    return replace(
        schedule,
        is_active=True,
        deactivated_on=None,
        suspensions=suspensions,
        updated_at=_now(now),
    )


def correct_schedule(
    schedule: RecurringPaymentSchedule,
    amount=None,
    due_day=None,
    now: Optional[datetime] = None,
) -> RecurringPaymentSchedule:
    """
    Correct the amount and/or due day of a schedule.

    Raises:
        InvalidScheduleError: If the corrected values break an invariant.
    """
    if amount is None and due_day is None:
        return schedule
    data = {f.name: getattr(schedule, f.name) for f in fields(schedule)}
    if amount is not None:
        data["amount"] = amount
    if due_day is not None:
        data["due_day"] = due_day
    corrected = validate_schedule(data)
    return replace(corrected, updated_at=_now(now))
