"""
models/errors.py
----------------
Domain exceptions raised by the billing scheduler and its repositories.

Note: "no obligation for this instant" is NOT an error. The scheduler
returns None for it (inactive schedule, or past end_date).
"""

from typing import Iterable, Optional


class SchedulerError(Exception):
    """Base class for all recurring-billing errors."""


class InvalidScheduleError(SchedulerError, ValueError):
    """
    A schedule candidate violates one or more invariants.

    Attributes:
        errors: Every violation found, one message each.
    """

    def __init__(self, errors: Iterable[str]):
        self.errors = list(errors)
        super().__init__("Invalid recurring payment schedule: " + "; ".join(self.errors))


class InvalidTransitionError(SchedulerError):
    """An obligation was asked to move to a status its current status cannot reach."""

    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move obligation from '{current}' to '{requested}'")


class ScheduleNotFoundError(SchedulerError, LookupError):
    """No schedule exists with the requested id."""

    def __init__(self, schedule_id: int):
        self.schedule_id = schedule_id
        super().__init__(f"Recurring payment schedule #{schedule_id} not found")


class StaleScheduleError(SchedulerError):
    """The stored schedule changed since it was read (optimistic check failed)."""

    def __init__(self, schedule_id: Optional[int]):
        self.schedule_id = schedule_id
        super().__init__(
            f"Recurring payment schedule #{schedule_id} was modified concurrently; reload and retry"
        )
