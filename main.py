"""
main.py
-------
Entry point for the daily recurring-payment reminder sweep.

Responsibilities:
    - Initialize the database connection pool and schema.
    - Find every schedule with a payment due within the reminder horizon.
    - Log the reminders for the notification service to pick up.
"""

from config import REMINDER_DAYS_AHEAD
from db.connection import init_pool, close_pool
from db.init_db import create_tables
from services.recurring_service import RecurringService
from utils.logger import get_logger

logger = get_logger(__name__)


def send_reminders(service: RecurringService, now=None) -> int:
    """
    Scheduled job: check for upcoming recurring payments and emit reminders.

    Returns:
        Number of reminders emitted.
    """
    reminders = service.get_due_reminders(now=now, days_ahead=REMINDER_DAYS_AHEAD)
    for reminder in reminders:
        logger.info(f"Reminder: {reminder}")
    return len(reminders)


def main() -> None:
    """Initialize the database and run one reminder sweep."""

    # ── 1. Database setup ─────────────────────────────────
    logger.info("Initializing database...")
    init_pool()
    try:
        create_tables()

        # ── 2. Reminder sweep ─────────────────────────────
        count = send_reminders(RecurringService())
        logger.info(f"Reminder sweep finished: {count} reminder(s).")
    finally:
        # ── 3. Cleanup ────────────────────────────────────
        close_pool()


if __name__ == "__main__":
    main()
