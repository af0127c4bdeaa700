"""
repositories/recurring_repo.py
-------------------------------
Data access layer for recurring payment schedules.
All SQL queries related to the `recurring_payments` table live here.

Schedules are never hard-deleted; cancelling one is an update of
`is_active` / `deactivated_on`. A schedule cancelled with a future
effective date still counts as active until that date. Updates are version-checked against
`updated_at` so two writers cannot silently overwrite each other.
"""

from datetime import date, datetime
from typing import Optional

from psycopg2.extras import Json

import db.connection as db
from models.errors import ScheduleNotFoundError, StaleScheduleError
from models.recurring import RecurringPaymentSchedule
from services.scheduler import validate_schedule
from utils.logger import get_logger

logger = get_logger(__name__)

_COLUMNS = (
    "id, lease_id, payment_type, amount, frequency, due_day, start_date, end_date, "
    "is_active, deactivated_on, suspensions, created_by, created_at, updated_at"
)

_STILL_BILLING = "is_active = TRUE OR deactivated_on > COALESCE(%s::date, CURRENT_DATE)"


class RecurringRepository:
    """Repository for CRUD operations on recurring_payments table."""

    # ── CREATE ────────────────────────────────────────────

    def add(self, schedule: RecurringPaymentSchedule) -> RecurringPaymentSchedule:
        """
        Insert a new schedule.

        Args:
            schedule: A validated schedule without an id.

        Returns:
            The stored schedule, with `id`, `created_at` and `updated_at` populated.
        """
        sql = f"""
            INSERT INTO recurring_payments
                (lease_id, payment_type, amount, frequency, due_day, start_date,
                 end_date, is_active, deactivated_on, suspensions, created_by)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING {_COLUMNS};
        """
        conn = db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (
                    schedule.lease_id, schedule.payment_type.value, schedule.amount,
                    schedule.frequency.value, schedule.due_day, schedule.start_date,
                    schedule.end_date, schedule.is_active, schedule.deactivated_on,
                    _suspensions_json(schedule), schedule.created_by,
                ))
                saved = self._row_to_schedule(cur.fetchone())
            conn.commit()
            logger.info(f"Added recurring payment #{saved.id} for lease {saved.lease_id}")
            return saved
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to add recurring payment for lease {schedule.lease_id}: {e}")
            raise
        finally:
            db.release_connection(conn)

    # ── READ ──────────────────────────────────────────────

    def get_by_id(self, schedule_id: int) -> RecurringPaymentSchedule:
        """
        Fetch a single schedule by ID.

        Raises:
            ScheduleNotFoundError: If no row has this id.
        """
        sql = f"SELECT {_COLUMNS} FROM recurring_payments WHERE id = %s;"
        conn = db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (schedule_id,))
                row = cur.fetchone()
        finally:
            db.release_connection(conn)
        if row is None:
            raise ScheduleNotFoundError(schedule_id)
        return self._row_to_schedule(row)

    def get_by_lease(
        self, lease_id: int, active_only: bool = False, as_of: Optional[date] = None
    ) -> list[RecurringPaymentSchedule]:
        """
        All schedules for a lease, oldest first.

        With `active_only`, schedules whose deactivation takes effect after
        `as_of` (default: the database's current date) are included.
        """
        sql = f"SELECT {_COLUMNS} FROM recurring_payments WHERE lease_id = %s"
        params = [lease_id]
        if active_only:
            sql += f" AND ({_STILL_BILLING})"
            params.append(as_of)
        sql += " ORDER BY start_date ASC, id ASC;"

        conn = db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, tuple(params))
                return [self._row_to_schedule(r) for r in cur.fetchall()]
        finally:
            db.release_connection(conn)

    def get_active(self, as_of: Optional[date] = None) -> list[RecurringPaymentSchedule]:
        """
        All schedules still producing obligations on `as_of`, including
        those cancelled with a later effective date.
        Used by the reminder sweep.
        """
        sql = f"SELECT {_COLUMNS} FROM recurring_payments WHERE {_STILL_BILLING} ORDER BY id ASC;"
        conn = db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (as_of,))
                return [self._row_to_schedule(r) for r in cur.fetchall()]
        finally:
            db.release_connection(conn)

    # ── UPDATE ────────────────────────────────────────────

    def update(
        self, schedule: RecurringPaymentSchedule, expected_updated_at: Optional[datetime]
    ) -> RecurringPaymentSchedule:
        """
        Persist a new version of an existing schedule.

        Args:
            schedule: The new version (same id).
            expected_updated_at: `updated_at` of the version it was derived from.

        Returns:
            The stored schedule with the database's fresh `updated_at`.

        Raises:
            StaleScheduleError: If the row changed (or vanished) since it was read.
        """
        sql = f"""
            UPDATE recurring_payments
            SET amount = %s, due_day = %s, end_date = %s,
                is_active = %s, deactivated_on = %s, suspensions = %s
            WHERE id = %s AND updated_at IS NOT DISTINCT FROM %s
            RETURNING {_COLUMNS};
        """
        conn = db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (
                    schedule.amount, schedule.due_day, schedule.end_date,
                    schedule.is_active, schedule.deactivated_on, _suspensions_json(schedule),
                    schedule.id, expected_updated_at,
                ))
                row = cur.fetchone()
            if row is None:
                conn.rollback()
                logger.warning(f"Stale update rejected for recurring payment #{schedule.id}")
                raise StaleScheduleError(schedule.id)
            conn.commit()
            saved = self._row_to_schedule(row)
            logger.info(f"Updated recurring payment #{saved.id}")
            return saved
        except StaleScheduleError:
            raise
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to update recurring payment #{schedule.id}: {e}")
            raise
        finally:
            db.release_connection(conn)

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_schedule(row) -> RecurringPaymentSchedule:
        """Convert a database row (dict) to a validated schedule."""
        return validate_schedule(dict(row))


def _suspensions_json(schedule: RecurringPaymentSchedule) -> Json:
    """Suspension gaps as a JSONB array of [start, end] ISO dates."""
    return Json([[start.isoformat(), end.isoformat()] for start, end in schedule.suspensions])
