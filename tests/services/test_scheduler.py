"""
Unit tests for the recurring billing scheduler: pure functions, no DB.

Run with:
    python -m pytest tests/services/test_scheduler.py -v
"""
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from dateutil import tz

from models.errors import InvalidScheduleError
from models.obligation import ObligationStatus
from models.recurring import Frequency, PaymentType, RecurringPaymentSchedule
from services.scheduler import (
    compute_due_date,
    correct_schedule,
    deactivate,
    enumerate_obligations,
    next_obligation,
    reactivate,
    validate_schedule,
)


def make_schedule(**overrides) -> RecurringPaymentSchedule:
    data = {
        "id": 1,
        "lease_id": 10,
        "payment_type": "rent",
        "amount": "1200.00",
        "frequency": "monthly",
        "due_day": 1,
        "start_date": date(2023, 1, 1),
    }
    data.update(overrides)
    return validate_schedule(data)


# ── validate_schedule ────────────────────────────────────────────────────────

class TestValidateSchedule:
    def test_normalizes_strings(self):
        s = validate_schedule({
            "lease_id": 3,
            "payment_type": " Utility ",
            "amount": "75.5",
            "frequency": "QUARTERLY",
            "due_day": "15",
            "start_date": "2024-02-10",
            "end_date": "2025-02-10",
        })
        assert s.payment_type is PaymentType.UTILITY
        assert s.frequency is Frequency.QUARTERLY
        assert s.amount == Decimal("75.50")
        assert s.due_day == 15
        assert s.start_date == date(2024, 2, 10)
        assert s.end_date == date(2025, 2, 10)
        assert s.is_active is True

    def test_rejects_due_day_32(self):
        with pytest.raises(InvalidScheduleError) as exc:
            make_schedule(due_day=32)
        assert any("due_day" in e for e in exc.value.errors)

    def test_rejects_due_day_0(self):
        with pytest.raises(InvalidScheduleError):
            make_schedule(due_day=0)

    def test_rejects_zero_amount(self):
        with pytest.raises(InvalidScheduleError) as exc:
            make_schedule(amount=0)
        assert any("amount" in e for e in exc.value.errors)

    def test_rejects_negative_amount(self):
        with pytest.raises(InvalidScheduleError):
            make_schedule(amount="-10")

    def test_rejects_sub_cent_amount(self):
        with pytest.raises(InvalidScheduleError):
            make_schedule(amount="10.005")

    def test_rejects_end_date_equal_to_start(self):
        with pytest.raises(InvalidScheduleError) as exc:
            make_schedule(end_date=date(2023, 1, 1))
        assert any("end_date" in e for e in exc.value.errors)

    def test_rejects_end_date_before_start(self):
        with pytest.raises(InvalidScheduleError):
            make_schedule(end_date=date(2022, 12, 1))

    def test_rejects_unknown_frequency(self):
        with pytest.raises(InvalidScheduleError) as exc:
            make_schedule(frequency="weekly")
        assert any("frequency" in e for e in exc.value.errors)

    def test_collects_every_error(self):
        with pytest.raises(InvalidScheduleError) as exc:
            validate_schedule({"lease_id": 1, "payment_type": "rent", "amount": 0,
                               "frequency": "daily", "due_day": 40,
                               "start_date": "2023-01-01", "end_date": "2022-01-01"})
        assert len(exc.value.errors) == 4

    def test_missing_fields_reported(self):
        with pytest.raises(InvalidScheduleError) as exc:
            validate_schedule({})
        joined = " ".join(exc.value.errors)
        for name in ("lease_id", "payment_type", "amount", "frequency", "due_day", "start_date"):
            assert name in joined

    def test_bool_due_day_rejected(self):
        with pytest.raises(InvalidScheduleError):
            make_schedule(due_day=True)

    def test_invalid_date_string(self):
        with pytest.raises(InvalidScheduleError):
            make_schedule(start_date="not-a-date")

    def test_is_an_existing_schedule_round_trip(self):
        s = make_schedule()
        assert validate_schedule(s) == s

    def test_rejects_non_mapping(self):
        with pytest.raises(TypeError):
            validate_schedule(42)

    def test_active_schedule_drops_deactivated_on(self):
        s = make_schedule(is_active=True, deactivated_on=date(2023, 5, 1))
        assert s.deactivated_on is None

    def test_suspensions_from_json_row(self):
        s = make_schedule(suspensions=[["2023-06-01", "2023-08-01"], ["2023-03-15", "2023-04-01"]])
        assert s.suspensions == (
            (date(2023, 3, 15), date(2023, 4, 1)),
            (date(2023, 6, 1), date(2023, 8, 1)),
        )

    def test_rejects_backwards_suspension(self):
        with pytest.raises(InvalidScheduleError) as exc:
            make_schedule(suspensions=[("2023-06-01", "2023-05-01")])
        assert any("suspension" in e for e in exc.value.errors)


# ── compute_due_date ─────────────────────────────────────────────────────────

class TestComputeDueDate:
    def test_same_period_before_due_day(self):
        s = make_schedule(due_day=15)
        assert compute_due_date(s, date(2023, 3, 10)) == date(2023, 3, 15)

    def test_on_due_day_returns_same_day(self):
        s = make_schedule(due_day=15)
        assert compute_due_date(s, date(2023, 3, 15)) == date(2023, 3, 15)

    def test_after_due_day_advances(self):
        s = make_schedule(due_day=15)
        assert compute_due_date(s, date(2023, 3, 16)) == date(2023, 4, 15)

    def test_day_31_in_february_non_leap(self):
        s = make_schedule(due_day=31)
        assert compute_due_date(s, date(2023, 2, 1)) == date(2023, 2, 28)

    def test_day_31_in_february_leap(self):
        s = make_schedule(due_day=31)
        assert compute_due_date(s, date(2024, 2, 1)) == date(2024, 2, 29)

    def test_day_31_in_thirty_day_month(self):
        s = make_schedule(due_day=31)
        assert compute_due_date(s, date(2023, 4, 2)) == date(2023, 4, 30)

    def test_december_rolls_into_next_year(self):
        s = make_schedule(due_day=5)
        assert compute_due_date(s, date(2023, 12, 6)) == date(2024, 1, 5)

    def test_before_start_returns_first_due_date(self):
        s = make_schedule(start_date=date(2023, 6, 1), due_day=10)
        assert compute_due_date(s, date(2022, 1, 1)) == date(2023, 6, 10)

    def test_first_period_due_before_start_is_skipped(self):
        s = make_schedule(start_date=date(2023, 1, 15), due_day=1)
        assert compute_due_date(s, date(2023, 1, 1)) == date(2023, 2, 1)

    def test_none_once_deactivation_has_taken_effect(self):
        s = deactivate(make_schedule(), date(2023, 6, 1))
        assert compute_due_date(s, date(2023, 6, 1)) is None
        assert compute_due_date(make_schedule(is_active=False), date(2023, 1, 1)) is None

    def test_future_deactivation_still_due_before_effective_date(self):
        # Notice given for mid-June: June rent is still owed.
        s = deactivate(make_schedule(), date(2023, 6, 15))
        assert compute_due_date(s, date(2023, 5, 10)) == date(2023, 6, 1)
        assert next_obligation(s, date(2023, 5, 10)).due_date == date(2023, 6, 1)
        assert compute_due_date(s, date(2023, 6, 2)) is None

    def test_skips_suspended_periods(self):
        s = reactivate(deactivate(make_schedule(), date(2023, 3, 15)), date(2023, 6, 1))
        assert compute_due_date(s, date(2023, 3, 20)) == date(2023, 6, 1)

    def test_none_past_end_date(self):
        s = make_schedule(end_date=date(2023, 4, 1))
        assert compute_due_date(s, date(2023, 3, 2)) is None

    def test_end_date_is_exclusive(self):
        s = make_schedule(end_date=date(2023, 4, 1))
        assert compute_due_date(s, date(2023, 3, 1)) == date(2023, 3, 1)

    def test_quarterly_anchored_to_start_month(self):
        s = make_schedule(frequency="quarterly", start_date=date(2023, 2, 1), due_day=1)
        assert compute_due_date(s, date(2023, 2, 2)) == date(2023, 5, 1)
        assert compute_due_date(s, date(2023, 5, 2)) == date(2023, 8, 1)

    def test_quarterly_due_day_clamped_in_period_month(self):
        s = make_schedule(frequency="quarterly", start_date=date(2023, 11, 1), due_day=31)
        # Periods start Nov, Feb, May: Feb 2024 is a leap February.
        assert compute_due_date(s, date(2023, 12, 1)) == date(2024, 2, 29)

    def test_annual_anchored_to_start_month(self):
        s = make_schedule(frequency="annual", start_date=date(2023, 7, 1), due_day=4)
        assert compute_due_date(s, date(2023, 7, 5)) == date(2024, 7, 4)

    def test_aware_datetime_uses_billing_zone(self):
        s = make_schedule(due_day=15)
        instant = datetime(2023, 3, 16, 2, 0, tzinfo=timezone.utc)
        # Still March 15 in New York.
        assert compute_due_date(s, instant, tz="America/New_York") == date(2023, 3, 15)
        assert compute_due_date(s, instant, tz=tz.UTC) == date(2023, 4, 15)

    def test_naive_datetime_taken_as_local(self):
        s = make_schedule(due_day=15)
        assert compute_due_date(s, datetime(2023, 3, 15, 23, 59)) == date(2023, 3, 15)

    def test_monotonic_over_two_years(self):
        s = make_schedule(due_day=31, frequency="monthly")
        previous = None
        day = date(2023, 1, 1)
        while day < date(2025, 1, 1):
            due = compute_due_date(s, day)
            assert due >= day
            if previous is not None:
                assert due >= previous
            previous = due
            day += timedelta(days=1)


# ── enumerate_obligations ────────────────────────────────────────────────────

class TestEnumerateObligations:
    def test_end_date_exclusive_three_obligations(self):
        s = make_schedule(start_date=date(2023, 1, 1), end_date=date(2023, 4, 1), due_day=1)
        result = list(enumerate_obligations(s, date(2023, 1, 1), date(2023, 12, 31)))
        assert [o.due_date for o in result] == [date(2023, 1, 1), date(2023, 2, 1), date(2023, 3, 1)]

    def test_obligation_fields(self):
        s = make_schedule(due_day=31)
        o = list(enumerate_obligations(s, date(2023, 2, 1), date(2023, 3, 1)))[0]
        assert o.schedule_id == 1
        assert o.period_start == date(2023, 2, 1)
        assert o.period_end == date(2023, 3, 1)
        assert o.due_date == date(2023, 2, 28)
        assert o.amount == Decimal("1200.00")
        assert o.status is ObligationStatus.UPCOMING

    def test_window_end_is_exclusive(self):
        s = make_schedule(due_day=1)
        result = list(enumerate_obligations(s, date(2023, 1, 1), date(2023, 3, 1)))
        assert [o.due_date.month for o in result] == [1, 2]

    def test_infinite_schedule_terminates(self):
        s = make_schedule(due_day=1)
        result = list(enumerate_obligations(s, date(2030, 1, 1), date(2031, 1, 1)))
        assert len(result) == 12

    def test_restartable(self):
        s = make_schedule()
        seq = enumerate_obligations(s, date(2023, 1, 1), date(2023, 7, 1))
        assert list(seq) == list(seq)

    def test_empty_window(self):
        s = make_schedule()
        assert list(enumerate_obligations(s, date(2023, 5, 1), date(2023, 5, 1))) == []
        assert list(enumerate_obligations(s, date(2023, 6, 1), date(2023, 5, 1))) == []

    def test_window_before_start(self):
        s = make_schedule(start_date=date(2024, 1, 1))
        assert list(enumerate_obligations(s, date(2023, 1, 1), date(2023, 12, 31))) == []

    def test_quarterly_periods_feb_may_aug(self):
        s = make_schedule(frequency="quarterly", start_date=date(2023, 2, 1), due_day=1)
        result = list(enumerate_obligations(s, date(2023, 1, 1), date(2024, 1, 1)))
        assert [o.due_date for o in result] == [
            date(2023, 2, 1), date(2023, 5, 1), date(2023, 8, 1), date(2023, 11, 1)
        ]
        assert result[0].period_end == date(2023, 5, 1)

    def test_annual(self):
        s = make_schedule(frequency="annual", start_date=date(2020, 2, 1), due_day=29)
        result = list(enumerate_obligations(s, date(2020, 1, 1), date(2024, 12, 31)))
        assert [o.due_date for o in result] == [
            date(2020, 2, 29), date(2021, 2, 28), date(2022, 2, 28), date(2023, 2, 28), date(2024, 2, 29)
        ]

    def test_ascending_order(self):
        s = make_schedule(due_day=31)
        dates = [o.due_date for o in enumerate_obligations(s, date(2023, 1, 1), date(2025, 1, 1))]
        assert dates == sorted(dates)
        assert len(dates) == 24

    def test_total(self):
        s = make_schedule(amount="100.00")
        assert enumerate_obligations(s, date(2023, 1, 1), date(2023, 4, 1)).total() == Decimal("300.00")

    def test_first_and_next_obligation(self):
        s = make_schedule(due_day=10)
        assert enumerate_obligations(s, date(2023, 3, 11), date(2023, 6, 1)).first().due_date == date(2023, 4, 10)
        o = next_obligation(s, date(2023, 3, 11))
        assert o.due_date == date(2023, 4, 10)
        assert o.period_start == date(2023, 4, 1)

    def test_next_obligation_none_when_inactive(self):
        s = deactivate(make_schedule(), date(2023, 1, 1))
        assert next_obligation(s, date(2023, 2, 1)) is None

    def test_inactive_without_effective_date_yields_nothing(self):
        s = make_schedule(is_active=False)
        assert list(enumerate_obligations(s, date(2023, 1, 1), date(2024, 1, 1))) == []


# ── deactivate / reactivate / correct ────────────────────────────────────────

class TestMutations:
    def test_deactivate_keeps_history(self):
        s = make_schedule(due_day=1)
        before = enumerate_obligations(s, date(2023, 1, 1), date(2023, 7, 1))
        materialized_before = list(before)

        off = deactivate(s, date(2023, 3, 15))
        after = [o.due_date for o in enumerate_obligations(off, date(2023, 1, 1), date(2023, 7, 1))]

        assert after == [date(2023, 1, 1), date(2023, 2, 1), date(2023, 3, 1)]
        # Earlier results are untouched.
        assert list(before) == materialized_before
        assert len(materialized_before) == 6

    def test_deactivate_on_due_date_excludes_it(self):
        s = make_schedule(due_day=1)
        off = deactivate(s, date(2023, 3, 1))
        dates = [o.due_date for o in enumerate_obligations(off, date(2023, 1, 1), date(2023, 7, 1))]
        assert dates == [date(2023, 1, 1), date(2023, 2, 1)]

    def test_deactivate_returns_new_version(self):
        s = make_schedule()
        now = datetime(2023, 3, 1, 12, tzinfo=timezone.utc)
        off = deactivate(s, date(2023, 3, 1), now=now)
        assert s.is_active is True
        assert off.is_active is False
        assert off.deactivated_on == date(2023, 3, 1)
        assert off.updated_at == now

    def test_deactivate_twice_keeps_earlier_date(self):
        s = deactivate(make_schedule(), date(2023, 3, 1))
        assert deactivate(s, date(2023, 5, 1)) is s
        assert deactivate(s, date(2023, 2, 1)).deactivated_on == date(2023, 2, 1)

    def test_deactivate_legacy_inactive_row_sets_date(self):
        legacy = make_schedule(is_active=False)
        off = deactivate(legacy, date(2023, 3, 15))
        assert off is not legacy
        assert off.deactivated_on == date(2023, 3, 15)
        dates = [o.due_date for o in enumerate_obligations(off, date(2023, 1, 1), date(2023, 7, 1))]
        assert dates == [date(2023, 1, 1), date(2023, 2, 1), date(2023, 3, 1)]

    def test_reactivate_keeps_cancelled_gap(self):
        off = deactivate(make_schedule(), date(2023, 3, 15))
        on = reactivate(off, date(2023, 6, 1))
        assert on.is_active is True
        assert on.deactivated_on is None
        assert on.suspensions == ((date(2023, 3, 15), date(2023, 6, 1)),)
        dates = [o.due_date for o in enumerate_obligations(on, date(2023, 1, 1), date(2023, 8, 1))]
        assert dates == [
            date(2023, 1, 1), date(2023, 2, 1), date(2023, 3, 1),
            date(2023, 6, 1), date(2023, 7, 1),
        ]

    def test_reactivate_mid_period_resumes_next_due_date(self):
        on = reactivate(deactivate(make_schedule(), date(2023, 3, 15)), date(2023, 5, 10))
        assert compute_due_date(on, date(2023, 5, 2)) == date(2023, 6, 1)
        assert [o.due_date for o in enumerate_obligations(on, date(2023, 4, 1), date(2023, 7, 1))] == [
            date(2023, 6, 1),
        ]

    def test_second_suspension_keeps_first(self):
        s = reactivate(deactivate(make_schedule(), date(2023, 2, 15)), date(2023, 4, 1))
        s = reactivate(deactivate(s, date(2023, 5, 15)), date(2023, 7, 1))
        dates = [o.due_date for o in enumerate_obligations(s, date(2023, 1, 1), date(2023, 8, 1))]
        assert dates == [date(2023, 1, 1), date(2023, 2, 1), date(2023, 4, 1), date(2023, 5, 1), date(2023, 7, 1)]

    def test_reactivate_before_effective_date_withdraws_notice(self):
        off = deactivate(make_schedule(), date(2023, 6, 15))
        on = reactivate(off, date(2023, 5, 1))
        assert on.suspensions == ()
        assert compute_due_date(on, date(2023, 6, 20)) == date(2023, 7, 1)

    def test_reactivate_active_is_noop(self):
        s = make_schedule()
        assert reactivate(s, date(2023, 5, 1)) is s

    def test_correct_amount_and_due_day(self):
        s = make_schedule()
        fixed = correct_schedule(s, amount="1250", due_day=5)
        assert fixed.amount == Decimal("1250.00")
        assert fixed.due_day == 5
        assert fixed.updated_at is not None
        assert s.amount == Decimal("1200.00")

    def test_correct_rejects_bad_values(self):
        with pytest.raises(InvalidScheduleError):
            correct_schedule(make_schedule(), due_day=32)

    def test_correct_nothing_is_noop(self):
        s = make_schedule()
        assert correct_schedule(s) is s
