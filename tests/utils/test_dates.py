"""
Unit tests for calendar helpers.
"""
from datetime import date, datetime, timedelta, timezone

import pytest

from utils.dates import add_months, clamp_day, last_day_of_month, month_index, parse_date, resolve_tz, to_local_date


class TestCalendar:
    @pytest.mark.parametrize("year, month, expected", [
        (2023, 2, 28), (2024, 2, 29), (1900, 2, 28), (2000, 2, 29), (2023, 4, 30), (2023, 12, 31),
    ])
    def test_last_day_of_month(self, year, month, expected):
        assert last_day_of_month(year, month) == expected

    def test_clamp_day(self):
        assert clamp_day(2023, 2, 31) == date(2023, 2, 28)
        assert clamp_day(2023, 3, 31) == date(2023, 3, 31)
        assert clamp_day(2023, 6, 15) == date(2023, 6, 15)

    def test_add_months_clamps(self):
        assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
        assert add_months(date(2023, 11, 1), 3) == date(2024, 2, 1)

    def test_month_index_difference(self):
        assert month_index(date(2024, 2, 1)) - month_index(date(2023, 11, 30)) == 3


class TestConversion:
    def test_date_passthrough(self):
        assert to_local_date(date(2023, 5, 1)) == date(2023, 5, 1)

    def test_aware_to_zone(self):
        instant = datetime(2023, 1, 1, 3, 0, tzinfo=timezone.utc)
        assert to_local_date(instant, "America/Los_Angeles") == date(2022, 12, 31)
        assert to_local_date(instant, "Asia/Tokyo") == date(2023, 1, 1)

    def test_fixed_offset(self):
        instant = datetime(2023, 1, 1, 23, 0, tzinfo=timezone(timedelta(hours=-5)))
        assert to_local_date(instant, "UTC") == date(2023, 1, 2)

    def test_unknown_zone(self):
        with pytest.raises(ValueError):
            resolve_tz("Mars/Olympus_Mons")

    def test_rejects_other_types(self):
        with pytest.raises(TypeError):
            to_local_date("2023-01-01")

    def test_parse_date(self):
        assert parse_date("2023-02-03") == date(2023, 2, 3)
        assert parse_date(datetime(2023, 2, 3, 10)) == date(2023, 2, 3)
        assert parse_date(None) is None
        assert parse_date("") is None
