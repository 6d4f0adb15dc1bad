"""
Lead Suite — Working day resolution (+06:00, cutover 10:00)
Run: cd backend && pytest tests/test_working_day.py -v
"""

from datetime import datetime, timezone

from services.working_day import (
    is_month_string,
    is_working_day_string,
    month_of_working_day,
    working_day,
    working_month,
)


def at(iso):
    return datetime.fromisoformat(iso)


class TestWorkingDay:
    def test_before_cutover_is_previous_day(self):
        assert working_day(at("2025-09-12T09:59:00+06:00")) == "2025-09-11"

    def test_after_cutover_is_same_day(self):
        assert working_day(at("2025-09-12T10:01:00+06:00")) == "2025-09-12"

    def test_cutover_minute_still_previous_day(self):
        """10:00:00 and 10:00:59 both belong to the previous day"""
        assert working_day(at("2025-09-12T10:00:00+06:00")) == "2025-09-11"
        assert working_day(at("2025-09-12T10:00:59+06:00")) == "2025-09-11"

    def test_utc_input_is_converted(self):
        # 04:30 UTC = 10:30 local
        assert working_day(at("2025-09-12T04:30:00+00:00")) == "2025-09-12"
        # 03:59 UTC = 09:59 local
        assert working_day(at("2025-09-12T03:59:00+00:00")) == "2025-09-11"

    def test_naive_datetime_is_utc(self):
        assert working_day(datetime(2025, 9, 12, 4, 30)) == "2025-09-12"

    def test_early_morning_crosses_month(self):
        assert working_day(at("2025-10-01T08:00:00+06:00")) == "2025-09-30"

    def test_early_morning_crosses_year(self):
        assert working_day(at("2026-01-01T00:15:00+06:00")) == "2025-12-31"

    def test_default_is_now(self):
        assert is_working_day_string(working_day())
        assert working_day() == working_day(datetime.now(timezone.utc))


class TestMonthHelpers:
    def test_working_month_has_no_cutover(self):
        assert working_month(at("2025-10-01T08:00:00+06:00")) == "2025-10"

    def test_month_of_working_day(self):
        assert month_of_working_day("2025-09-30") == "2025-09"

    def test_string_validators(self):
        assert is_working_day_string("2025-09-12")
        assert not is_working_day_string("2025-9-12")
        assert not is_working_day_string(None)
        assert is_month_string("2025-09")
        assert not is_month_string("2025-09-12")
        assert not is_month_string(202509)
