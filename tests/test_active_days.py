"""Tests for active-day parsing and next-date calculation."""
from datetime import date

import pytest

from utils.active_days import ActiveDateCalculator, parse_active_days

# Wednesday
TODAY = date(2024, 5, 15)


def calculator(days):
    return ActiveDateCalculator(days, today=lambda: TODAY)


class TestParseActiveDays:
    def test_list(self):
        assert parse_active_days([5, 1, 3]) == [1, 3, 5]

    def test_json_string(self):
        assert parse_active_days("[1,3,5]") == [1, 3, 5]

    def test_invalid_entries_dropped(self):
        assert parse_active_days([3, 1, 1, 9, "2", True, None]) == [1, 2, 3]

    @pytest.mark.parametrize("raw", [None, "1,3", "[bad", "", 5, {"1": True}])
    def test_unusable(self, raw):
        assert parse_active_days(raw) is None

    def test_empty_list(self):
        assert parse_active_days([]) == []


class TestActiveDateCalculator:
    def test_first_active_date_includes_today(self):
        assert calculator([1, 3]).first_active_date() == date(2024, 5, 15)

    def test_next_active_date_excludes_today(self):
        assert calculator([1, 3]).next_active_date() == date(2024, 5, 20)
        assert calculator([1, 3]).next_active_weekday() == 1

    def test_only_today_wraps_a_week(self):
        assert calculator([3]).next_active_date() == date(2024, 5, 22)

    def test_tomorrow(self):
        assert calculator([4]).next_active_date() == date(2024, 5, 16)
        assert calculator([4]).first_active_date() == date(2024, 5, 16)

    def test_no_days_configured(self):
        calc = calculator(None)
        assert calc.next_active_date() == date(2024, 5, 16)
        assert calc.first_active_date() == TODAY

    def test_is_active(self):
        calc = calculator([6, 7])
        assert calc.is_active(date(2024, 5, 18))
        assert not calc.is_active(TODAY)

    @pytest.mark.asyncio
    async def test_from_store_json_string(self, store):
        await store.store_value("task.activeDays", "[5]")
        calc = await ActiveDateCalculator.from_store(store, today=lambda: TODAY)
        assert calc.active_days == [5]
        assert calc.next_active_date() == date(2024, 5, 17)
