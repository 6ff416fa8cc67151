"""Tests for dates.py — civil-date arithmetic."""

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

import pytest

from leaguesched.dates import (
    add_days, back_to_back_window, date_to_epoch, epoch_to_date, fixture_date,
    is_game_day, kickoff_for, next_game_day, next_game_day_after,
    next_game_day_on_or_after, weekday_of,
)
from leaguesched.errors import ValidationError
from leaguesched.models import DEFAULT_SETTINGS, DayOfWeek

MALDIVES = ZoneInfo("Indian/Maldives")


class TestEpoch:
    def test_epoch_start(self):
        assert date_to_epoch(date(1970, 1, 1)) == 0
        assert date_to_epoch(date(1970, 1, 2)) == 86_400

    def test_back_to_date(self):
        ts = date_to_epoch(date(2026, 1, 6))
        assert epoch_to_date(ts) == date(2026, 1, 6)

    def test_before_epoch(self):
        assert date_to_epoch(date(1969, 12, 31)) == -86_400


class TestWeekday:
    def test_weekday_of(self):
        assert weekday_of(date(2026, 1, 1)) == DayOfWeek.Thu
        assert weekday_of(date(2026, 1, 6)) == DayOfWeek.Tue
        assert weekday_of(date(2026, 1, 9)) == DayOfWeek.Fri

    def test_add_days_crosses_month(self):
        assert add_days(date(2026, 1, 30), 4) == date(2026, 2, 3)
        assert add_days(date(2026, 1, 6), -5) == date(2026, 1, 1)

    def test_is_game_day(self):
        assert is_game_day(date(2026, 1, 6))
        assert is_game_day(date(2026, 1, 9))
        assert not is_game_day(date(2026, 1, 7))
        assert is_game_day(date(2026, 1, 7), (DayOfWeek.Wed,))


class TestNextGameDay:
    def test_on_or_after_same_day(self):
        assert next_game_day_on_or_after(date(2026, 1, 6)) == date(2026, 1, 6)

    def test_on_or_after_midweek(self):
        # Wed -> Fri, Sat -> Tue
        assert next_game_day_on_or_after(date(2026, 1, 7)) == date(2026, 1, 9)
        assert next_game_day_on_or_after(date(2026, 1, 10)) == date(2026, 1, 13)

    def test_strictly_after(self):
        assert next_game_day_after(date(2026, 1, 6)) == date(2026, 1, 9)
        assert next_game_day_after(date(2026, 1, 9)) == date(2026, 1, 13)

    def test_crosses_month(self):
        assert next_game_day_after(date(2026, 1, 30)) == date(2026, 2, 3)

    def test_single_game_day(self):
        assert next_game_day_after(date(2026, 1, 6), (DayOfWeek.Tue,)) == date(2026, 1, 13)

    def test_no_game_days(self):
        with pytest.raises(ValidationError):
            next_game_day_on_or_after(date(2026, 1, 6), ())


class TestBackToBackWindow:
    def test_tue_fri(self):
        assert back_to_back_window() == 4

    def test_single_day(self):
        assert back_to_back_window((DayOfWeek.Sat,)) == 7

    def test_three_days(self):
        assert back_to_back_window((DayOfWeek.Mon, DayOfWeek.Wed, DayOfWeek.Fri)) == 3


class TestKickoff:
    def test_kickoff_is_offset_aware(self):
        k = kickoff_for(date(2026, 1, 6))
        assert k.isoformat() == "2026-01-06T20:30:00+05:00"

    def test_fixture_date_in_league_time(self):
        # 15:30 UTC is 20:30 in Male
        k = datetime(2026, 1, 6, 15, 30, tzinfo=timezone.utc)
        assert fixture_date(k) == date(2026, 1, 6)

    def test_fixture_date_after_local_midnight(self):
        # 20:00 UTC is 01:00 the next day in Male
        k = datetime(2026, 1, 6, 20, 0, tzinfo=timezone.utc)
        assert fixture_date(k) == date(2026, 1, 7)

    def test_fixture_date_naive(self):
        assert fixture_date(datetime(2026, 1, 6, 23, 0)) == date(2026, 1, 6)

    def test_round_trip(self):
        d = date(2026, 3, 31)
        assert fixture_date(kickoff_for(d)) == d


class TestNextGameDayFromNow:
    def test_today_before_kickoff(self):
        now = datetime(2026, 1, 6, 19, 0, tzinfo=MALDIVES)
        assert next_game_day(now) == kickoff_for(date(2026, 1, 6))

    def test_cutoff_is_kickoff_not_the_hour(self):
        # 20:15 on a Tuesday is before the 20:30 kickoff
        now = datetime(2026, 1, 6, 20, 15, tzinfo=MALDIVES)
        assert next_game_day(now) == kickoff_for(date(2026, 1, 6))

    def test_today_after_kickoff(self):
        now = datetime(2026, 1, 6, 21, 0, tzinfo=MALDIVES)
        assert next_game_day(now) == kickoff_for(date(2026, 1, 9))

    def test_non_game_day(self):
        now = datetime(2026, 1, 7, 12, 0, tzinfo=MALDIVES)
        assert next_game_day(now) == kickoff_for(date(2026, 1, 9))

    def test_utc_input(self):
        # 14:00 UTC Tuesday is 19:00 in Male, still before kickoff
        now = datetime(2026, 1, 6, 14, 0, tzinfo=timezone.utc)
        assert next_game_day(now).date() == date(2026, 1, 6)

    def test_kickoff_time_from_settings(self):
        now = datetime(2026, 1, 7, 12, 0, tzinfo=MALDIVES)
        assert next_game_day(now, DEFAULT_SETTINGS).timetz().replace(tzinfo=None) == time(20, 30)
