"""Holiday expansion and game-day enumeration for a season."""

from datetime import date
from typing import Iterable, Iterator

from leaguesched.dates import add_days, is_game_day
from leaguesched.models import (
    DEFAULT_SETTINGS, HolidayRange, LeagueSettings, Season,
)


def build_holiday_set(holidays: Iterable[HolidayRange]) -> set[date]:
    """Flatten holiday ranges into the set of every blocked date.

    Overlapping or repeated ranges collapse; order does not matter.
    """
    blocked: set[date] = set()
    for h in holidays:
        current = h.start
        while current <= h.end:
            blocked.add(current)
            current = add_days(current, 1)
    return blocked


def is_blocked(d: date, season: Season, holiday_set: set[date]) -> bool:
    """True if ``d`` is outside the season, in its break, or a holiday."""
    return not season.contains(d) or season.in_break(d) or d in holiday_set


def iter_game_days(season: Season,
                   holidays: Iterable[HolidayRange] = (),
                   settings: LeagueSettings = DEFAULT_SETTINGS,
                   ) -> Iterator[date]:
    """Yield every usable game day of the season in date order.

    Walks the season one day at a time, so break and holiday exclusion
    hold for any shape of range.
    """
    holiday_set = build_holiday_set(holidays)
    current = season.start_date
    while current <= season.end_date:
        if (is_game_day(current, settings.game_days)
                and not season.in_break(current)
                and current not in holiday_set):
            yield current
        current = add_days(current, 1)


def get_season_game_days(season: Season,
                         holidays: Iterable[HolidayRange] = (),
                         settings: LeagueSettings = DEFAULT_SETTINGS,
                         ) -> list[date]:
    return list(iter_game_days(season, holidays, settings))
