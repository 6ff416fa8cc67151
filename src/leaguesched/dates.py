"""Civil-date arithmetic for the game-day model.

Everything here works on plain ``date`` objects. The epoch helpers pin a
date to UTC midnight, so weekday and distance calculations never depend
on the timezone of the machine running the scheduler. Time-of-day only
enters at the store boundary, through ``kickoff_for`` and
``fixture_date``.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Sequence

from leaguesched.errors import ValidationError
from leaguesched.models import (
    DEFAULT_GAME_DAYS, DEFAULT_SETTINGS, DayOfWeek, LeagueSettings,
)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
SECONDS_PER_DAY = 86_400


def date_to_epoch(d: date) -> int:
    """Seconds since the Unix epoch at UTC midnight of ``d``."""
    return (d - EPOCH.date()).days * SECONDS_PER_DAY


def epoch_to_date(ts: int) -> date:
    return (EPOCH + timedelta(seconds=ts)).date()


def weekday_of(d: date) -> DayOfWeek:
    return DayOfWeek(d.weekday())


def add_days(d: date, n: int) -> date:
    return d + timedelta(days=n)


def is_game_day(d: date,
                game_days: Sequence[DayOfWeek] = DEFAULT_GAME_DAYS) -> bool:
    return weekday_of(d) in game_days


def next_game_day_on_or_after(d: date,
                              game_days: Sequence[DayOfWeek] = DEFAULT_GAME_DAYS
                              ) -> date:
    """First configured game weekday on or after ``d``."""
    if not game_days:
        raise ValidationError("No game days configured")
    for offset in range(7):
        candidate = add_days(d, offset)
        if is_game_day(candidate, game_days):
            return candidate
    raise ValidationError(f"Unrecognized game days: {game_days}")


def next_game_day_after(d: date,
                        game_days: Sequence[DayOfWeek] = DEFAULT_GAME_DAYS
                        ) -> date:
    """First configured game weekday strictly after ``d``."""
    return next_game_day_on_or_after(add_days(d, 1), game_days)


def back_to_back_window(game_days: Sequence[DayOfWeek] = DEFAULT_GAME_DAYS) -> int:
    """Largest calendar-day gap between two adjacent game weekdays.

    Tue/Fri gives 4 (Tue->Fri is 3 days, Fri->Tue is 4). Two fixtures for
    the same team this close together have no rest slot between them.
    """
    values = sorted({d.value for d in game_days})
    if not values:
        raise ValidationError("No game days configured")
    gaps = [b - a for a, b in zip(values, values[1:])]
    gaps.append(values[0] + 7 - values[-1])
    return max(gaps)


def kickoff_for(d: date, settings: LeagueSettings = DEFAULT_SETTINGS) -> datetime:
    """Offset-aware kickoff for civil date ``d`` in league time."""
    return datetime.combine(d, settings.kickoff, tzinfo=settings.tz)


def fixture_date(kickoff: datetime,
                 settings: LeagueSettings = DEFAULT_SETTINGS) -> date:
    """Civil date of a kickoff in league time.

    A naive datetime is taken to already be league time.
    """
    if kickoff.tzinfo is None:
        return kickoff.date()
    return kickoff.astimezone(settings.tz).date()


def next_game_day(now: datetime,
                  settings: LeagueSettings = DEFAULT_SETTINGS) -> datetime:
    """Kickoff of the next game day at or after ``now``.

    Today counts when it is a game day and kickoff has not passed yet.
    """
    if now.tzinfo is None:
        local = now.replace(tzinfo=settings.tz)
    else:
        local = now.astimezone(settings.tz)
    today = local.date()
    if is_game_day(today, settings.game_days) and local.time() < settings.kickoff:
        return kickoff_for(today, settings)
    return kickoff_for(next_game_day_after(today, settings.game_days), settings)
