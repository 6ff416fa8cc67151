"""Single-fixture moves outside the cascade workflow."""

import logging
from datetime import date
from typing import Iterable, Optional

from leaguesched.dates import (
    back_to_back_window, fixture_date, is_game_day, kickoff_for,
)
from leaguesched.errors import ValidationError
from leaguesched.gamedays import build_holiday_set, is_blocked
from leaguesched.models import (
    DEFAULT_SETTINGS, Fixture, HolidayRange, LeagueSettings, MoveValidity,
    Season,
)
from leaguesched.store import FixtureStore

logger = logging.getLogger(__name__)


def _team_mates(fixture: Fixture, fixtures: Iterable[Fixture]) -> list[Fixture]:
    """Other fixtures, of any status, sharing a team with fixture."""
    return [f for f in fixtures if f.id != fixture.id and f.shares_team(fixture)]


def has_same_day_conflict(fixture: Fixture, candidate: date,
                          fixtures: Iterable[Fixture],
                          settings: LeagueSettings = DEFAULT_SETTINGS) -> bool:
    return any(
        fixture_date(f.kickoff, settings) == candidate
        for f in _team_mates(fixture, fixtures)
    )


def is_back_to_back(fixture: Fixture, candidate: date,
                    fixtures: Iterable[Fixture],
                    settings: LeagueSettings = DEFAULT_SETTINGS) -> bool:
    """True if either team plays within one game-weekday cycle of candidate.

    With Tue/Fri the cycle is 4 days, so a Tuesday next to the Friday
    before or after it is rejected.
    """
    window = back_to_back_window(settings.game_days)
    for f in _team_mates(fixture, fixtures):
        gap = abs((fixture_date(f.kickoff, settings) - candidate).days)
        if 0 < gap <= window:
            return True
    return False


def classify_move_candidate(fixture: Fixture, candidate: date,
                            fixtures: list[Fixture], season: Season,
                            holidays: Iterable[HolidayRange],
                            settings: LeagueSettings = DEFAULT_SETTINGS,
                            holiday_set: Optional[set[date]] = None,
                            ) -> MoveValidity:
    if candidate == fixture_date(fixture.kickoff, settings):
        return MoveValidity.CURRENT
    if holiday_set is None:
        holiday_set = build_holiday_set(holidays)
    if (is_blocked(candidate, season, holiday_set)
            or not is_game_day(candidate, settings.game_days)
            or has_same_day_conflict(fixture, candidate, fixtures, settings)
            or is_back_to_back(fixture, candidate, fixtures, settings)):
        return MoveValidity.INVALID
    return MoveValidity.VALID


def classify_move_candidates(fixture: Fixture, candidates: Iterable[date],
                             fixtures: list[Fixture], season: Season,
                             holidays: Iterable[HolidayRange],
                             settings: LeagueSettings = DEFAULT_SETTINGS,
                             ) -> dict[date, MoveValidity]:
    """Classify a whole calendar of dates in one pass."""
    holiday_set = build_holiday_set(holidays)
    return {
        d: classify_move_candidate(fixture, d, fixtures, season, (),
                                   settings, holiday_set=holiday_set)
        for d in candidates
    }


def move_fixture(store: FixtureStore, fixture: Fixture, new_date: date,
                 fixtures: list[Fixture], season: Season,
                 holidays: Iterable[HolidayRange],
                 settings: LeagueSettings = DEFAULT_SETTINGS) -> Fixture:
    """Move one fixture to new_date. No other fixture is touched."""
    validity = classify_move_candidate(fixture, new_date, fixtures, season,
                                       holidays, settings)
    if validity != MoveValidity.VALID:
        raise ValidationError(
            f"Cannot move {fixture.label} to {new_date}: date is {validity.value}"
        )
    moved = store.update_fixture(fixture.id, {"kickoff": kickoff_for(new_date, settings)})
    logger.info("Moved %s to %s", fixture.label, new_date)
    return moved
