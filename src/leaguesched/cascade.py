"""Postponement cascade: push a team pair's later fixtures back one slot.

When a fixture is postponed, every later scheduled fixture of either of
its teams moves to the next game weekday after its current date, then
past any holidays. Rows are resolved strictly in kickoff order, and each
resolved row is visible to the rows after it. Each row gets one flag,
checked in this order:

    out-of-bounds    proposed date is after the season end
    conflict         a team already plays on the proposed date
    holiday-adjusted the date had to be pushed past a holiday
    ok

The admin may override any row. The override is snapped forward to a
game weekday and re-flagged against every other row's current date.
Confirming writes the postponed fixture plus every row in one batch.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Iterable, Optional

from leaguesched.dates import (
    fixture_date, is_game_day, kickoff_for, next_game_day_after,
    next_game_day_on_or_after,
)
from leaguesched.errors import ValidationError
from leaguesched.gamedays import build_holiday_set
from leaguesched.models import (
    DEFAULT_SETTINGS, CascadeFlag, CascadeRow, Fixture, FixtureStatus,
    FixtureUpdate, HolidayRange, LeagueSettings, Season,
)
from leaguesched.store import FixtureStore

logger = logging.getLogger(__name__)

# team id -> fixture id -> date
TeamCalendar = dict[str, dict[str, date]]


@dataclass
class CascadeContext:
    """Everything a row re-check needs besides the row itself."""
    postponed: Fixture
    new_date: date
    fixtures: list[Fixture]
    holidays: list[HolidayRange]
    season: Season
    rows: list[CascadeRow] = field(default_factory=list)
    settings: LeagueSettings = DEFAULT_SETTINGS


def _register(calendar: TeamCalendar, fixture_id: str,
              team_ids: Iterable[str], d: date) -> None:
    for team_id in team_ids:
        calendar[team_id][fixture_id] = d


def _has_conflict(calendar: TeamCalendar, fixture_id: str,
                  team_ids: Iterable[str], d: date) -> bool:
    """True if either team has another fixture on d."""
    for team_id in team_ids:
        for other_id, other_date in calendar.get(team_id, {}).items():
            if other_id != fixture_id and other_date == d:
                return True
    return False


def _classify(d: date, season: Season, conflict: bool, holiday: bool) -> CascadeFlag:
    if d > season.end_date:
        return CascadeFlag.OUT_OF_BOUNDS
    if conflict:
        return CascadeFlag.CONFLICT
    if holiday:
        return CascadeFlag.HOLIDAY_ADJUSTED
    return CascadeFlag.OK


def _base_calendar(fixtures: list[Fixture], excluded: set[str],
                   postponed: Fixture, new_date: date,
                   settings: LeagueSettings) -> TeamCalendar:
    """Untouched fixtures at their current dates plus the postponed one."""
    calendar: TeamCalendar = defaultdict(dict)
    for f in fixtures:
        if f.id in excluded:
            continue
        _register(calendar, f.id, f.team_ids, fixture_date(f.kickoff, settings))
    _register(calendar, postponed.id, postponed.team_ids, new_date)
    return calendar


def affected_fixtures(postponed: Fixture, fixtures: list[Fixture],
                      settings: LeagueSettings = DEFAULT_SETTINGS) -> list[Fixture]:
    """Scheduled fixtures of either team dated after the postponed one, by kickoff."""
    original = fixture_date(postponed.kickoff, settings)
    affected = [
        f for f in fixtures
        if f.id != postponed.id
        and f.status == FixtureStatus.SCHEDULED
        and f.shares_team(postponed)
        and fixture_date(f.kickoff, settings) > original
    ]
    return sorted(affected, key=lambda f: f.kickoff)


def advance_past_holidays(d: date, holiday_set: set[date],
                          settings: LeagueSettings = DEFAULT_SETTINGS
                          ) -> tuple[date, bool]:
    """Step forward one game weekday at a time until d is not a holiday.

    Returns (date, adjusted) where adjusted is True if any step was taken.
    """
    adjusted = False
    while d in holiday_set:
        d = next_game_day_after(d, settings.game_days)
        adjusted = True
    return d, adjusted


def compute_cascade(postponed: Fixture, new_date: date, fixtures: list[Fixture],
                    holidays: list[HolidayRange], season: Season,
                    settings: LeagueSettings = DEFAULT_SETTINGS) -> list[CascadeRow]:
    """Propose new dates for the fixtures downstream of a postponement.

    Each affected fixture moves to the next game weekday strictly after
    its current date, even if an earlier slot has opened up.
    """
    holiday_set = build_holiday_set(holidays)
    affected = affected_fixtures(postponed, fixtures, settings)

    excluded = {f.id for f in affected} | {postponed.id}
    calendar = _base_calendar(fixtures, excluded, postponed, new_date, settings)

    rows = []
    for f in affected:
        current = fixture_date(f.kickoff, settings)
        proposed = next_game_day_after(current, settings.game_days)
        proposed, adjusted = advance_past_holidays(proposed, holiday_set, settings)

        conflict = _has_conflict(calendar, f.id, f.team_ids, proposed)
        flag = _classify(proposed, season, conflict, adjusted)

        # Later rows must see this one
        _register(calendar, f.id, f.team_ids, proposed)

        logger.debug("Cascade %s: %s -> %s [%s]", f.label, current, proposed, flag.value)
        rows.append(CascadeRow(
            fixture_id=f.id,
            home_team_id=f.home_team_id,
            away_team_id=f.away_team_id,
            home_team_name=f.home_team_name,
            away_team_name=f.away_team_name,
            original_date=current,
            proposed_date=proposed,
            flag=flag,
            holiday_adjusted=adjusted,
        ))
    return rows


def recheck_cascade_row(row: CascadeRow, override_date: date,
                        context: CascadeContext) -> CascadeRow:
    """Apply an admin override to a row and re-flag it.

    The typed date is snapped to the first game weekday on or after it.
    The override is kept whatever flag it earns; blocking confirmation on
    a bad flag is up to the caller.
    """
    settings = context.settings
    corrected = next_game_day_on_or_after(override_date, settings.game_days)

    excluded = {r.fixture_id for r in context.rows} | {context.postponed.id}
    calendar = _base_calendar(context.fixtures, excluded, context.postponed,
                              context.new_date, settings)
    for other in context.rows:
        if other.fixture_id == row.fixture_id:
            continue
        _register(calendar, other.fixture_id,
                  (other.home_team_id, other.away_team_id), other.final_date)

    holiday_set = build_holiday_set(context.holidays)
    holiday = corrected in holiday_set or (
        corrected == row.proposed_date and row.holiday_adjusted
    )
    conflict = _has_conflict(calendar, row.fixture_id,
                             (row.home_team_id, row.away_team_id), corrected)
    flag = _classify(corrected, context.season, conflict, holiday)
    logger.debug("Override %s -> %s [%s]", row.fixture_id, corrected, flag.value)
    return replace(row, flag=flag, override=corrected)


def clear_override(row: CascadeRow) -> CascadeRow:
    """Drop an override; the row falls back to its computed date and flag."""
    return replace(row, override=None)


def blocking_rows(rows: list[CascadeRow]) -> list[CascadeRow]:
    return [r for r in rows if r.is_blocking]


def build_cascade_updates(postponed: Fixture, new_date: date, rows: list[CascadeRow],
                          settings: LeagueSettings = DEFAULT_SETTINGS
                          ) -> list[FixtureUpdate]:
    """Kickoff changes for the postponed fixture and every cascade row."""
    updates = [FixtureUpdate(postponed.id, kickoff_for(new_date, settings))]
    for row in rows:
        updates.append(FixtureUpdate(row.fixture_id, kickoff_for(row.final_date, settings)))
    return updates


def confirm_cascade(store: FixtureStore, postponed: Fixture, new_date: date,
                    rows: list[CascadeRow],
                    settings: LeagueSettings = DEFAULT_SETTINGS) -> int:
    """Write the whole cascade as one atomic batch.

    Refuses while any row is flagged conflict or out-of-bounds. Store
    failures propagate as StoreError with nothing applied.
    """
    if not is_game_day(new_date, settings.game_days):
        raise ValidationError(
            f"{new_date} is not a game day ({settings.game_days_label()} only)"
        )
    blocked = blocking_rows(rows)
    if blocked:
        labels = ", ".join(
            f"{r.home_team_name or r.home_team_id} vs "
            f"{r.away_team_name or r.away_team_id} ({r.flag.value})"
            for r in blocked
        )
        raise ValidationError(f"Cascade has unresolved rows: {labels}")

    updates = build_cascade_updates(postponed, new_date, rows, settings)
    updated = store.apply_fixture_updates(updates)
    logger.info("Cascade confirmed: %d fixture(s) rescheduled", updated)
    return updated


def find_row(rows: list[CascadeRow], fixture_id: str) -> Optional[int]:
    for i, r in enumerate(rows):
        if r.fixture_id == fixture_id:
            return i
    return None
