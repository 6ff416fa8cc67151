"""Fixture store interface and an in-memory implementation.

The engine never keeps long-lived state; it reads seasons, teams,
holidays and fixtures through a store and hands back whole batches of
changes. Batch writes are all-or-nothing.
"""

import copy
import logging
import uuid
from dataclasses import replace
from typing import Any, Iterable, Protocol

from leaguesched.errors import StoreError
from leaguesched.models import (
    Fixture, FixtureUpdate, HolidayRange, Season, Team,
)

logger = logging.getLogger(__name__)

FIXTURE_FIELDS = frozenset({
    "home_team_id", "away_team_id", "kickoff", "venue", "matchweek", "status",
})
SEASON_FIELDS = frozenset({
    "name", "start_date", "end_date", "break_start", "break_end", "status",
})
TEAM_FIELDS = frozenset({"name", "draft_position"})


class FixtureStore(Protocol):
    def get_season(self, season_id: str) -> Season: ...

    def list_seasons(self) -> list[Season]: ...

    def create_season(self, season: Season) -> Season: ...

    def update_season(self, season_id: str, fields: dict[str, Any]) -> Season: ...

    def list_teams(self, season_id: str) -> list[Team]: ...

    def create_team(self, team: Team) -> Team: ...

    def update_team(self, team_id: str, fields: dict[str, Any]) -> Team: ...

    def apply_draft_order(self, season_id: str, team_ids: list[str]) -> list[Team]: ...

    def list_holidays(self, season_id: str) -> list[HolidayRange]: ...

    def create_holiday(self, holiday: HolidayRange) -> HolidayRange: ...

    def delete_holiday(self, holiday_id: str) -> None: ...

    def list_fixtures(self, season_id: str) -> list[Fixture]: ...

    def get_fixture(self, fixture_id: str) -> Fixture: ...

    def create_fixture(self, fixture: Fixture) -> Fixture: ...

    def update_fixture(self, fixture_id: str, fields: dict[str, Any]) -> Fixture: ...

    def delete_fixture(self, fixture_id: str) -> None: ...

    def replace_all_fixtures(self, season_id: str,
                             fixtures: Iterable[Fixture]) -> int: ...

    def apply_fixture_updates(self, updates: Iterable[FixtureUpdate]) -> int: ...


def _new_id() -> str:
    return str(uuid.uuid4())


def _check_fields(fields: dict[str, Any], allowed: frozenset, kind: str) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise StoreError(f"Unknown {kind} field(s): {', '.join(sorted(unknown))}")


class MemoryStore:
    """Dict-backed store. Returns copies, so callers cannot mutate state."""

    def __init__(self) -> None:
        self.seasons: dict[str, Season] = {}
        self.teams: dict[str, Team] = {}
        self.holidays: dict[str, HolidayRange] = {}
        self.fixtures: dict[str, Fixture] = {}

    # Seasons

    def get_season(self, season_id: str) -> Season:
        if season_id not in self.seasons:
            raise StoreError(f"Season not found: {season_id}")
        return copy.copy(self.seasons[season_id])

    def list_seasons(self) -> list[Season]:
        return [copy.copy(s) for s in self.seasons.values()]

    def create_season(self, season: Season) -> Season:
        stored = replace(season, id=season.id or _new_id())
        self.seasons[stored.id] = stored
        return copy.copy(stored)

    def update_season(self, season_id: str, fields: dict[str, Any]) -> Season:
        _check_fields(fields, SEASON_FIELDS, "season")
        stored = replace(self.get_season(season_id), **fields)
        self.seasons[season_id] = stored
        return copy.copy(stored)

    # Teams

    def list_teams(self, season_id: str) -> list[Team]:
        return [copy.copy(t) for t in self.teams.values() if t.season_id == season_id]

    def create_team(self, team: Team) -> Team:
        if team.season_id not in self.seasons:
            raise StoreError(f"Season not found: {team.season_id}")
        stored = replace(team, id=team.id or _new_id())
        self.teams[stored.id] = stored
        return copy.copy(stored)

    def update_team(self, team_id: str, fields: dict[str, Any]) -> Team:
        _check_fields(fields, TEAM_FIELDS, "team")
        if team_id not in self.teams:
            raise StoreError(f"Team not found: {team_id}")
        stored = replace(self.teams[team_id], **fields)
        self.teams[team_id] = stored
        self._refresh_team_names()
        return copy.copy(stored)

    def apply_draft_order(self, season_id: str, team_ids: list[str]) -> list[Team]:
        """Set draft positions 1..N in the given order; all or nothing."""
        for team_id in team_ids:
            team = self.teams.get(team_id)
            if team is None or team.season_id != season_id:
                raise StoreError(f"Team not found in season {season_id}: {team_id}")
        staged = dict(self.teams)
        for position, team_id in enumerate(team_ids, start=1):
            staged[team_id] = replace(staged[team_id], draft_position=position)
        self.teams = staged
        return self.list_teams(season_id)

    # Holidays

    def list_holidays(self, season_id: str) -> list[HolidayRange]:
        rows = [h for h in self.holidays.values() if h.season_id == season_id]
        return [copy.copy(h) for h in sorted(rows, key=lambda h: h.start)]

    def create_holiday(self, holiday: HolidayRange) -> HolidayRange:
        if holiday.season_id not in self.seasons:
            raise StoreError(f"Season not found: {holiday.season_id}")
        stored = replace(holiday, id=holiday.id or _new_id())
        self.holidays[stored.id] = stored
        return copy.copy(stored)

    def delete_holiday(self, holiday_id: str) -> None:
        if self.holidays.pop(holiday_id, None) is None:
            raise StoreError(f"Holiday not found: {holiday_id}")

    # Fixtures

    def list_fixtures(self, season_id: str) -> list[Fixture]:
        rows = [f for f in self.fixtures.values() if f.season_id == season_id]
        return [copy.copy(f) for f in sorted(rows, key=lambda f: f.kickoff)]

    def get_fixture(self, fixture_id: str) -> Fixture:
        if fixture_id not in self.fixtures:
            raise StoreError(f"Fixture not found: {fixture_id}")
        return copy.copy(self.fixtures[fixture_id])

    def create_fixture(self, fixture: Fixture) -> Fixture:
        stored = self._prepare(fixture)
        self.fixtures[stored.id] = stored
        return copy.copy(stored)

    def update_fixture(self, fixture_id: str, fields: dict[str, Any]) -> Fixture:
        _check_fields(fields, FIXTURE_FIELDS, "fixture")
        stored = self._prepare(replace(self.get_fixture(fixture_id), **fields))
        self.fixtures[fixture_id] = stored
        return copy.copy(stored)

    def delete_fixture(self, fixture_id: str) -> None:
        if self.fixtures.pop(fixture_id, None) is None:
            raise StoreError(f"Fixture not found: {fixture_id}")

    def replace_all_fixtures(self, season_id: str,
                             fixtures: Iterable[Fixture]) -> int:
        if season_id not in self.seasons:
            raise StoreError(f"Season not found: {season_id}")
        # Build the new state completely before swapping it in
        kept = {fid: f for fid, f in self.fixtures.items() if f.season_id != season_id}
        created = 0
        for fixture in fixtures:
            if fixture.season_id != season_id:
                raise StoreError(
                    f"Fixture {fixture.label} belongs to season {fixture.season_id}, "
                    f"not {season_id}"
                )
            stored = self._prepare(replace(fixture, id=""))
            kept[stored.id] = stored
            created += 1
        self.fixtures = kept
        logger.debug("Replaced fixtures for season %s: %d created", season_id, created)
        return created

    def apply_fixture_updates(self, updates: Iterable[FixtureUpdate]) -> int:
        updates = list(updates)
        missing = [u.fixture_id for u in updates if u.fixture_id not in self.fixtures]
        if missing:
            logger.error("Rejected fixture batch, unknown ids: %s", missing)
            raise StoreError(f"Fixture not found: {missing[0]}")
        staged = dict(self.fixtures)
        for u in updates:
            staged[u.fixture_id] = replace(staged[u.fixture_id], kickoff=u.kickoff)
        self.fixtures = staged
        logger.debug("Applied %d fixture updates", len(updates))
        return len(updates)

    # Helpers

    def _prepare(self, fixture: Fixture) -> Fixture:
        """Check team references, fill in names and an id."""
        if fixture.matchweek < 1:
            raise StoreError(f"matchweek must be at least 1, got {fixture.matchweek}")
        for team_id in fixture.team_ids:
            team = self.teams.get(team_id)
            if team is None:
                raise StoreError(f"Team not found: {team_id}")
            if team.season_id != fixture.season_id:
                raise StoreError(
                    f"Team {team.name} is not in season {fixture.season_id}"
                )
        if fixture.home_team_id == fixture.away_team_id:
            raise StoreError("home_team_id and away_team_id must be different")
        return replace(
            fixture,
            id=fixture.id or _new_id(),
            home_team_name=self.teams[fixture.home_team_id].name,
            away_team_name=self.teams[fixture.away_team_id].name,
        )

    def _refresh_team_names(self) -> None:
        for fid, f in self.fixtures.items():
            self.fixtures[fid] = replace(
                f,
                home_team_name=self.teams[f.home_team_id].name,
                away_team_name=self.teams[f.away_team_id].name,
            )
