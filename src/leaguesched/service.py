"""
League admin workflows over a fixture store: auto-schedule, postponement
cascades, single moves, manual fixture edits and season administration.
Every call names its season explicitly.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Optional

from leaguesched import cascade, moves, scheduler
from leaguesched.dates import add_days, is_game_day, kickoff_for
from leaguesched.errors import ValidationError
from leaguesched.gamedays import get_season_game_days
from leaguesched.models import (
    DEFAULT_SETTINGS, CascadeRow, Fixture, FixtureStatus, HolidayRange,
    LeagueSettings, MoveValidity, SeasonStatus, Season, Team,
)
from leaguesched.store import FixtureStore

logger = logging.getLogger(__name__)

_FIXTURE_EDITABLE = {"home_team_id", "away_team_id", "date", "venue", "matchweek", "status"}


@dataclass
class CascadeSession:
    """A cascade preview the admin can adjust row by row before confirming."""
    context: cascade.CascadeContext
    rows: list[CascadeRow] = field(default_factory=list)

    @property
    def postponed(self) -> Fixture:
        return self.context.postponed

    @property
    def new_date(self) -> date:
        return self.context.new_date

    def override(self, fixture_id: str, override_date: Optional[date]) -> CascadeRow:
        """Override one row's date, or clear the override with None."""
        idx = cascade.find_row(self.rows, fixture_id)
        if idx is None:
            raise ValidationError(f"Fixture {fixture_id} is not part of this cascade")
        row = self.rows[idx]
        if override_date is None:
            updated = cascade.clear_override(row)
        else:
            self.context.rows = self.rows
            updated = cascade.recheck_cascade_row(row, override_date, self.context)
        self.rows[idx] = updated
        return updated

    @property
    def blocking(self) -> list[CascadeRow]:
        return cascade.blocking_rows(self.rows)

    @property
    def can_confirm(self) -> bool:
        return not self.blocking


class LeagueService:
    """
    Domain workflows for one league. Persistence is delegated to the store;
    league constants come from settings.
    """

    def __init__(self, store: FixtureStore,
                 settings: LeagueSettings = DEFAULT_SETTINGS) -> None:
        self.store = store
        self.settings = settings

    # ---------- Scheduling ----------

    def auto_schedule(self, season_id: str, venue: Optional[str] = None) -> list[Fixture]:
        return scheduler.auto_schedule(self.store, season_id, self.settings, venue=venue)

    def game_days(self, season_id: str) -> list[date]:
        season = self.store.get_season(season_id)
        return get_season_game_days(season, self.store.list_holidays(season_id), self.settings)

    # ---------- Cascade ----------

    def preview_cascade(self, fixture_id: str, new_date: date) -> CascadeSession:
        """Compute the cascade for postponing fixture_id to new_date. Writes nothing."""
        if not is_game_day(new_date, self.settings.game_days):
            raise ValidationError(
                f"Game days are {self.settings.game_days_label()} only"
            )
        postponed = self.store.get_fixture(fixture_id)
        if postponed.status != FixtureStatus.SCHEDULED:
            raise ValidationError(f"{postponed.label} is already {postponed.status.value}")

        season = self.store.get_season(postponed.season_id)
        fixtures = self.store.list_fixtures(postponed.season_id)
        holidays = self.store.list_holidays(postponed.season_id)

        rows = cascade.compute_cascade(postponed, new_date, fixtures, holidays,
                                       season, self.settings)
        context = cascade.CascadeContext(
            postponed=postponed,
            new_date=new_date,
            fixtures=fixtures,
            holidays=holidays,
            season=season,
            rows=rows,
            settings=self.settings,
        )
        logger.info("Cascade preview for %s -> %s: %d row(s)",
                    postponed.label, new_date, len(rows))
        return CascadeSession(context=context, rows=rows)

    def confirm_cascade(self, session: CascadeSession) -> int:
        """Write the session atomically. On failure the session is left as is."""
        return cascade.confirm_cascade(self.store, session.postponed, session.new_date,
                                       session.rows, self.settings)

    # ---------- Single moves ----------

    def _move_inputs(self, fixture_id: str):
        fixture = self.store.get_fixture(fixture_id)
        season = self.store.get_season(fixture.season_id)
        fixtures = self.store.list_fixtures(fixture.season_id)
        holidays = self.store.list_holidays(fixture.season_id)
        return fixture, fixtures, season, holidays

    def move_candidates(self, fixture_id: str,
                        dates: Optional[Iterable[date]] = None) -> dict[date, MoveValidity]:
        """Classify every date of the season (or the given dates) for a move."""
        fixture, fixtures, season, holidays = self._move_inputs(fixture_id)
        if dates is None:
            dates = _date_range(season.start_date, season.end_date)
        return moves.classify_move_candidates(fixture, dates, fixtures, season,
                                              holidays, self.settings)

    def move_fixture(self, fixture_id: str, new_date: date) -> Fixture:
        fixture, fixtures, season, holidays = self._move_inputs(fixture_id)
        return moves.move_fixture(self.store, fixture, new_date, fixtures, season,
                                  holidays, self.settings)

    # ---------- Manual fixtures ----------

    def create_fixture(self, season_id: str, home_team_id: str, away_team_id: str,
                       match_date: date, matchweek: int,
                       venue: Optional[str] = None) -> Fixture:
        if not (season_id and home_team_id and away_team_id and match_date and matchweek):
            raise ValidationError(
                "season_id, home_team_id, away_team_id, date and matchweek are required"
            )
        if home_team_id == away_team_id:
            raise ValidationError("home_team_id and away_team_id must be different")
        if int(matchweek) < 1:
            raise ValidationError("matchweek must be at least 1")
        _check_pair_count(self.pairing_counts(season_id), home_team_id, away_team_id)
        return self.store.create_fixture(Fixture(
            season_id=season_id,
            home_team_id=home_team_id,
            away_team_id=away_team_id,
            kickoff=kickoff_for(match_date, self.settings),
            venue=venue or self.settings.venue,
            matchweek=matchweek,
        ))

    def update_fixture(self, fixture_id: str, **fields: Any) -> Fixture:
        """Edit a fixture. ``date`` is a civil date; kickoff time stays fixed."""
        unknown = set(fields) - _FIXTURE_EDITABLE
        if unknown:
            raise ValidationError(f"Cannot edit fixture field(s): {', '.join(sorted(unknown))}")
        current = self.store.get_fixture(fixture_id)
        home = fields.get("home_team_id", current.home_team_id)
        away = fields.get("away_team_id", current.away_team_id)
        if home == away:
            raise ValidationError("Teams must be different")
        if "matchweek" in fields and int(fields["matchweek"]) < 1:
            raise ValidationError("matchweek must be at least 1")

        changes = dict(fields)
        if "date" in changes:
            changes["kickoff"] = kickoff_for(changes.pop("date"), self.settings)
        if "status" in changes:
            changes["status"] = _fixture_status(changes["status"])
        return self.store.update_fixture(fixture_id, changes)

    def delete_fixture(self, fixture_id: str) -> None:
        self.store.delete_fixture(fixture_id)
        logger.info("Deleted fixture %s", fixture_id)

    def pairing_counts(self, season_id: str) -> dict[frozenset, int]:
        """How many fixtures each unordered team pair already has."""
        counts: dict[frozenset, int] = defaultdict(int)
        for f in self.store.list_fixtures(season_id):
            counts[frozenset(f.team_ids)] += 1
        return dict(counts)

    # ---------- Season administration ----------

    def update_season(self, season_id: str, end_date: date,
                      start_date: Optional[date] = None,
                      break_start: Optional[date] = None,
                      break_end: Optional[date] = None) -> Season:
        """Set the season range and break. Omitting the break clears it."""
        season = self.store.get_season(season_id)
        candidate = Season(
            name=season.name,
            start_date=start_date or season.start_date,
            end_date=end_date,
            break_start=break_start,
            break_end=break_end,
            status=season.status,
            id=season.id,
        )
        candidate.validate()
        return self.store.update_season(season_id, {
            "start_date": candidate.start_date,
            "end_date": candidate.end_date,
            "break_start": candidate.break_start,
            "break_end": candidate.break_end,
        })

    def set_season_status(self, season_id: str, status: str) -> Season:
        return self.store.update_season(season_id, {"status": _season_status(status)})

    def add_holiday(self, season_id: str, start: date, end: date, name: str) -> HolidayRange:
        if not name:
            raise ValidationError("Holiday name is required")
        holiday = HolidayRange(start=start, end=end, name=name, season_id=season_id)
        holiday.validate()
        return self.store.create_holiday(holiday)

    def remove_holiday(self, holiday_id: str) -> None:
        self.store.delete_holiday(holiday_id)

    def add_team(self, season_id: str, name: str,
                 draft_position: Optional[int] = None) -> Team:
        if not name or not name.strip():
            raise ValidationError("Team name is required")
        return self.store.create_team(Team(name=name.strip(), season_id=season_id,
                                           draft_position=draft_position))

    def rename_team(self, team_id: str, name: str) -> Team:
        if not name or not name.strip():
            raise ValidationError("team_name is required")
        return self.store.update_team(team_id, {"name": name.strip()})

    def set_draft_order(self, season_id: str, team_ids: list[str]) -> list[Team]:
        """Assign draft positions 1..N in the given order, as one store batch."""
        known = {t.id for t in self.store.list_teams(season_id)}
        if set(team_ids) != known or len(team_ids) != len(known):
            raise ValidationError("Draft order must list every team of the season once")
        return scheduler.draft_order(self.store.apply_draft_order(season_id, team_ids))


def _date_range(start: date, end: date) -> list[date]:
    days = []
    current = start
    while current <= end:
        days.append(current)
        current = add_days(current, 1)
    return days


def _season_status(value: Any) -> SeasonStatus:
    try:
        return SeasonStatus(str(getattr(value, "value", value)).lower())
    except ValueError as e:
        allowed = ", ".join(s.value for s in SeasonStatus)
        raise ValidationError(f"status must be one of: {allowed}") from e


def _fixture_status(value: Any) -> FixtureStatus:
    try:
        return FixtureStatus(str(getattr(value, "value", value)).lower())
    except ValueError as e:
        allowed = ", ".join(s.value for s in FixtureStatus)
        raise ValidationError(f"status must be one of: {allowed}") from e


def _check_pair_count(counts: dict[frozenset, int], home: str, away: str) -> None:
    existing = counts.get(frozenset((home, away)), 0)
    if existing >= 2:
        logger.warning("Pair %s/%s already has %d fixtures", home, away, existing)

