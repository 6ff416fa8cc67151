"""
SQLite-backed fixture store.

Tables are created with IF NOT EXISTS on open. Kickoffs are stored as
offset-aware ISO strings, dates as YYYY-MM-DD. Batch writes run in one
transaction: a failure anywhere rolls the whole batch back and surfaces
as StoreError.
"""
from __future__ import annotations

import logging
import sqlite3
import uuid
from dataclasses import replace
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from leaguesched.errors import StoreError
from leaguesched.models import (
    Fixture, FixtureStatus, FixtureUpdate, HolidayRange, Season, SeasonStatus, Team,
)
from leaguesched.store import FIXTURE_FIELDS, SEASON_FIELDS, TEAM_FIELDS, _check_fields

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS seasons (
    season_id TEXT PRIMARY KEY,
    season_name TEXT NOT NULL,
    start_date TEXT NOT NULL,
    end_date TEXT NOT NULL,
    break_start TEXT,
    break_end TEXT,
    status TEXT NOT NULL DEFAULT 'draft',
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS teams (
    team_id TEXT PRIMARY KEY,
    season_id TEXT NOT NULL REFERENCES seasons(season_id),
    team_name TEXT NOT NULL,
    draft_position INTEGER
);
CREATE INDEX IF NOT EXISTS ix_teams_season ON teams(season_id);

CREATE TABLE IF NOT EXISTS season_holidays (
    holiday_id TEXT PRIMARY KEY,
    season_id TEXT NOT NULL REFERENCES seasons(season_id),
    start_date TEXT NOT NULL,
    end_date TEXT NOT NULL,
    name TEXT NOT NULL,
    CHECK (end_date >= start_date)
);
CREATE INDEX IF NOT EXISTS ix_holidays_season ON season_holidays(season_id);

CREATE TABLE IF NOT EXISTS fixtures (
    match_id TEXT PRIMARY KEY,
    season_id TEXT NOT NULL REFERENCES seasons(season_id),
    home_team_id TEXT NOT NULL REFERENCES teams(team_id),
    away_team_id TEXT NOT NULL REFERENCES teams(team_id),
    kickoff_time TEXT NOT NULL,
    venue TEXT NOT NULL,
    matchweek INTEGER NOT NULL CHECK (matchweek >= 1),
    status TEXT NOT NULL DEFAULT 'scheduled',
    updated_at TEXT,
    CHECK (home_team_id <> away_team_id)
);
CREATE INDEX IF NOT EXISTS ix_fixtures_season ON fixtures(season_id);
"""

_FIXTURE_SELECT = """
    SELECT f.*, ht.team_name AS home_team_name, at.team_name AS away_team_name
    FROM fixtures f
    JOIN teams ht ON ht.team_id = f.home_team_id
    JOIN teams at ON at.team_id = f.away_team_id
"""

# Model attribute -> column
_FIXTURE_COLUMNS = {
    "home_team_id": "home_team_id",
    "away_team_id": "away_team_id",
    "kickoff": "kickoff_time",
    "venue": "venue",
    "matchweek": "matchweek",
    "status": "status",
}
_SEASON_COLUMNS = {
    "name": "season_name",
    "start_date": "start_date",
    "end_date": "end_date",
    "break_start": "break_start",
    "break_end": "break_end",
    "status": "status",
}
_TEAM_COLUMNS = {"name": "team_name", "draft_position": "draft_position"}


def _to_db(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (SeasonStatus, FixtureStatus)):
        return value.value
    return value


def _parse_date(s: str | None) -> date | None:
    if s is None:
        return None
    return date.fromisoformat(s[:10])


def _row_to_season(row: sqlite3.Row) -> Season:
    return Season(
        id=row["season_id"],
        name=row["season_name"],
        start_date=_parse_date(row["start_date"]),
        end_date=_parse_date(row["end_date"]),
        break_start=_parse_date(row["break_start"]),
        break_end=_parse_date(row["break_end"]),
        status=SeasonStatus(row["status"]),
    )


def _row_to_team(row: sqlite3.Row) -> Team:
    return Team(
        id=row["team_id"],
        season_id=row["season_id"],
        name=row["team_name"],
        draft_position=row["draft_position"],
    )


def _row_to_holiday(row: sqlite3.Row) -> HolidayRange:
    return HolidayRange(
        id=row["holiday_id"],
        season_id=row["season_id"],
        start=_parse_date(row["start_date"]),
        end=_parse_date(row["end_date"]),
        name=row["name"],
    )


def _row_to_fixture(row: sqlite3.Row) -> Fixture:
    return Fixture(
        id=row["match_id"],
        season_id=row["season_id"],
        home_team_id=row["home_team_id"],
        away_team_id=row["away_team_id"],
        kickoff=datetime.fromisoformat(row["kickoff_time"]),
        venue=row["venue"],
        matchweek=row["matchweek"],
        status=FixtureStatus(row["status"]),
        home_team_name=row["home_team_name"],
        away_team_name=row["away_team_name"],
    )


def get_connection(db_path: str | Path) -> sqlite3.Connection:
    """Return a new SQLite connection with foreign keys enforced."""
    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


class SqliteStore:
    """FixtureStore over a single SQLite connection."""

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        self.db_path = db_path
        self.conn = get_connection(db_path)
        self.conn.executescript(SCHEMA)

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "SqliteStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _write(self, sql: str, args: tuple = ()) -> sqlite3.Cursor:
        try:
            with self.conn:
                return self.conn.execute(sql, args)
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc

    def _update(self, table: str, key: str, key_value: str,
                fields: dict[str, Any], columns: dict[str, str]) -> None:
        if not fields:
            return
        assignments = ", ".join(f"{columns[k]} = ?" for k in fields)
        args = tuple(_to_db(v) for v in fields.values()) + (key_value,)
        cur = self._write(f"UPDATE {table} SET {assignments} WHERE {key} = ?", args)
        if cur.rowcount == 0:
            raise StoreError(f"{table[:-1].capitalize()} not found: {key_value}")

    # Seasons

    def get_season(self, season_id: str) -> Season:
        row = self.conn.execute(
            "SELECT * FROM seasons WHERE season_id = ?", (season_id,)
        ).fetchone()
        if row is None:
            raise StoreError(f"Season not found: {season_id}")
        return _row_to_season(row)

    def list_seasons(self) -> list[Season]:
        rows = self.conn.execute("SELECT * FROM seasons ORDER BY created_at").fetchall()
        return [_row_to_season(r) for r in rows]

    def create_season(self, season: Season) -> Season:
        sid = season.id or str(uuid.uuid4())
        self._write(
            "INSERT INTO seasons (season_id, season_name, start_date, end_date, "
            "break_start, break_end, status, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (sid, season.name, _to_db(season.start_date), _to_db(season.end_date),
             _to_db(season.break_start), _to_db(season.break_end),
             _to_db(season.status), datetime.now(timezone.utc).isoformat()),
        )
        return self.get_season(sid)

    def update_season(self, season_id: str, fields: dict[str, Any]) -> Season:
        _check_fields(fields, SEASON_FIELDS, "season")
        self._update("seasons", "season_id", season_id, fields, _SEASON_COLUMNS)
        return self.get_season(season_id)

    # Teams

    def list_teams(self, season_id: str) -> list[Team]:
        rows = self.conn.execute(
            "SELECT * FROM teams WHERE season_id = ? ORDER BY draft_position, team_name",
            (season_id,),
        ).fetchall()
        return [_row_to_team(r) for r in rows]

    def _get_team(self, team_id: str) -> Team:
        row = self.conn.execute(
            "SELECT * FROM teams WHERE team_id = ?", (team_id,)
        ).fetchone()
        if row is None:
            raise StoreError(f"Team not found: {team_id}")
        return _row_to_team(row)

    def create_team(self, team: Team) -> Team:
        tid = team.id or str(uuid.uuid4())
        self._write(
            "INSERT INTO teams (team_id, season_id, team_name, draft_position) "
            "VALUES (?, ?, ?, ?)",
            (tid, team.season_id, team.name, team.draft_position),
        )
        return self._get_team(tid)

    def update_team(self, team_id: str, fields: dict[str, Any]) -> Team:
        _check_fields(fields, TEAM_FIELDS, "team")
        self._update("teams", "team_id", team_id, fields, _TEAM_COLUMNS)
        return self._get_team(team_id)

    def apply_draft_order(self, season_id: str, team_ids: list[str]) -> list[Team]:
        """Set draft positions 1..N in the given order, in one transaction."""
        try:
            with self.conn:
                for position, team_id in enumerate(team_ids, start=1):
                    cur = self.conn.execute(
                        "UPDATE teams SET draft_position = ? "
                        "WHERE team_id = ? AND season_id = ?",
                        (position, team_id, season_id),
                    )
                    if cur.rowcount == 0:
                        raise StoreError(
                            f"Team not found in season {season_id}: {team_id}"
                        )
        except sqlite3.Error as exc:
            logger.error("Rolled back draft order for season %s: %s", season_id, exc)
            raise StoreError(str(exc)) from exc
        return self.list_teams(season_id)

    # Holidays

    def list_holidays(self, season_id: str) -> list[HolidayRange]:
        rows = self.conn.execute(
            "SELECT * FROM season_holidays WHERE season_id = ? ORDER BY start_date ASC",
            (season_id,),
        ).fetchall()
        return [_row_to_holiday(r) for r in rows]

    def create_holiday(self, holiday: HolidayRange) -> HolidayRange:
        hid = holiday.id or str(uuid.uuid4())
        self._write(
            "INSERT INTO season_holidays (holiday_id, season_id, start_date, end_date, name) "
            "VALUES (?, ?, ?, ?, ?)",
            (hid, holiday.season_id, _to_db(holiday.start), _to_db(holiday.end),
             holiday.name),
        )
        row = self.conn.execute(
            "SELECT * FROM season_holidays WHERE holiday_id = ?", (hid,)
        ).fetchone()
        return _row_to_holiday(row)

    def delete_holiday(self, holiday_id: str) -> None:
        cur = self._write(
            "DELETE FROM season_holidays WHERE holiday_id = ?", (holiday_id,)
        )
        if cur.rowcount == 0:
            raise StoreError(f"Holiday not found: {holiday_id}")

    # Fixtures

    def list_fixtures(self, season_id: str) -> list[Fixture]:
        rows = self.conn.execute(
            _FIXTURE_SELECT + " WHERE f.season_id = ? ORDER BY f.kickoff_time",
            (season_id,),
        ).fetchall()
        return [_row_to_fixture(r) for r in rows]

    def get_fixture(self, fixture_id: str) -> Fixture:
        row = self.conn.execute(
            _FIXTURE_SELECT + " WHERE f.match_id = ?", (fixture_id,)
        ).fetchone()
        if row is None:
            raise StoreError(f"Fixture not found: {fixture_id}")
        return _row_to_fixture(row)

    def _check_fixture_teams(self, fixture: Fixture) -> None:
        """Both teams must exist and belong to the fixture's season."""
        for team_id in fixture.team_ids:
            row = self.conn.execute(
                "SELECT team_name, season_id FROM teams WHERE team_id = ?", (team_id,)
            ).fetchone()
            if row is None:
                raise StoreError(f"Team not found: {team_id}")
            if row["season_id"] != fixture.season_id:
                raise StoreError(
                    f"Team {row['team_name']} is not in season {fixture.season_id}"
                )

    def _insert_fixture(self, fixture: Fixture) -> str:
        self._check_fixture_teams(fixture)
        fid = fixture.id or str(uuid.uuid4())
        self.conn.execute(
            "INSERT INTO fixtures (match_id, season_id, home_team_id, away_team_id, "
            "kickoff_time, venue, matchweek, status) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (fid, fixture.season_id, fixture.home_team_id, fixture.away_team_id,
             _to_db(fixture.kickoff), fixture.venue, fixture.matchweek,
             _to_db(fixture.status)),
        )
        return fid

    def create_fixture(self, fixture: Fixture) -> Fixture:
        try:
            with self.conn:
                fid = self._insert_fixture(fixture)
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        return self.get_fixture(fid)

    def update_fixture(self, fixture_id: str, fields: dict[str, Any]) -> Fixture:
        _check_fields(fields, FIXTURE_FIELDS, "fixture")
        if "home_team_id" in fields or "away_team_id" in fields:
            self._check_fixture_teams(replace(self.get_fixture(fixture_id), **fields))
        self._update("fixtures", "match_id", fixture_id, fields, _FIXTURE_COLUMNS)
        return self.get_fixture(fixture_id)

    def delete_fixture(self, fixture_id: str) -> None:
        cur = self._write("DELETE FROM fixtures WHERE match_id = ?", (fixture_id,))
        if cur.rowcount == 0:
            raise StoreError(f"Fixture not found: {fixture_id}")

    def replace_all_fixtures(self, season_id: str,
                             fixtures: Iterable[Fixture]) -> int:
        """Delete the season's fixtures and insert the new set atomically."""
        self.get_season(season_id)
        created = 0
        try:
            with self.conn:
                self.conn.execute("DELETE FROM fixtures WHERE season_id = ?", (season_id,))
                for fixture in fixtures:
                    if fixture.season_id != season_id:
                        raise StoreError(
                            f"Fixture {fixture.label} belongs to season "
                            f"{fixture.season_id}, not {season_id}"
                        )
                    self._insert_fixture(fixture)
                    created += 1
        except sqlite3.Error as exc:
            logger.error("Rolled back fixture replacement for season %s: %s",
                         season_id, exc)
            raise StoreError(str(exc)) from exc
        logger.debug("Replaced fixtures for season %s: %d created", season_id, created)
        return created

    def apply_fixture_updates(self, updates: Iterable[FixtureUpdate]) -> int:
        """Apply kickoff changes in one transaction; all or nothing."""
        updated = 0
        try:
            with self.conn:
                for u in updates:
                    cur = self.conn.execute(
                        "UPDATE fixtures SET kickoff_time = ?, updated_at = ? "
                        "WHERE match_id = ?",
                        (_to_db(u.kickoff), datetime.now(timezone.utc).isoformat(), u.fixture_id),
                    )
                    if cur.rowcount == 0:
                        raise StoreError(f"Fixture not found: {u.fixture_id}")
                    updated += 1
        except sqlite3.Error as exc:
            logger.error("Rolled back fixture batch: %s", exc)
            raise StoreError(str(exc)) from exc
        logger.debug("Applied %d fixture updates", updated)
        return updated
