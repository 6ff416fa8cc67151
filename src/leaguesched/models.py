"""Data models for the league fixture scheduler."""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Optional
from zoneinfo import ZoneInfo

from leaguesched.errors import ValidationError


class DayOfWeek(Enum):
    Mon = 0
    Tue = 1
    Wed = 2
    Thu = 3
    Fri = 4
    Sat = 5
    Sun = 6

    @classmethod
    def from_str(cls, s: str) -> "DayOfWeek":
        return cls[s.strip()[:3].capitalize()]

    def is_weekday(self) -> bool:
        return self.value < 5

    def is_weekend(self) -> bool:
        return self.value >= 5


class SeasonStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETE = "complete"


class FixtureStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETE = "complete"


class CascadeFlag(str, Enum):
    OK = "ok"
    HOLIDAY_ADJUSTED = "holiday-adjusted"
    CONFLICT = "conflict"
    OUT_OF_BOUNDS = "out-of-bounds"


class MoveValidity(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    CURRENT = "current"


DEFAULT_GAME_DAYS = (DayOfWeek.Tue, DayOfWeek.Fri)


@dataclass(frozen=True)
class LeagueSettings:
    """League-wide constants the engine is parameterized by."""
    game_days: tuple[DayOfWeek, ...] = DEFAULT_GAME_DAYS
    kickoff: time = time(20, 30)
    timezone: str = "Indian/Maldives"
    venue: str = "Vilimale Turf"
    database: str = "league.db"

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def game_days_label(self) -> str:
        return " and ".join(d.name for d in self.game_days)


DEFAULT_SETTINGS = LeagueSettings()


@dataclass
class Season:
    """A league season; the break is an inclusive date range."""
    name: str
    start_date: date
    end_date: date
    break_start: Optional[date] = None
    break_end: Optional[date] = None
    status: SeasonStatus = SeasonStatus.DRAFT
    id: str = ""

    @property
    def has_break(self) -> bool:
        return self.break_start is not None and self.break_end is not None

    def contains(self, d: date) -> bool:
        return self.start_date <= d <= self.end_date

    def in_break(self, d: date) -> bool:
        return self.has_break and self.break_start <= d <= self.break_end

    def validate(self) -> None:
        if self.start_date > self.end_date:
            raise ValidationError(
                f"Season {self.name!r}: start {self.start_date} is after "
                f"end {self.end_date}"
            )
        if (self.break_start is None) != (self.break_end is None):
            raise ValidationError(
                f"Season {self.name!r}: break needs both a start and an end"
            )
        if self.has_break and not (
            self.start_date <= self.break_start <= self.break_end <= self.end_date
        ):
            raise ValidationError(
                f"Season {self.name!r}: break {self.break_start}..{self.break_end} "
                f"must lie within {self.start_date}..{self.end_date}"
            )


@dataclass
class Team:
    """A team; draft_position seeds the round-robin pairing order."""
    name: str
    season_id: str = ""
    draft_position: Optional[int] = None
    id: str = ""


@dataclass
class HolidayRange:
    """A named run of blocked dates, both ends inclusive."""
    start: date
    end: date
    name: str
    season_id: str = ""
    id: str = ""

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end

    def validate(self) -> None:
        if self.end < self.start:
            raise ValidationError(
                f"Holiday {self.name!r}: end {self.end} is before start {self.start}"
            )


@dataclass
class Fixture:
    """A scheduled or played match. kickoff is offset-aware."""
    season_id: str
    home_team_id: str
    away_team_id: str
    kickoff: datetime
    venue: str
    matchweek: int
    status: FixtureStatus = FixtureStatus.SCHEDULED
    id: str = ""
    home_team_name: str = ""
    away_team_name: str = ""

    @property
    def team_ids(self) -> tuple[str, str]:
        return (self.home_team_id, self.away_team_id)

    def involves(self, team_id: str) -> bool:
        return team_id in self.team_ids

    def shares_team(self, other: "Fixture") -> bool:
        return self.involves(other.home_team_id) or self.involves(other.away_team_id)

    @property
    def label(self) -> str:
        home = self.home_team_name or self.home_team_id
        away = self.away_team_name or self.away_team_id
        return f"{home} vs {away}"


@dataclass
class FixtureUpdate:
    """One kickoff change inside an atomic batch."""
    fixture_id: str
    kickoff: datetime


@dataclass
class Matchup:
    """One game of a round: home hosts away."""
    home: Any
    away: Any

    def involves(self, team: Any) -> bool:
        return team == self.home or team == self.away

    def reversed(self) -> "Matchup":
        return Matchup(self.away, self.home)


@dataclass
class Round:
    """A set of matchups where each team plays at most once."""
    number: int
    matchups: list[Matchup]
    bye_teams: list = field(default_factory=list)

    @property
    def pairs(self) -> list[tuple]:
        return [(m.home, m.away) for m in self.matchups]


@dataclass
class CascadeRow:
    """Proposed new date for one downstream fixture of a postponement."""
    fixture_id: str
    home_team_id: str
    away_team_id: str
    home_team_name: str
    away_team_name: str
    original_date: date
    proposed_date: date
    flag: CascadeFlag
    holiday_adjusted: bool = False
    override: Optional[date] = None

    @property
    def final_date(self) -> date:
        return self.override if self.override is not None else self.proposed_date

    @property
    def is_blocking(self) -> bool:
        return self.flag in (CascadeFlag.CONFLICT, CascadeFlag.OUT_OF_BOUNDS)
