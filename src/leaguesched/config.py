"""Config loading and validation for the league scheduler."""

from datetime import date, time
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from leaguesched.errors import ConfigError, ValidationError
from leaguesched.models import (
    DEFAULT_SETTINGS, DayOfWeek, HolidayRange, LeagueSettings, Season,
    SeasonStatus, Team,
)


def parse_time(s: str) -> time:
    """Parse time strings like '8:30pm', '10am', '20:30'."""
    s = s.strip()
    s_lower = s.lower()

    is_pm = s_lower.endswith("pm")
    is_am = s_lower.endswith("am")

    s_clean = s_lower
    if is_pm or is_am:
        s_clean = s_clean[:-2].strip()

    try:
        if ":" in s_clean:
            parts = s_clean.split(":")
            h = int(parts[0])
            m = int(parts[1])
        else:
            h = int(s_clean)
            m = 0

        if is_pm and h < 12:
            h += 12
        elif is_am and h == 12:
            h = 0

        return time(h, m)
    except ValueError as e:
        raise ConfigError(f"Bad time {s!r}: {e}") from e


def parse_date(s: str) -> date:
    """Parse date string YYYY-MM-DD."""
    parts = s.strip().split("-")
    if len(parts) != 3:
        raise ConfigError(f"Bad date {s!r}: expected YYYY-MM-DD")
    try:
        return date(int(parts[0]), int(parts[1]), int(parts[2]))
    except ValueError as e:
        raise ConfigError(f"Bad date {s!r}: {e}") from e


def parse_date_range(s: str) -> tuple[date, date]:
    """Parse 'YYYY-MM-DD:YYYY-MM-DD' into (start, end) dates.

    A single date gives a one-day range.
    """
    s = str(s)
    if ":" not in s:
        d = parse_date(s)
        return d, d
    parts = s.split(":")
    if len(parts) != 2:
        raise ConfigError(f"Bad date range {s!r}: expected START:END")
    return parse_date(parts[0]), parse_date(parts[1])


def parse_settings(raw: dict) -> LeagueSettings:
    """Build LeagueSettings from the ``league:`` section."""
    raw = raw or {}

    day_names = raw.get("game_days")
    if day_names is None:
        game_days = DEFAULT_SETTINGS.game_days
    else:
        try:
            game_days = tuple(DayOfWeek.from_str(str(d)) for d in day_names)
        except KeyError as e:
            raise ConfigError(f"Unknown game day: {e.args[0]}") from e
        if not game_days:
            raise ConfigError("league.game_days must not be empty")
        if len(set(game_days)) != len(game_days):
            raise ConfigError("league.game_days has duplicates")

    timezone = str(raw.get("timezone", DEFAULT_SETTINGS.timezone))
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"Unknown timezone {timezone!r}") from e

    kickoff = DEFAULT_SETTINGS.kickoff
    if "kickoff" in raw:
        kickoff = parse_time(str(raw["kickoff"]))

    return LeagueSettings(
        game_days=game_days,
        kickoff=kickoff,
        timezone=timezone,
        venue=str(raw.get("venue", DEFAULT_SETTINGS.venue)),
        database=str(raw.get("database", DEFAULT_SETTINGS.database)),
    )


def parse_season(raw: dict) -> Season:
    if not raw:
        raise ConfigError("Missing season section")
    try:
        start = parse_date(str(raw["start_date"]))
        end = parse_date(str(raw["end_date"]))
    except KeyError as e:
        raise ConfigError(f"season.{e.args[0]} is required") from e

    break_start = break_end = None
    if raw.get("break"):
        break_start, break_end = parse_date_range(str(raw["break"]))

    try:
        status = SeasonStatus(str(raw.get("status", "draft")).lower())
    except ValueError as e:
        raise ConfigError(f"Unknown season status {raw.get('status')!r}") from e

    season = Season(
        name=str(raw.get("name", "")),
        start_date=start,
        end_date=end,
        break_start=break_start,
        break_end=break_end,
        status=status,
    )
    try:
        season.validate()
    except ValidationError as e:
        raise ConfigError(str(e)) from e
    return season


def parse_teams(raw: list) -> list[Team]:
    """Teams in draft order. Plain names get positions 1..N by list order."""
    teams = []
    for i, entry in enumerate(raw or [], start=1):
        if isinstance(entry, dict):
            if "name" not in entry:
                raise ConfigError(f"Team entry {i} has no name")
            teams.append(Team(
                name=str(entry["name"]),
                draft_position=int(entry.get("draft_position", i)),
            ))
        else:
            teams.append(Team(name=str(entry), draft_position=i))

    names = [t.name for t in teams]
    dupes = sorted({n for n in names if names.count(n) > 1})
    if dupes:
        raise ConfigError(f"Duplicate team name(s): {', '.join(dupes)}")
    return teams


def parse_holidays(raw: list) -> list[HolidayRange]:
    holidays = []
    for entry in raw or []:
        if "dates" not in entry:
            raise ConfigError(f"Holiday {entry.get('name', '?')!r} has no dates")
        start, end = parse_date_range(str(entry["dates"]))
        holiday = HolidayRange(start=start, end=end, name=str(entry.get("name", "")))
        try:
            holiday.validate()
        except ValidationError as e:
            raise ConfigError(str(e)) from e
        holidays.append(holiday)
    return holidays


def load_config(path: str | Path) -> dict:
    """Load and validate config YAML, returning structured data.

    Returns dict with:
    - settings: LeagueSettings
    - season: Season (not yet stored, so no id)
    - teams: list[Team] in draft order
    - holidays: list[HolidayRange]
    """
    path = Path(path)
    try:
        with open(path) as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Bad YAML in {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config {path} is not a mapping")

    return {
        "settings": parse_settings(raw.get("league", {})),
        "season": parse_season(raw.get("season", {})),
        "teams": parse_teams(raw.get("teams", [])),
        "holidays": parse_holidays(raw.get("holidays", [])),
    }
