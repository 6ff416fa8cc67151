"""Standalone verifier for the league scheduler.

Validates a fixtures CSV (as written by ``leaguesched generate``) against
the season, holidays and game days in config.yaml.
Usage: python -m leaguesched.verify <fixtures.csv> [config.yaml]
"""

import csv
import sys
from pathlib import Path
from typing import Iterable

from leaguesched.config import load_config, parse_date, parse_time
from leaguesched.constraints import format_validation_report, validate_fixtures
from leaguesched.dates import kickoff_for
from leaguesched.errors import ConfigError
from leaguesched.models import (
    DEFAULT_SETTINGS, Fixture, FixtureStatus, LeagueSettings, Team,
)


def parse_fixtures_csv(csv_path: str | Path, teams: Iterable[Team] = (),
                       settings: LeagueSettings = DEFAULT_SETTINGS,
                       season_id: str = "") -> list[Fixture]:
    """Parse a fixtures CSV back into Fixture objects.

    Team names are mapped to ids where a team is known; otherwise the
    name itself stands in as the id. Rows without a date or both teams
    are skipped.
    """
    ids = {t.name: (t.id or t.name) for t in teams}
    fixtures = []

    with open(csv_path, newline="") as f:
        reader = csv.DictReader(f)
        for i, row in enumerate(reader, start=1):
            date_str = (row.get("Date") or "").strip()
            home = (row.get("Home") or "").strip()
            away = (row.get("Away") or "").strip()
            if not date_str or not home or not away:
                continue

            d = parse_date(date_str)
            kickoff = kickoff_for(d, settings)
            time_str = (row.get("Kickoff") or "").strip()
            if time_str:
                t = parse_time(time_str)
                kickoff = kickoff.replace(hour=t.hour, minute=t.minute)

            status_str = (row.get("Status") or "scheduled").strip().lower()
            try:
                status = FixtureStatus(status_str)
            except ValueError as e:
                raise ConfigError(f"Row {i}: unknown status {status_str!r}") from e

            fixtures.append(Fixture(
                season_id=season_id,
                home_team_id=ids.get(home, home),
                away_team_id=ids.get(away, away),
                kickoff=kickoff,
                venue=(row.get("Venue") or settings.venue).strip(),
                matchweek=int(row.get("Matchweek") or 0),
                status=status,
                id=f"row-{i}",
                home_team_name=home,
                away_team_name=away,
            ))

    return fixtures


def verify_csv(csv_path: str | Path, config: dict) -> dict:
    """Parse and validate a CSV against a loaded config."""
    fixtures = parse_fixtures_csv(csv_path, config["teams"], config["settings"])
    print(f"Loaded {len(fixtures)} fixtures")
    result = validate_fixtures(
        fixtures, config["season"], config["holidays"], config["settings"],
    )
    result["fixtures"] = len(fixtures)
    return result


def main():
    if len(sys.argv) < 2:
        print("Usage: python -m leaguesched.verify <fixtures.csv> [config.yaml]")
        print("  Validates a fixtures CSV against the season in config.")
        sys.exit(1)

    csv_path = sys.argv[1]
    config_path = sys.argv[2] if len(sys.argv) > 2 else "config.yaml"

    if not Path(csv_path).exists():
        print(f"Error: {csv_path} not found")
        sys.exit(1)

    try:
        print(f"Loading config from {config_path}...")
        config = load_config(config_path)
        print(f"Parsing fixtures from {csv_path}...")
        result = verify_csv(csv_path, config)
    except ConfigError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if not result["fixtures"]:
        print("No fixtures found in CSV. Check the format.")
        sys.exit(1)

    print(format_validation_report(result))
    sys.exit(0 if result["valid"] else 1)


if __name__ == "__main__":
    main()
