#!/usr/bin/env python3
"""League fixture scheduler.

Set up a season from config.yaml, then generate and maintain its fixtures:

    leaguesched init                      # season, teams, holidays -> database
    leaguesched gamedays                  # list usable game days
    leaguesched generate [-o DIR]         # auto-schedule, validate, write outputs
    leaguesched fixtures                  # list fixtures with their ids
    leaguesched cascade ID DATE [--override ID=DATE ...] [--confirm]
    leaguesched move ID DATE              # single move, no cascade
    leaguesched verify fixtures.csv       # validate a CSV against config

Examples:
    leaguesched init
    leaguesched generate -o spring2026
    leaguesched cascade 3f2a... 2026-02-10 --override 9c1d...=2026-02-17
    leaguesched cascade 3f2a... 2026-02-10 --confirm
"""

import argparse
import sys
from datetime import date
from pathlib import Path

from leaguesched.config import load_config, parse_date
from leaguesched.constraints import format_validation_report, validate_fixtures
from leaguesched.dates import fixture_date, weekday_of
from leaguesched.errors import ConfigError, SchedulingError, ValidationError
from leaguesched.gamedays import get_season_game_days
from leaguesched.logging_config import setup_logging
from leaguesched.models import Season
from leaguesched.output import format_cascade, format_schedule, write_schedule
from leaguesched.roundrobin import generate_schedule
from leaguesched.scheduler import required_slots
from leaguesched.service import LeagueService
from leaguesched.sqlite_store import SqliteStore
from leaguesched.verify import verify_csv


def _find_season(store: SqliteStore, args, config: dict) -> Season:
    """Season named by --season, else the one named in config."""
    if args.season:
        return store.get_season(args.season)
    name = config["season"].name
    for season in store.list_seasons():
        if season.name == name:
            return season
    raise ValidationError(f"Season {name!r} is not in the database; run 'init' first")


def _parse_override(s: str) -> tuple[str, date]:
    if "=" not in s:
        raise ValidationError(f"Bad override {s!r}: expected FIXTURE_ID=YYYY-MM-DD")
    fixture_id, d = s.split("=", 1)
    return fixture_id.strip(), parse_date(d)


def cmd_init(args, config: dict, store: SqliteStore) -> int:
    season_cfg = config["season"]
    if any(s.name == season_cfg.name for s in store.list_seasons()):
        raise ValidationError(f"Season {season_cfg.name!r} already exists")

    season = store.create_season(season_cfg)
    for team in config["teams"]:
        team.season_id = season.id
        store.create_team(team)
    for holiday in config["holidays"]:
        holiday.season_id = season.id
        store.create_holiday(holiday)

    print(f"Created season {season.name} ({season.id})")
    print(f"  {season.start_date} to {season.end_date}")
    print(f"  {len(config['teams'])} teams, {len(config['holidays'])} holiday range(s)")
    return 0


def cmd_gamedays(args, config: dict, store: SqliteStore) -> int:
    settings = config["settings"]
    season = config["season"]
    game_days = get_season_game_days(season, config["holidays"], settings)
    for d in game_days:
        print(f"  {d.isoformat()} {weekday_of(d).name}")

    names = [t.name for t in config["teams"]]
    needed = required_slots(len(generate_schedule(names)))
    print(f"\n{len(game_days)} game days; {len(names)} teams need {needed}")
    return 0 if len(game_days) >= needed else 1


def cmd_generate(args, config: dict, store: SqliteStore) -> int:
    settings = config["settings"]
    service = LeagueService(store, settings)
    season = _find_season(store, args, config)

    print(f"Generating fixtures for {season.name}...")
    fixtures = service.auto_schedule(season.id)
    print(f"Created {len(fixtures)} fixtures")

    print("\nValidating...")
    result = validate_fixtures(fixtures, season, store.list_holidays(season.id), settings)
    report = format_validation_report(result)
    print(report)

    print("\nWriting output files...")
    write_schedule(fixtures, args.output_dir, title=season.name, settings=settings)
    stats_path = Path(args.output_dir) / "validation.txt"
    stats_path.write_text(report)
    print(f"Written: {stats_path}")

    if result["valid"]:
        print("\nSchedule generated successfully!")
        return 0
    print(f"\nSchedule has {len(result['errors'])} constraint violations.")
    return 1


def cmd_fixtures(args, config: dict, store: SqliteStore) -> int:
    settings = config["settings"]
    season = _find_season(store, args, config)
    fixtures = store.list_fixtures(season.id)
    if args.ids:
        for f in fixtures:
            d = fixture_date(f.kickoff, settings)
            print(f"{f.id}  MW{f.matchweek:<3} {d.isoformat()} {weekday_of(d).name}  "
                  f"{f.label} [{f.status.value}]")
    else:
        print(format_schedule(fixtures, title=season.name, settings=settings))
    return 0


def cmd_cascade(args, config: dict, store: SqliteStore) -> int:
    settings = config["settings"]
    service = LeagueService(store, settings)
    session = service.preview_cascade(args.fixture_id, parse_date(args.new_date))
    for item in args.override or []:
        fixture_id, d = _parse_override(item)
        session.override(fixture_id, d)

    print(format_cascade(session.postponed, session.new_date, session.rows, settings))

    if not args.confirm:
        if not session.can_confirm:
            print("\nResolve the flagged rows with --override before confirming.")
            return 1
        print("\nPreview only. Re-run with --confirm to apply.")
        return 0

    updated = service.confirm_cascade(session)
    print(f"\nRescheduled {updated} fixture(s).")
    return 0


def cmd_move(args, config: dict, store: SqliteStore) -> int:
    service = LeagueService(store, config["settings"])
    moved = service.move_fixture(args.fixture_id, parse_date(args.new_date))
    d = fixture_date(moved.kickoff, config["settings"])
    print(f"Moved {moved.label} to {d.isoformat()} {weekday_of(d).name}")
    return 0


def cmd_verify(args, config: dict, store: SqliteStore) -> int:
    if not Path(args.csv).exists():
        raise ConfigError(f"{args.csv} not found")
    print(f"Verifying fixtures from {args.csv}...")
    result = verify_csv(args.csv, config)
    print(format_validation_report(result))
    return 0 if result["valid"] else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="leaguesched",
        description="League fixture scheduler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Output files (generate):
  {dir}/schedule.txt     Human-readable fixtures (matchweek view + per-team)
  {dir}/fixtures.csv     Editable CSV, re-checkable with 'verify'
  {dir}/validation.txt   Validation report

Exit codes:
  0  Success (or schedule valid)
  1  Error, flagged cascade rows, or constraint violations
""",
    )
    parser.add_argument(
        "--config", "-c", default="config.yaml",
        help="Path to config YAML file (default: config.yaml)"
    )
    parser.add_argument(
        "--season", default=None,
        help="Season id (default: the season named in config)"
    )
    parser.add_argument(
        "--log-level", default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"], type=str.upper,
        help="Logging level for scheduler internals (default: WARNING)"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Create the config season, teams and holidays")
    sub.add_parser("gamedays", help="List the season's usable game days")

    gen = sub.add_parser("generate", help="Auto-schedule the whole season")
    gen.add_argument(
        "--output-dir", "-o", default="output",
        help="Output directory for generated files (default: output/)"
    )

    fx = sub.add_parser("fixtures", help="Show the season's fixtures")
    fx.add_argument("--ids", action="store_true", help="One line per fixture with its id")

    cas = sub.add_parser("cascade", help="Postpone a fixture and push later ones back")
    cas.add_argument("fixture_id")
    cas.add_argument("new_date", help="YYYY-MM-DD, must be a game day")
    cas.add_argument(
        "--override", action="append", metavar="ID=DATE",
        help="Override one row's proposed date (repeatable)"
    )
    cas.add_argument("--confirm", action="store_true", help="Apply the cascade")

    mv = sub.add_parser("move", help="Move one fixture to a valid date")
    mv.add_argument("fixture_id")
    mv.add_argument("new_date", help="YYYY-MM-DD")

    ver = sub.add_parser("verify", help="Validate a fixtures CSV against config")
    ver.add_argument("csv")

    return parser


COMMANDS = {
    "init": cmd_init,
    "gamedays": cmd_gamedays,
    "generate": cmd_generate,
    "fixtures": cmd_fixtures,
    "cascade": cmd_cascade,
    "move": cmd_move,
    "verify": cmd_verify,
}

NEEDS_STORE = {"init", "generate", "fixtures", "cascade", "move"}


def run(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = load_config(args.config)
        command = COMMANDS[args.command]
        if args.command not in NEEDS_STORE:
            return command(args, config, None)
        with SqliteStore(config["settings"].database) as store:
            return command(args, config, store)
    except (SchedulingError, ConfigError) as e:
        print(f"Error: {e}")
        return 1


def main():
    sys.exit(run())


if __name__ == "__main__":
    main()
