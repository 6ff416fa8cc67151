"""Output formatters for the league scheduler."""

import csv
from datetime import date
from io import StringIO
from pathlib import Path

from leaguesched.dates import fixture_date
from leaguesched.models import (
    DEFAULT_SETTINGS, CascadeFlag, CascadeRow, Fixture, FixtureStatus,
    LeagueSettings,
)

CSV_COLUMNS = ["Matchweek", "Date", "Day", "Kickoff", "Home", "Away", "Venue", "Status"]


def _fmt_kickoff(fixture: Fixture, settings: LeagueSettings) -> str:
    local = fixture.kickoff.astimezone(settings.tz) if fixture.kickoff.tzinfo else fixture.kickoff
    return local.strftime("%H:%M")


def _home(f: Fixture) -> str:
    return f.home_team_name or f.home_team_id


def _away(f: Fixture) -> str:
    return f.away_team_name or f.away_team_id


def format_schedule(fixtures: list[Fixture], title: str = "",
                    settings: LeagueSettings = DEFAULT_SETTINGS) -> str:
    """Format fixtures as human-readable text, by matchweek then per team."""
    lines = []
    lines.append("=" * 72)
    lines.append((title or "LEAGUE FIXTURES").upper())
    lines.append("=" * 72)

    by_week: dict[int, list[Fixture]] = {}
    for f in fixtures:
        by_week.setdefault(f.matchweek, []).append(f)

    for mw in sorted(by_week):
        week = sorted(by_week[mw], key=lambda f: (f.kickoff, _home(f)))
        lines.append(f"\n--- MATCHWEEK {mw} ---")

        by_date: dict[date, list[Fixture]] = {}
        for f in week:
            by_date.setdefault(fixture_date(f.kickoff, settings), []).append(f)

        for d in sorted(by_date):
            lines.append(f"\n  {d.strftime('%A')} {d.isoformat()}")
            for f in by_date[d]:
                done = " (played)" if f.status == FixtureStatus.COMPLETE else ""
                lines.append(
                    f"    {_fmt_kickoff(f, settings)}  {_home(f):<16} vs "
                    f"{_away(f):<16} @ {f.venue}{done}"
                )

    lines.append("\n" + "=" * 72)
    lines.append("PER-TEAM FIXTURES")
    lines.append("=" * 72)

    by_team: dict[str, list[Fixture]] = {}
    for f in fixtures:
        by_team.setdefault(_home(f), []).append(f)
        by_team.setdefault(_away(f), []).append(f)

    for team in sorted(by_team):
        lines.append(f"\n{team}:")
        for i, f in enumerate(sorted(by_team[team], key=lambda x: x.kickoff), 1):
            is_home = _home(f) == team
            opponent = _away(f) if is_home else _home(f)
            h_a = "H" if is_home else "A"
            d = fixture_date(f.kickoff, settings)
            lines.append(
                f"  {i:>2}. {d.strftime('%a %Y-%m-%d')} {h_a} vs {opponent:<16} "
                f"MW{f.matchweek}"
            )

    return "\n".join(lines)


def format_fixtures_csv(fixtures: list[Fixture],
                        settings: LeagueSettings = DEFAULT_SETTINGS) -> str:
    """Format fixtures as an editable CSV.

    Columns: Matchweek, Date, Day, Kickoff, Home, Away, Venue, Status
    """
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_COLUMNS)

    for f in sorted(fixtures, key=lambda f: (f.kickoff, f.matchweek, _home(f))):
        d = fixture_date(f.kickoff, settings)
        writer.writerow([
            f.matchweek, d.isoformat(), d.strftime("%a"),
            _fmt_kickoff(f, settings), _home(f), _away(f), f.venue,
            f.status.value,
        ])

    return output.getvalue()


def format_cascade(postponed: Fixture, new_date: date, rows: list[CascadeRow],
                   settings: LeagueSettings = DEFAULT_SETTINGS) -> str:
    """Format a cascade preview as a table."""
    lines = []
    original = fixture_date(postponed.kickoff, settings)
    lines.append(f"Postponing {postponed.label}: {original} -> {new_date}")
    if not rows:
        lines.append("  No later fixtures affected.")
        return "\n".join(lines)

    lines.append(
        f"  {'Fixture':<34} {'Original':<11} {'Proposed':<11} {'Override':<11} Flag"
    )
    for r in rows:
        label = f"{r.home_team_name or r.home_team_id} vs {r.away_team_name or r.away_team_id}"
        override = r.override.isoformat() if r.override else "-"
        marker = " !" if r.is_blocking else ""
        lines.append(
            f"  {label:<34} {r.original_date.isoformat():<11} "
            f"{r.proposed_date.isoformat():<11} {override:<11} {r.flag.value}{marker}"
        )

    counts: dict[CascadeFlag, int] = {}
    for r in rows:
        counts[r.flag] = counts.get(r.flag, 0) + 1
    summary = ", ".join(f"{n} {flag.value}" for flag, n in counts.items())
    lines.append(f"  {len(rows)} fixture(s): {summary}")
    return "\n".join(lines)


def write_schedule(fixtures: list[Fixture], output_dir: str = "output",
                   title: str = "",
                   settings: LeagueSettings = DEFAULT_SETTINGS) -> list[Path]:
    """Write schedule.txt and fixtures.csv into output_dir."""
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    schedule_path = out_dir / "schedule.txt"
    schedule_path.write_text(format_schedule(fixtures, title=title, settings=settings))
    print(f"Written: {schedule_path}")

    csv_path = out_dir / "fixtures.csv"
    csv_path.write_text(format_fixtures_csv(fixtures, settings=settings))
    print(f"Written: {csv_path}")

    return [schedule_path, csv_path]
