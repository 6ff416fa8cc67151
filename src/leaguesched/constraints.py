"""Constraint validation for a league fixture set.

Can validate either the store's fixtures or a re-imported CSV.
"""

from collections import defaultdict
from datetime import date
from typing import Iterable

from leaguesched.dates import back_to_back_window, fixture_date, is_game_day, weekday_of
from leaguesched.gamedays import build_holiday_set
from leaguesched.models import (
    DEFAULT_SETTINGS, Fixture, HolidayRange, LeagueSettings, Season,
)


def _name(fixture: Fixture, team_id: str) -> str:
    if team_id == fixture.home_team_id and fixture.home_team_name:
        return fixture.home_team_name
    if team_id == fixture.away_team_id and fixture.away_team_name:
        return fixture.away_team_name
    return team_id


def validate_fixtures(fixtures: list[Fixture], season: Season,
                      holidays: Iterable[HolidayRange] = (),
                      settings: LeagueSettings = DEFAULT_SETTINGS,
                      ) -> dict:
    """Validate a fixture set against the calendar and round-robin rules.

    Returns dict with:
    - valid: bool (True if no hard constraint violations)
    - errors: list of hard constraint violations
    - warnings: list of soft constraint issues
    """
    errors = []
    warnings = []

    holiday_set = build_holiday_set(holidays)
    names: dict[str, str] = {}
    home_counts: dict[str, int] = defaultdict(int)
    away_counts: dict[str, int] = defaultdict(int)
    team_dates: dict[str, list[date]] = defaultdict(list)
    pair_counts: dict[tuple[str, str], int] = defaultdict(int)
    matchweek_dates: dict[int, set[date]] = defaultdict(set)

    for f in fixtures:
        d = fixture_date(f.kickoff, settings)
        h = f.home_team_id
        a = f.away_team_id
        names[h] = _name(f, h)
        names[a] = _name(f, a)

        if h == a:
            errors.append(f"{f.label} on {d}: team plays itself")
            continue

        if not season.contains(d):
            errors.append(
                f"{f.label} on {d} is outside the season "
                f"({season.start_date} to {season.end_date})"
            )
        elif season.in_break(d):
            errors.append(f"{f.label} on {d} falls in the season break")
        if d in holiday_set:
            errors.append(f"{f.label} on {d} falls on a holiday")
        if not is_game_day(d, settings.game_days):
            errors.append(
                f"{f.label} on {d} is a {weekday_of(d).name}, "
                f"not a game day ({settings.game_days_label()})"
            )

        home_counts[h] += 1
        away_counts[a] += 1
        team_dates[h].append(d)
        team_dates[a].append(d)
        pair_counts[tuple(sorted((h, a)))] += 1
        matchweek_dates[f.matchweek].add(d)

    # No team plays twice on one date
    window = back_to_back_window(settings.game_days)
    for team, dates in sorted(team_dates.items(), key=lambda kv: names[kv[0]]):
        per_day: dict[date, int] = defaultdict(int)
        for d in dates:
            per_day[d] += 1
        for d, count in sorted(per_day.items()):
            if count > 1:
                errors.append(f"{names[team]} plays {count} fixtures on {d}")

        # Back-to-back: adjacent game weekdays with no rest slot
        ordered = sorted(per_day)
        for prev, nxt in zip(ordered, ordered[1:]):
            gap = (nxt - prev).days
            if gap <= window:
                warnings.append(
                    f"{names[team]} plays back-to-back on {prev} and {nxt} "
                    f"({gap} days apart)"
                )

    for mw in sorted(matchweek_dates):
        dates = matchweek_dates[mw]
        if len(dates) > 1:
            spread = ", ".join(str(d) for d in sorted(dates))
            errors.append(f"Matchweek {mw} is spread over several dates: {spread}")

    # Double round-robin: each pair meets twice
    teams = sorted(names, key=lambda t: names[t])
    for i, t1 in enumerate(teams):
        for t2 in teams[i + 1:]:
            count = pair_counts.get(tuple(sorted((t1, t2))), 0)
            if count != 2:
                warnings.append(
                    f"{names[t1]} vs {names[t2]} meet {count} times (expected 2)"
                )

    for t in teams:
        h = home_counts.get(t, 0)
        a = away_counts.get(t, 0)
        if abs(h - a) > 1:
            warnings.append(
                f"{names[t]} home/away imbalance: {h}H/{a}A (diff={h-a})"
            )

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
    }


def format_validation_report(result: dict) -> str:
    """Format validation results as text."""
    lines = []
    lines.append("=" * 60)
    lines.append("FIXTURE VALIDATION REPORT")
    lines.append("=" * 60)

    if result["valid"]:
        lines.append("\nRESULT: VALID (no hard constraint violations)")
    else:
        lines.append(f"\nRESULT: INVALID ({len(result['errors'])} violations)")

    if result["errors"]:
        lines.append(f"\n--- ERRORS ({len(result['errors'])}) ---")
        for e in result["errors"]:
            lines.append(f"  ERROR: {e}")

    if result["warnings"]:
        lines.append(f"\n--- WARNINGS ({len(result['warnings'])}) ---")
        for w in result["warnings"]:
            lines.append(f"  WARN: {w}")

    return "\n".join(lines)
