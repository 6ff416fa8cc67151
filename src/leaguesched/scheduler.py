"""Auto-scheduler: lay a double round-robin onto the season's game days.

Two phases:
1. Plan — generate rounds from the draft order and pin round k to game
   day 2k, leaving game day 2k+1 free as a rest slot. Pure; raises
   InsufficientSlots before anything is written.
2. Replace — hand the planned set to the store, which swaps out the
   season's fixtures in a single transaction.
"""

import logging
from datetime import date
from typing import Optional, Sequence

from leaguesched.dates import kickoff_for
from leaguesched.errors import InsufficientSlots
from leaguesched.gamedays import get_season_game_days
from leaguesched.models import (
    DEFAULT_SETTINGS, Fixture, LeagueSettings, Round, Team,
)
from leaguesched.roundrobin import generate_schedule
from leaguesched.store import FixtureStore

logger = logging.getLogger(__name__)


def required_slots(num_rounds: int) -> int:
    """Game days needed for num_rounds rounds with a rest slot between each.

    The last round needs no trailing rest slot.
    """
    return max(0, 2 * num_rounds - 1)


def draft_order(teams: Sequence[Team]) -> list[Team]:
    """Teams by draft position; unranked teams go last, by name."""
    return sorted(
        teams,
        key=lambda t: (t.draft_position is None, t.draft_position or 0, t.name),
    )


def plan_fixtures(rounds: list[Round], game_days: Sequence[date], season_id: str,
                  settings: LeagueSettings = DEFAULT_SETTINGS,
                  venue: Optional[str] = None,
                  team_names: Optional[dict[str, str]] = None) -> list[Fixture]:
    """Turn rounds of team ids into fixtures, one round every other game day.

    Round k (0-based) is played on game_days[2k] as matchweek k+1.
    """
    needed = required_slots(len(rounds))
    if len(game_days) < needed:
        logger.warning("Only %d game days for %d rounds (need %d)",
                       len(game_days), len(rounds), needed)
        raise InsufficientSlots(needed, len(game_days))

    names = team_names or {}
    fixtures = []
    for k, rnd in enumerate(rounds):
        kickoff = kickoff_for(game_days[2 * k], settings)
        for m in rnd.matchups:
            fixtures.append(Fixture(
                season_id=season_id,
                home_team_id=m.home,
                away_team_id=m.away,
                kickoff=kickoff,
                venue=venue or settings.venue,
                matchweek=k + 1,
                home_team_name=names.get(m.home, ""),
                away_team_name=names.get(m.away, ""),
            ))
    logger.info("Planned %d fixtures over %d matchweeks", len(fixtures), len(rounds))
    return fixtures


def auto_schedule(store: FixtureStore, season_id: str,
                  settings: LeagueSettings = DEFAULT_SETTINGS,
                  venue: Optional[str] = None) -> list[Fixture]:
    """Regenerate the whole fixture list for a season.

    Destroys every existing fixture of the season, completed ones
    included. Nothing is touched if the season has too few game days or
    if the store rejects the batch.
    """
    season = store.get_season(season_id)
    teams = draft_order(store.list_teams(season_id))
    holidays = store.list_holidays(season_id)

    rounds = generate_schedule([t.id for t in teams])
    game_days = get_season_game_days(season, holidays, settings)
    fixtures = plan_fixtures(
        rounds, game_days, season_id, settings=settings, venue=venue,
        team_names={t.id: t.name for t in teams},
    )

    created = store.replace_all_fixtures(season_id, fixtures)
    logger.info("Season %s: replaced fixture set, %d fixtures created",
                season.name, created)
    return store.list_fixtures(season_id)
