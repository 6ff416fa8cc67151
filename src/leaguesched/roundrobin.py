"""Double round-robin pairing generation for the league scheduler."""

from collections import defaultdict
from typing import Any, Sequence

from leaguesched.errors import ValidationError
from leaguesched.models import Matchup, Round

BYE = "__BYE__"

# Five-team first half, indexed by draft order. Round 1 puts the top two
# seeds against each other; the fifth seed sits out. The circle method
# cannot produce this ordering, so it is spelled out.
FIVE_TEAM_TABLE = (
    ((0, 1), (2, 3)),
    ((4, 0), (1, 2)),
    ((1, 3), (2, 4)),
    ((0, 2), (3, 4)),
    ((0, 3), (1, 4)),
)


def generate_schedule(teams: Sequence[Any]) -> list[Round]:
    """Generate a double round-robin from teams listed in draft order.

    The first half is a single round-robin; the second half repeats every
    round with home and away swapped, so each pair meets twice, once at
    each end. Even N gives 2*(N-1) rounds, odd N gives 2*N; every round
    holds N//2 games.

    Deterministic: the same draft order always yields the same rounds.
    """
    n = len(teams)
    if n < 2:
        raise ValidationError(f"Need at least 2 teams to build a schedule, got {n}")
    for i, t1 in enumerate(teams):
        for t2 in teams[i + 1:]:
            if t1 == t2:
                raise ValidationError(f"Team {t1!r} is listed twice")

    if n == 5:
        first_half = _five_team_rounds(teams)
    else:
        first_half = _circle_rounds(teams)

    second_half = []
    for rnd in first_half:
        second_half.append(Round(
            number=len(first_half) + rnd.number,
            matchups=[m.reversed() for m in rnd.matchups],
            bye_teams=list(rnd.bye_teams),
        ))
    return first_half + second_half


def _five_team_rounds(teams: Sequence[Any]) -> list[Round]:
    rounds = []
    for r, pairs in enumerate(FIVE_TEAM_TABLE):
        matchups = [Matchup(teams[h], teams[a]) for h, a in pairs]
        playing = {i for pair in pairs for i in pair}
        rounds.append(Round(
            number=r + 1,
            matchups=matchups,
            bye_teams=[teams[i] for i in range(5) if i not in playing],
        ))
    return rounds


def _circle_rounds(teams: Sequence[Any]) -> list[Round]:
    """Single round-robin by the circle method.

    Position 0 stays fixed while the rest rotate; position i meets
    position n-1-i. Odd team counts get a bye placeholder.
    """
    order = list(teams)
    if len(order) % 2 == 1:
        order.append(BYE)
    n = len(order)

    rounds = []
    for r in range(n - 1):
        matchups = []
        bye_teams = []
        for i in range(n // 2):
            home = order[i]
            away = order[n - 1 - i]
            if _is_bye(home):
                bye_teams.append(away)
            elif _is_bye(away):
                bye_teams.append(home)
            else:
                matchups.append(Matchup(home, away))

        rounds.append(Round(number=r + 1, matchups=matchups, bye_teams=bye_teams))

        # Rotate: keep position 0 fixed, shift others
        order = [order[0]] + [order[-1]] + order[1:-1]

    return rounds


def _is_bye(team: Any) -> bool:
    return isinstance(team, str) and team == BYE


def verify_double_round_robin(rounds: list[Round], teams: Sequence[Any]) -> dict:
    """Verify a double round-robin is complete and well formed.

    Teams must be hashable identifiers. Returns dict with:
    - valid: bool
    - errors: list of error strings
    - pair_counts: dict of (home, away) -> count
    - games_per_team: dict of team -> game count
    - home_games: dict of team -> home game count
    """
    errors = []
    pair_counts: dict[tuple, int] = defaultdict(int)
    games_per_team: dict[Any, int] = {t: 0 for t in teams}
    home_games: dict[Any, int] = {t: 0 for t in teams}

    for rnd in rounds:
        teams_in_round = set()
        for m in rnd.matchups:
            if m.home == m.away:
                errors.append(f"Round {rnd.number}: {m.home} plays itself")
            for t in (m.home, m.away):
                if t in teams_in_round:
                    errors.append(f"Round {rnd.number}: {t} appears twice")
                teams_in_round.add(t)
                games_per_team[t] = games_per_team.get(t, 0) + 1
            home_games[m.home] = home_games.get(m.home, 0) + 1
            pair_counts[(m.home, m.away)] += 1

    # Every ordered pair exactly once: each pair twice, once at each end
    for i, t1 in enumerate(teams):
        for t2 in teams[i + 1:]:
            for home, away in ((t1, t2), (t2, t1)):
                count = pair_counts.get((home, away), 0)
                if count != 1:
                    errors.append(
                        f"{home} hosting {away}: {count} times (expected 1)"
                    )

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "pair_counts": dict(pair_counts),
        "games_per_team": games_per_team,
        "home_games": home_games,
    }
