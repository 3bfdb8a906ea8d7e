"""Expected-points projection and fixture helpers.

The projection is a deliberately simple heuristic:

    xPts = form * (fixture_ease / 3) * minutes_probability * playing_chance

where ``fixture_ease`` is ``6 - average difficulty`` over the next five
fixtures (3.0 is neutral), ``minutes_probability`` is the share of the
available minutes a player has actually played, and ``playing_chance`` comes
from the flagged chance of playing next round.
"""

import math

from fpl_advisor.models import (
    POSITION_LABELS,
    Fixture,
    FixtureInfo,
    Gameweek,
    Player,
    Team,
)

UPCOMING_FIXTURE_COUNT = 5
NEUTRAL_FIXTURE_EASE = 3.0
MINUTES_PER_MATCH = 90

UNAVAILABLE_STATUSES = {"u", "i", "s"}
INJURED_OR_SUSPENDED = {"i", "s"}

UNKNOWN_TEAM = "—"


def round_half_up(value: float, ndigits: int = 1) -> float:
    """Round with ties going up (0.25 -> 0.3, -0.25 -> -0.2), unlike round()."""
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def _team_lookup(teams: list[Team]) -> dict[int, Team]:
    return {t.id: t for t in teams}


def get_team_short(teams: list[Team], team_id: int) -> str:
    for t in teams:
        if t.id == team_id:
            return t.short_name
    return UNKNOWN_TEAM


def get_position_label(element_type: int) -> str:
    if 0 <= element_type < len(POSITION_LABELS):
        return POSITION_LABELS[element_type]
    return ""


def get_current_gameweek(gameweeks: list[Gameweek]) -> int:
    """Return the current gameweek id, else the next one, else 1."""
    for gw in gameweeks:
        if gw.is_current:
            return gw.id
    for gw in gameweeks:
        if gw.is_next:
            return gw.id
    return 1


def is_player_available(player: Player) -> bool:
    return player.status not in UNAVAILABLE_STATUSES


def points_per_million(player: Player) -> float:
    if player.now_cost == 0:
        return 0.0
    return player.total_points / (player.now_cost / 10)


def get_upcoming_fixtures(
    fixtures: list[Fixture],
    teams: list[Team],
    team_id: int,
    current_gw: int,
    count: int = UPCOMING_FIXTURE_COUNT,
) -> list[FixtureInfo]:
    """Next ``count`` unfinished, scheduled fixtures for a team, by gameweek.

    Difficulty is taken from the team's own side of the fixture. Fixtures in
    the same gameweek keep their input order.
    """
    upcoming = [
        f for f in fixtures
        if not f.finished
        and f.event is not None
        and f.event >= current_gw
        and team_id in (f.team_h, f.team_a)
    ]
    upcoming.sort(key=lambda f: f.event)

    team_map = _team_lookup(teams)
    result = []
    for f in upcoming[:count]:
        is_home = f.team_h == team_id
        opponent = team_map.get(f.team_a if is_home else f.team_h)
        result.append(FixtureInfo(
            opponent=opponent.short_name if opponent else UNKNOWN_TEAM,
            difficulty=f.team_h_difficulty if is_home else f.team_a_difficulty,
            is_home=is_home,
            gw=f.event,
        ))
    return result


def fixture_difficulty_score(
    fixtures: list[Fixture],
    teams: list[Team],
    team_id: int,
    current_gw: int,
) -> float:
    """Fixture ease on a 1-5 scale: ``6 - average difficulty``, higher is easier."""
    upcoming = get_upcoming_fixtures(fixtures, teams, team_id, current_gw, UPCOMING_FIXTURE_COUNT)
    if not upcoming:
        return NEUTRAL_FIXTURE_EASE
    avg = sum(f.difficulty for f in upcoming) / len(upcoming)
    return 6 - avg


def minutes_probability(player: Player, current_gw: int) -> float:
    if player.minutes <= 0:
        return 0.0
    return min(player.minutes / (current_gw * MINUTES_PER_MATCH), 1.0)


def playing_chance(player: Player) -> float:
    """Probability of playing next round; unknown is treated as certain."""
    if player.status in INJURED_OR_SUSPENDED:
        return 0.0
    if player.chance_of_playing_next_round is None:
        return 1.0
    return player.chance_of_playing_next_round / 100


def expected_points(
    player: Player,
    fixtures: list[Fixture],
    teams: list[Team],
    current_gw: int,
) -> float:
    """Projected points for ``player`` from ``current_gw`` on, to one decimal."""
    ease = fixture_difficulty_score(fixtures, teams, player.team, current_gw)
    xpts = (
        player.form
        * (ease / NEUTRAL_FIXTURE_EASE)
        * minutes_probability(player, current_gw)
        * playing_chance(player)
    )
    return round_half_up(xpts, 1)


def status_badge(player: Player) -> tuple[str, str] | None:
    """Short availability label and severity class, or None when fit."""
    badges = {
        "i": ("INJ", "label-danger"),
        "s": ("SUS", "label-danger"),
        "d": ("DBT", "label-warning"),
        "n": ("N/A", "label-danger"),
    }
    if player.status in badges:
        return badges[player.status]
    chance = player.chance_of_playing_next_round
    if chance is not None and chance < 100:
        return f"{chance}%", "label-danger" if chance <= 50 else "label-warning"
    return None
