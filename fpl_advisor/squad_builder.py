"""Heuristic 15-man squad construction.

Greedy seed with the cheapest legal squad, then hill-climb: on each pass make
the single same-position swap with the largest score gain that still fits
the budget and the three-per-club cap. Stops when nothing improves or after
MAX_ITERATIONS passes. This is not an exact optimiser.
"""

import logging
from collections import Counter

import pandas as pd

from fpl_advisor.models import (
    MAX_PER_TEAM,
    SQUAD_QUOTAS,
    SQUAD_SIZE,
    Fixture,
    Player,
    ScoredPlayer,
    SquadBuildResult,
    Team,
)
from fpl_advisor.projection import (
    expected_points,
    fixture_difficulty_score,
    get_team_short,
    get_upcoming_fixtures,
    is_player_available,
)

logger = logging.getLogger(__name__)

FORMATIONS = {
    "3-4-3": {"def": 3, "mid": 4, "fwd": 3},
    "3-5-2": {"def": 3, "mid": 5, "fwd": 2},
    "4-3-3": {"def": 4, "mid": 3, "fwd": 3},
    "4-4-2": {"def": 4, "mid": 4, "fwd": 2},
    "4-5-1": {"def": 4, "mid": 5, "fwd": 1},
    "5-3-2": {"def": 5, "mid": 3, "fwd": 2},
    "5-4-1": {"def": 5, "mid": 4, "fwd": 1},
}
STRATEGIES = ("balanced", "attack", "defense", "form", "xPts")
BUILDER_CONTEXTS = ("regular", "wildcard", "freehit")

FULL_BUDGET = 100.0
MIN_BUDGET = 63.0  # cheapest legal squad is roughly this
MAX_ITERATIONS = 200
UNKNOWN_DOUBT_CHANCE = 50


def effective_budget(budget: float, builder_context: str) -> float:
    """Budget in millions: a fresh squad gets 100, chip rebuilds are clamped to [63, 100]."""
    if builder_context == "regular":
        return FULL_BUDGET
    return min(FULL_BUDGET, max(MIN_BUDGET, budget))


def strategy_score(player: Player, strategy: str, fixture_ease: float, xpts: float) -> float:
    """Score one player under a strategy. Doubtful players are scaled by their chance."""
    if strategy == "attack":
        if player.element_type >= 3:
            score = (player.total_points * 1.3 + player.goals_scored * 5
                     + player.assists * 3 + fixture_ease * 5)
        else:
            score = player.total_points + fixture_ease * 3
    elif strategy == "defense":
        if player.element_type <= 2:
            score = player.total_points * 1.3 + player.clean_sheets * 4 + fixture_ease * 5
        else:
            score = player.total_points + fixture_ease * 3
    elif strategy == "form":
        score = player.form * 20 + player.total_points * 0.5 + fixture_ease * 5
    elif strategy == "xPts":
        score = xpts * 15 + player.form * 5 + fixture_ease * 8
    else:
        score = player.total_points + player.form * 5 + fixture_ease * 5

    if player.status == "d":
        chance = player.chance_of_playing_next_round
        score *= (UNKNOWN_DOUBT_CHANCE if chance is None else chance) / 100
    return score


def score_players(
    players: list[Player],
    teams: list[Team],
    fixtures: list[Fixture],
    current_gw: int,
    strategy: str = "balanced",
) -> pd.DataFrame:
    """Score every available player who has played, keeping pool order.

    Row ``i`` of the frame refers to ``pool[i]`` stored in the ``player``
    column.
    """
    rows = []
    for p in players:
        if not is_player_available(p) or p.minutes <= 0:
            continue
        ease = fixture_difficulty_score(fixtures, teams, p.team, current_gw)
        xpts = expected_points(p, fixtures, teams, current_gw)
        rows.append({
            "id": p.id,
            "element_type": p.element_type,
            "team": p.team,
            "now_cost": p.now_cost,
            "total_points": p.total_points,
            "xpts": xpts,
            "score": strategy_score(p, strategy, ease, xpts),
            "player": p,
        })
    columns = ["id", "element_type", "team", "now_cost", "total_points", "xpts", "score", "player"]
    return pd.DataFrame(rows, columns=columns)


def _seed_squad(scored: pd.DataFrame) -> tuple[list[int], Counter]:
    """Cheapest legal players per position, three per club at most."""
    squad: list[int] = []
    team_counts: Counter = Counter()
    for pos, needed in SQUAD_QUOTAS.items():
        pos_df = scored[scored["element_type"] == pos].sort_values("now_cost", kind="stable")
        for idx, row in pos_df.iterrows():
            if needed <= 0:
                break
            if team_counts[row["team"]] >= MAX_PER_TEAM:
                continue
            squad.append(idx)
            team_counts[row["team"]] += 1
            needed -= 1
    return squad, team_counts


def _improve_squad(
    scored: pd.DataFrame,
    squad: list[int],
    team_counts: Counter,
    budget_tenths: float,
) -> int:
    """Hill-climb in place. Returns the number of swaps made."""
    swaps = 0
    for _ in range(MAX_ITERATIONS):
        headroom = budget_tenths - scored.loc[squad, "now_cost"].sum()
        if headroom < 0:
            break

        in_squad = scored.index.isin(squad)
        full_teams = [t for t, c in team_counts.items() if c >= MAX_PER_TEAM]
        best_gain, best_slot, best_idx = 0.0, None, None

        for slot, idx in enumerate(squad):
            current = scored.loc[idx]
            mask = (
                (scored["element_type"] == current["element_type"])
                & (scored["score"] > current["score"])
                & (scored["now_cost"] <= current["now_cost"] + headroom)
                & ~in_squad
                & (~scored["team"].isin(full_teams) | (scored["team"] == current["team"]))
            )
            candidates = scored.loc[mask, "score"]
            if candidates.empty:
                continue
            top = candidates.idxmax()
            gain = candidates[top] - current["score"]
            if gain > best_gain:
                best_gain, best_slot, best_idx = gain, slot, top

        if best_slot is None:
            break
        old_team = scored.at[squad[best_slot], "team"]
        team_counts[old_team] = max(0, team_counts[old_team] - 1)
        team_counts[scored.at[best_idx, "team"]] += 1
        squad[best_slot] = best_idx
        swaps += 1
    return swaps


def _fill_gaps(scored: pd.DataFrame, squad: list[int]) -> None:
    """Top up any position short of its quota with the cheapest remaining players."""
    for pos, quota in SQUAD_QUOTAS.items():
        needed = quota - int((scored.loc[squad, "element_type"] == pos).sum())
        if needed <= 0:
            continue
        fillers = scored[(scored["element_type"] == pos) & ~scored.index.isin(squad)]
        fillers = fillers.sort_values("now_cost", kind="stable")
        squad.extend(fillers.index[:needed])


def _split_starting_xi(scored: pd.DataFrame, squad: list[int], formation: str) -> tuple[list[int], list[int]]:
    shape = FORMATIONS[formation]
    xi_counts = {1: 1, 2: shape["def"], 3: shape["mid"], 4: shape["fwd"]}
    squad_df = scored.loc[squad]

    xi, bench = [], []
    for pos in (1, 2, 3, 4):
        pos_df = squad_df[squad_df["element_type"] == pos].sort_values(
            "score", ascending=False, kind="stable",
        )
        xi.extend(pos_df.index[:xi_counts[pos]])
        bench.extend(pos_df.index[xi_counts[pos]:])

    # Bench: outfield by descending score, goalkeeper last
    bench.sort(key=lambda i: (scored.at[i, "element_type"] == 1, -scored.at[i, "score"]))
    return xi, bench


def build_squad(
    players: list[Player],
    teams: list[Team],
    fixtures: list[Fixture],
    current_gw: int,
    budget: float = FULL_BUDGET,
    strategy: str = "balanced",
    formation: str = "4-4-2",
    builder_context: str = "regular",
) -> SquadBuildResult:
    """Build a 15-man squad for the given strategy and formation.

    ``budget`` is in millions. Returns a partial squad if the pool runs out.
    """
    if formation not in FORMATIONS:
        raise ValueError(f"Unknown formation {formation!r}; expected one of {', '.join(FORMATIONS)}")
    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown strategy {strategy!r}; expected one of {', '.join(STRATEGIES)}")
    if builder_context not in BUILDER_CONTEXTS:
        raise ValueError(f"Unknown builder context {builder_context!r}")

    budget_tenths = effective_budget(budget, builder_context) * 10
    scored = score_players(players, teams, fixtures, current_gw, strategy)

    squad, team_counts = _seed_squad(scored)
    swaps = _improve_squad(scored, squad, team_counts, budget_tenths)
    _fill_gaps(scored, squad)
    xi, bench = _split_starting_xi(scored, squad, formation)

    logger.info(
        "Built %d-man squad (%s, %s, %s): %d swaps, cost %d / %d",
        len(squad), strategy, formation, builder_context, swaps,
        int(scored.loc[squad, "now_cost"].sum()), int(budget_tenths),
    )

    def to_scored(idx) -> ScoredPlayer:
        row = scored.loc[idx]
        p = row["player"]
        return ScoredPlayer(
            **p.model_dump(),
            score=float(row["score"]),
            xpts=float(row["xpts"]),
            team_name=get_team_short(teams, p.team),
            upcoming_fixtures=get_upcoming_fixtures(fixtures, teams, p.team, current_gw),
        )

    return SquadBuildResult(
        starting_xi=[to_scored(i) for i in xi],
        bench=[to_scored(i) for i in bench],
        total_cost=int(scored.loc[squad, "now_cost"].sum()),
        total_points=int(scored.loc[squad, "total_points"].sum()),
    )


def squad_quota_problems(result: SquadBuildResult) -> list[str]:
    """Describe any way the squad breaks the position quotas or club cap."""
    problems = []
    players = result.players
    if len(players) != SQUAD_SIZE:
        problems.append(f"squad has {len(players)} players, expected {SQUAD_SIZE}")
    positions = Counter(p.element_type for p in players)
    for pos, quota in SQUAD_QUOTAS.items():
        if positions[pos] != quota:
            problems.append(f"position {pos} has {positions[pos]} players, expected {quota}")
    for team, count in Counter(p.team for p in players).items():
        if count > MAX_PER_TEAM:
            problems.append(f"team {team} has {count} players, max {MAX_PER_TEAM}")
    return problems
