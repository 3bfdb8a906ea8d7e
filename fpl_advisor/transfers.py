"""Transfer suggestions for a manager's current squad.

Sell candidates are starters who are unavailable (urgent) or doubtful / out
of form against a hard run of fixtures (weak). Each gets the single best
affordable same-position replacement; the list is then ranked and hit costs
are charged for every transfer beyond the free ones.
"""

import logging
import math
from collections import Counter

from fpl_advisor.models import (
    MAX_PER_TEAM,
    Fixture,
    Gameweek,
    Player,
    SquadPick,
    Team,
    TransferSuggestion,
)
from fpl_advisor.projection import (
    expected_points,
    fixture_difficulty_score,
    get_current_gameweek,
    is_player_available,
    round_half_up,
)

logger = logging.getLogger(__name__)

HIT_COST = 4
MIN_FREE_TRANSFERS = 1
MAX_FREE_TRANSFERS = 5

URGENT_STATUSES = {"i", "s", "n", "u"}
POOR_FORM = 2.5
HARD_FIXTURE_EASE = 2.5
MIN_GAIN = 0.5  # non-urgent moves must beat this xPts gain


def estimate_selling_price(player: Player) -> int:
    """Selling price in tenths: purchase price plus half the rise, rounded down.

    The season's price change stands in for the rise since purchase. Drops
    are passed on in full.
    """
    rise = player.cost_change_start
    if rise <= 0:
        return player.now_cost
    return (player.now_cost - rise) + math.floor(rise / 2)


def buy_score(player: Player, fixtures: list[Fixture], teams: list[Team], gw: int) -> float:
    """Rank replacements by projection, form, fixtures and points per million."""
    ease = fixture_difficulty_score(fixtures, teams, player.team, gw)
    xpts = expected_points(player, fixtures, teams, gw)
    value_ratio = player.total_points / max(player.now_cost / 10, 1)
    return xpts * 12 + player.form * 4 + ease * 3 + value_ratio * 2


def _transfer_reason(
    out: Player,
    inn: Player,
    xpts_gain: float,
    fixtures: list[Fixture],
    teams: list[Team],
    gw: int,
) -> str:
    reasons = []
    if out.status == "i":
        reasons.append(f"{out.web_name} injured")
    elif out.status == "s":
        reasons.append(f"{out.web_name} suspended")
    elif out.status in ("n", "u"):
        reasons.append(f"{out.web_name} unavailable")
    elif out.status == "d":
        chance = out.chance_of_playing_next_round
        reasons.append(f"{out.web_name} doubtful ({'?' if chance is None else chance}%)")

    if inn.form > out.form + 1:
        reasons.append(f"better form ({inn.form:.1f} vs {out.form:.1f})")

    out_ease = fixture_difficulty_score(fixtures, teams, out.team, gw)
    in_ease = fixture_difficulty_score(fixtures, teams, inn.team, gw)
    if in_ease > out_ease + 0.5:
        reasons.append("easier fixtures")

    reasons.append(f"+{xpts_gain:.1f} xPts")
    return ", ".join(reasons)


def _is_weak_starter(player: Player, fixtures, teams, current_gw) -> bool:
    if player.status == "d":
        return True
    if player.form >= POOR_FORM:
        return False
    return fixture_difficulty_score(fixtures, teams, player.team, current_gw) < HARD_FIXTURE_EASE


def generate_transfer_suggestions(
    players: list[Player],
    teams: list[Team],
    fixtures: list[Fixture],
    gameweeks: list[Gameweek],
    picks: list[SquadPick],
    bank: int,
    free_transfers: int = 1,
) -> list[TransferSuggestion]:
    """Suggest at most one replacement per problem starter.

    ``bank`` is in tenths. An empty list means no transfer is needed.
    """
    current_gw = get_current_gameweek(gameweeks)
    player_map = {p.id: p for p in players}

    owned_ids = {pick.element for pick in picks}
    owned = [(pick, player_map[pick.element]) for pick in picks if pick.element in player_map]
    team_counts = Counter(player.team for _, player in owned)

    urgent = [player for pick, player in owned
              if pick.is_starter and player.status in URGENT_STATUSES]
    urgent_ids = {p.id for p in urgent}
    weak = [
        player for pick, player in owned
        if pick.is_starter
        and not pick.is_captain
        and player.id not in urgent_ids
        and _is_weak_starter(player, fixtures, teams, current_gw)
    ]

    candidates = urgent + weak
    if not candidates:
        return []

    suggestions = []
    for out in candidates:
        sell_price = estimate_selling_price(out)
        budget = bank + sell_price
        is_urgent = out.id in urgent_ids

        best, best_score = None, None
        for p in players:
            if (p.element_type != out.element_type
                    or p.id in owned_ids
                    or not is_player_available(p)
                    or p.minutes <= 0
                    or p.now_cost > budget):
                continue
            if team_counts[p.team] >= MAX_PER_TEAM and p.team != out.team:
                continue
            score = buy_score(p, fixtures, teams, current_gw)
            if best is None or score > best_score:
                best, best_score = p, score

        if best is None:
            logger.debug("No affordable replacement for %s (budget %d)", out.web_name, budget)
            continue

        gain = (expected_points(best, fixtures, teams, current_gw)
                - expected_points(out, fixtures, teams, current_gw))
        if not is_urgent and gain <= MIN_GAIN:
            continue

        suggestions.append(TransferSuggestion(
            player_out=out,
            player_in=best,
            xpts_gain=round_half_up(gain, 1),
            cost_delta=best.now_cost - sell_price,
            reason=_transfer_reason(out, best, gain, fixtures, teams, current_gw),
            priority="urgent" if is_urgent else "recommended",
        ))

    suggestions.sort(key=lambda s: (s.priority != "urgent", -s.xpts_gain))

    seen = set()
    deduped = []
    for s in suggestions:
        if s.player_in.id in seen:
            continue
        seen.add(s.player_in.id)
        deduped.append(s)

    result = []
    for i, s in enumerate(deduped):
        hit_cost = 0 if i < free_transfers else HIT_COST
        net_gain = s.xpts_gain - hit_cost
        # Hits are only worth taking to replace an unavailable starter
        if hit_cost > 0 and (s.priority != "urgent" or net_gain < 0):
            continue
        result.append(s.model_copy(update={
            "hit_cost": hit_cost,
            "net_gain": round_half_up(net_gain, 1),
        }))
    return result


def calculate_free_transfers(history: dict) -> int:
    """Free transfers available for the next gameweek.

    Replays history["current"] (one entry per gameweek played): a wildcard
    or free-hit week resets the count to 1, any other week deducts the
    transfers made and adds one, kept within 1-5.
    """
    chip_events = {
        c.get("event") for c in history.get("chips", [])
        if c.get("name") in ("wildcard", "freehit")
    }

    ft = MIN_FREE_TRANSFERS
    for gw_entry in history.get("current", []):
        if gw_entry.get("event") in chip_events:
            ft = MIN_FREE_TRANSFERS
            continue
        used = gw_entry.get("event_transfers") or 0
        ft = min(MAX_FREE_TRANSFERS, max(MIN_FREE_TRANSFERS, ft - used + 1))
    return ft
