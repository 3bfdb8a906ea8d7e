"""Chip timing: score each chip for the current week and scan ahead for a better one.

Each chip gets a "now" score on a 0-100 scale (the strength of playing it
this week) and a best upcoming gameweek from a short lookahead scan that
rewards double gameweeks (a team plays twice) and blank gameweeks (fewer
than 10 matches).
"""

import logging
from collections import Counter

from fpl_advisor.models import (
    CHIP_NAMES,
    LAST_GAMEWEEK,
    ChipPlay,
    ChipRecommendation,
    Fixture,
    Player,
    SquadPick,
    Team,
)
from fpl_advisor.projection import (
    expected_points,
    fixture_difficulty_score,
    get_team_short,
    is_player_available,
    round_half_up,
)

logger = logging.getLogger(__name__)

DEFAULT_LOOKAHEAD = 5
FULL_GAMEWEEK_MATCHES = 10
WILDCARD_HALF_SPLIT = 19  # GW1-19 first wildcard, GW20-38 second

CHIP_LABELS = {
    "bboost": "Bench Boost",
    "3xc": "Triple Captain",
    "freehit": "Free Hit",
    "wildcard": "Wildcard",
}

# (strong, moderate) cut-offs for the "now" score
VERDICT_THRESHOLDS = {
    "bboost": (60, 35),
    "3xc": (60, 35),
    "freehit": (55, 30),
    "wildcard": (55, 30),
}


def _verdict(chip: str, score: int) -> str:
    strong, moderate = VERDICT_THRESHOLDS[chip]
    if score >= strong:
        return "strong"
    if score >= moderate:
        return "moderate"
    return "weak"


def _clamp_score(value: float) -> int:
    return min(100, int(round_half_up(value, 0)))


# ---------------------------------------------------------------------------
# ChipAdvisor
# ---------------------------------------------------------------------------

class ChipAdvisor:
    """Recommend when to play each chip for one manager's squad."""

    def __init__(
        self,
        players: list[Player],
        teams: list[Team],
        fixtures: list[Fixture],
        picks: list[SquadPick],
        chips_played: list[ChipPlay],
        current_gw: int,
        lookahead: int = DEFAULT_LOOKAHEAD,
    ):
        self.teams = teams
        self.fixtures = fixtures
        self.chips_played = chips_played
        self.current_gw = current_gw
        self.lookahead = lookahead

        player_map = {p.id: p for p in players}
        self.owned = [(pick, player_map[pick.element]) for pick in picks
                      if pick.element in player_map]
        self.starters = [p for pick, p in self.owned if pick.is_starter]
        self.bench = [p for pick, p in self.owned if not pick.is_starter]
        self.captain = next((p for pick, p in self.owned if pick.is_captain), None)

    def recommend(self) -> list[ChipRecommendation]:
        """One recommendation per chip, highest "now" score first."""
        scorers = {
            "bboost": self._bench_boost_now,
            "3xc": self._triple_captain_now,
            "freehit": self._free_hit_now,
            "wildcard": self._wildcard_now,
        }
        recommendations = [self._recommend(chip, scorers[chip]()) for chip in CHIP_NAMES]
        recommendations.sort(key=lambda r: -r.score)
        return recommendations

    # --- usage ----------------------------------------------------------------

    def is_used(self, chip: str) -> bool:
        """Whether the chip is spent. Wildcard counts only in the current half."""
        if chip == "wildcard":
            first_half = self.current_gw <= WILDCARD_HALF_SPLIT
            return any(
                c.name == "wildcard" and (c.event <= WILDCARD_HALF_SPLIT) == first_half
                for c in self.chips_played
            )
        return any(c.name == chip for c in self.chips_played)

    def _recommend(self, chip: str, score_now: int) -> ChipRecommendation:
        label = CHIP_LABELS[chip]
        score = _clamp_score(score_now)
        verdict = _verdict(chip, score)

        if self.is_used(chip):
            if chip == "wildcard":
                half = "first half" if self.current_gw <= WILDCARD_HALF_SPLIT else "second half"
                reason = f"Already used ({half} WC)"
            else:
                reason = "Already used this season"
            return ChipRecommendation(
                chip=chip, label=label, score=score, available=False,
                reason=reason, verdict=verdict, best_gw=None, best_gw_reason="",
            )

        best_gw, best_reason, _ = self.find_best_gameweek(chip)
        if best_gw is None:
            reason = f"No standout week in the next {self.lookahead} gameweeks"
        elif best_gw == self.current_gw:
            reason = f"This is the best upcoming week for {label} — {best_reason}"
        elif chip == "wildcard":
            reason = f"Save for later — {best_reason}"
        else:
            reason = f"Save for GW{best_gw} — {best_reason}"

        return ChipRecommendation(
            chip=chip, label=label, score=score, available=True,
            reason=reason, verdict=verdict, best_gw=best_gw, best_gw_reason=best_reason,
        )

    # --- current-week scores --------------------------------------------------

    def _xpts(self, player: Player, gw: int) -> float:
        return expected_points(player, self.fixtures, self.teams, gw)

    def _bench_boost_now(self) -> float:
        bench_xpts = sum(self._xpts(p, self.current_gw) for p in self.bench)
        bench_avail = sum(1 for p in self.bench if is_player_available(p))
        return bench_xpts * 8 * (bench_avail / 4)

    def _triple_captain_now(self) -> float:
        if self.captain is None:
            return 0.0
        return self._xpts(self.captain, self.current_gw) * 10

    def _free_hit_now(self) -> float:
        unavailable = sum(1 for _, p in self.owned if p.status in ("i", "s", "n", "u"))
        hard_fixtures = sum(
            1 for p in self.starters
            if fixture_difficulty_score(self.fixtures, self.teams, p.team, self.current_gw) < 2.5
        )
        return unavailable * 12 + hard_fixtures * 8

    def _wildcard_now(self) -> float:
        dropped = sum(1 for _, p in self.owned if p.cost_change_start < 0)
        low_form = sum(1 for p in self.starters if p.form < 3)
        return dropped * 8 + low_form * 7

    # --- lookahead scan -------------------------------------------------------

    def find_best_gameweek(self, chip: str) -> tuple[int | None, str, float]:
        """Scan ``current_gw .. current_gw + lookahead`` for the chip's best week.

        Returns (gameweek, reason, score). The earliest week wins ties and a
        week must score above zero to be chosen.
        """
        scorers = {
            "bboost": self._scan_bench_boost,
            "3xc": self._scan_triple_captain,
            "freehit": self._scan_free_hit,
            "wildcard": self._scan_wildcard,
        }
        scorer = scorers[chip]

        best_gw, best_reason, best_score = None, "", 0.0
        last_gw = min(self.current_gw + self.lookahead, LAST_GAMEWEEK)
        for gw in range(self.current_gw, last_gw + 1):
            gw_fixtures = [f for f in self.fixtures if f.event == gw]
            team_fixtures = Counter()
            for f in gw_fixtures:
                team_fixtures[f.team_h] += 1
                team_fixtures[f.team_a] += 1
            is_dgw = any(c >= 2 for c in team_fixtures.values())
            is_bgw = len(gw_fixtures) < FULL_GAMEWEEK_MATCHES

            score, reason = scorer(gw, gw_fixtures, team_fixtures, is_dgw, is_bgw)
            if score > best_score:
                best_gw, best_reason, best_score = gw, reason, score

        logger.debug("%s: best GW %s (score %.1f)", chip, best_gw, best_score)
        return best_gw, best_reason, best_score

    def _scan_bench_boost(self, gw, gw_fixtures, team_fixtures, is_dgw, is_bgw):
        bench_xpts = sum(self._xpts(p, gw) for p in self.bench)
        bench_avail = sum(1 for p in self.bench if is_player_available(p))
        score = bench_xpts * 8 * (1.8 if is_dgw else 1) * (bench_avail / 4)
        if is_dgw:
            return score, f"DGW{gw}: bench players could have double fixtures"
        return score, f"GW{gw}: bench xPts {bench_xpts:.1f}"

    def _scan_triple_captain(self, gw, gw_fixtures, team_fixtures, is_dgw, is_bgw):
        best, best_xpts = None, 0.0
        for p in self.starters:
            xpts = self._xpts(p, gw)
            if best is None or xpts > best_xpts:
                best, best_xpts = p, xpts
        if best is None:
            return 0.0, ""
        score = best_xpts * 10 * (2 if is_dgw else 1)
        team = get_team_short(self.teams, best.team)
        if is_dgw:
            return score, (f"DGW{gw}: {best.web_name} ({team}) with double fixtures, "
                           f"xPts {best_xpts:.1f}")
        return score, f"GW{gw}: {best.web_name} ({team}) xPts {best_xpts:.1f}"

    def _scan_free_hit(self, gw, gw_fixtures, team_fixtures, is_dgw, is_bgw):
        unavailable = sum(
            1 for _, p in self.owned
            if not is_player_available(p) or not team_fixtures.get(p.team)
        )
        score = unavailable * 12 + (50 if is_bgw else 0) + (30 if is_dgw else 0)
        if is_bgw:
            return score, f"BGW{gw}: only {len(gw_fixtures)} matches — many of your players blanking"
        if is_dgw:
            return score, f"DGW{gw}: restructure squad to target double fixtures"
        return score, f"GW{gw}: {unavailable} of your players unavailable/blanking"

    def _scan_wildcard(self, gw, gw_fixtures, team_fixtures, is_dgw, is_bgw):
        low_form = sum(1 for p in self.starters if p.form < 3)
        injured = sum(1 for _, p in self.owned if p.status in ("i", "s"))
        dropped = sum(1 for _, p in self.owned if p.cost_change_start < 0)
        score = low_form * 7 + injured * 10 + dropped * 5
        return score, f"GW{gw}: {low_form} in poor form, {injured} injured, {dropped} losing value"


def generate_chip_recommendations(
    players: list[Player],
    teams: list[Team],
    fixtures: list[Fixture],
    picks: list[SquadPick],
    chips_played: list[ChipPlay],
    current_gw: int,
    lookahead: int = DEFAULT_LOOKAHEAD,
) -> list[ChipRecommendation]:
    advisor = ChipAdvisor(players, teams, fixtures, picks, chips_played, current_gw, lookahead)
    return advisor.recommend()
