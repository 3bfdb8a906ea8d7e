"""Tests for fpl_advisor/chips.py — chip scores, timing and usage."""

import pytest

from fpl_advisor.chips import ChipAdvisor, _verdict, generate_chip_recommendations
from fpl_advisor.models import CHIP_NAMES, ChipPlay

from conftest import make_fixture, make_pick, make_player


def _squad(per_player=None):
    """15 players, one per team. 1-11 start (form 5.0), 12-15 bench (form 2.0).

    ``per_player`` maps player id -> overrides.
    """
    per_player = per_player or {}
    players, picks = [], []
    for pid in range(1, 16):
        data = {
            "id": pid,
            "web_name": f"P{pid}",
            "team": pid,
            "form": "5.0" if pid <= 11 else "2.0",
            "minutes": 900,
            "cost_change_start": 0,
            "chance_of_playing_next_round": None,
        }
        if pid == 1:
            data["form"] = "7.5"
        data.update(per_player.get(pid, {}))
        players.append(make_player(**data))
        picks.append(make_pick(pid, pid, is_captain=(pid == 1)))
    return players, picks


def _recommend(players, picks, fixtures, teams, chips_played=(), current_gw=10):
    recs = generate_chip_recommendations(
        players, teams, fixtures, picks, list(chips_played), current_gw,
    )
    return {r.chip: r for r in recs}, recs


class TestChipScores:
    def test_order_by_score(self, league_teams, league_fixtures):
        players, picks = _squad()
        _, recs = _recommend(players, picks, league_fixtures, league_teams)
        assert [r.chip for r in recs] == ["3xc", "bboost", "freehit", "wildcard"]
        assert [r.score for r in recs] == [75, 64, 0, 0]

    def test_one_recommendation_per_chip(self, league_teams, league_fixtures):
        players, picks = _squad()
        _, recs = _recommend(players, picks, league_fixtures, league_teams)
        assert sorted(r.chip for r in recs) == sorted(CHIP_NAMES)

    def test_triple_captain_uses_captain(self, league_teams, league_fixtures):
        players, picks = _squad()
        by_chip, _ = _recommend(players, picks, league_fixtures, league_teams)
        assert by_chip["3xc"].score == 75
        assert by_chip["3xc"].verdict == "strong"

    def test_triple_captain_without_captain(self, league_teams, league_fixtures):
        players, picks = _squad()
        picks = [p.model_copy(update={"is_captain": False}) for p in picks]
        by_chip, _ = _recommend(players, picks, league_fixtures, league_teams)
        assert by_chip["3xc"].score == 0
        assert by_chip["3xc"].verdict == "weak"

    def test_score_clamped_to_100(self, league_teams, league_fixtures):
        players, picks = _squad({1: {"form": "15.0"}})
        by_chip, _ = _recommend(players, picks, league_fixtures, league_teams)
        assert by_chip["3xc"].score == 100

    def test_bench_boost_with_unavailable_bench(self, league_teams, league_fixtures):
        players, picks = _squad({15: {"status": "i"}})
        by_chip, _ = _recommend(players, picks, league_fixtures, league_teams)
        # 3 x 2.0 xPts * 8 * 3/4
        assert by_chip["bboost"].score == 36
        assert by_chip["bboost"].verdict == "moderate"

    def test_free_hit_now_counts_unavailable_and_hard_fixtures(self, league_teams):
        fixtures = [make_fixture(id=1, event=10, team_h=2, team_a=3,
                                 team_h_difficulty=5, team_a_difficulty=3)]
        players, picks = _squad({4: {"status": "n"}, 5: {"status": "s"}})
        by_chip, _ = _recommend(players, picks, fixtures, league_teams)
        # 2 unavailable * 12 + 1 hard-fixture starter * 8
        assert by_chip["freehit"].score == 32
        assert by_chip["freehit"].verdict == "moderate"

    def test_wildcard_now(self, league_teams, league_fixtures):
        players, picks = _squad({
            2: {"form": "1.0", "cost_change_start": -2},
            3: {"form": "2.0"},
            13: {"cost_change_start": -1},
        })
        by_chip, _ = _recommend(players, picks, league_fixtures, league_teams)
        # 2 value losers * 8 + 2 poor-form starters * 7
        assert by_chip["wildcard"].score == 30


class TestVerdicts:
    @pytest.mark.parametrize("chip, score, verdict", [
        ("bboost", 60, "strong"), ("bboost", 35, "moderate"), ("bboost", 34, "weak"),
        ("3xc", 59, "moderate"),
        ("freehit", 55, "strong"), ("freehit", 30, "moderate"), ("freehit", 29, "weak"),
        ("wildcard", 54, "moderate"),
    ])
    def test_thresholds(self, chip, score, verdict):
        assert _verdict(chip, score) == verdict


class TestChipTiming:
    def test_bench_boost_best_now(self, league_teams, league_fixtures):
        players, picks = _squad()
        by_chip, _ = _recommend(players, picks, league_fixtures, league_teams)
        bb = by_chip["bboost"]
        assert bb.best_gw == 10
        assert bb.best_gw_reason == "GW10: bench xPts 8.0"
        assert bb.reason == "This is the best upcoming week for Bench Boost — GW10: bench xPts 8.0"

    def test_free_hit_targets_blank_gameweek(self, league_teams, league_fixtures):
        # league_fixtures covers GW10-14 only, so GW15 is blank
        players, picks = _squad()
        by_chip, _ = _recommend(players, picks, league_fixtures, league_teams)
        fh = by_chip["freehit"]
        assert fh.best_gw == 15
        assert fh.reason == "Save for GW15 — BGW15: only 0 matches — many of your players blanking"

    def test_triple_captain_targets_double_gameweek(self, league_teams, league_fixtures):
        fixtures = league_fixtures + [
            make_fixture(id=5000, event=12, team_h=1, team_a=20, team_h_difficulty=3, team_a_difficulty=3),
        ]
        players, picks = _squad()
        by_chip, _ = _recommend(players, picks, fixtures, league_teams)
        tc = by_chip["3xc"]
        assert tc.best_gw == 12
        assert tc.best_gw_reason.startswith("DGW12: P1 (T01) with double fixtures")
        assert tc.reason.startswith("Save for GW12 — DGW12:")

    def test_no_standout_week(self, league_teams, league_fixtures):
        players, picks = _squad()
        by_chip, _ = _recommend(players, picks, league_fixtures, league_teams)
        wc = by_chip["wildcard"]
        assert wc.best_gw is None
        assert wc.available is True
        assert wc.reason == "No standout week in the next 5 gameweeks"

    def test_wildcard_issues_best_now(self, league_teams, league_fixtures):
        players, picks = _squad({2: {"status": "i"}})
        by_chip, _ = _recommend(players, picks, league_fixtures, league_teams)
        wc = by_chip["wildcard"]
        assert wc.best_gw == 10
        assert wc.reason == ("This is the best upcoming week for Wildcard — "
                             "GW10: 0 in poor form, 1 injured, 0 losing value")

    def test_scan_stops_at_last_gameweek(self, league_teams):
        players, picks = _squad()
        advisor = ChipAdvisor(players, league_teams, [], picks, [], current_gw=36)
        gw, reason, _ = advisor.find_best_gameweek("freehit")
        assert gw == 36
        assert reason.startswith("BGW36:")


class TestChipUsage:
    def test_used_chip_unavailable(self, league_teams, league_fixtures):
        players, picks = _squad()
        played = [ChipPlay(name="bboost", event=3)]
        by_chip, _ = _recommend(players, picks, league_fixtures, league_teams, played)
        bb = by_chip["bboost"]
        assert bb.available is False
        assert bb.reason == "Already used this season"
        assert bb.best_gw is None
        assert bb.best_gw_reason == ""
        assert by_chip["3xc"].available is True

    def test_first_half_wildcard_used(self, league_teams, league_fixtures):
        players, picks = _squad()
        played = [ChipPlay(name="wildcard", event=5)]
        by_chip, _ = _recommend(players, picks, league_fixtures, league_teams, played)
        assert by_chip["wildcard"].available is False
        assert by_chip["wildcard"].reason == "Already used (first half WC)"

    def test_second_half_wildcard_resets(self, league_teams):
        players, picks = _squad()
        played = [ChipPlay(name="wildcard", event=5)]
        by_chip, _ = _recommend(players, picks, [], league_teams, played, current_gw=25)
        assert by_chip["wildcard"].available is True

    def test_second_half_wildcard_used(self, league_teams):
        players, picks = _squad()
        played = [ChipPlay(name="wildcard", event=5), ChipPlay(name="wildcard", event=22)]
        by_chip, _ = _recommend(players, picks, [], league_teams, played, current_gw=25)
        assert by_chip["wildcard"].available is False
        assert by_chip["wildcard"].reason == "Already used (second half WC)"

    def test_gameweek_19_is_first_half(self, league_teams):
        players, picks = _squad()
        played = [ChipPlay(name="wildcard", event=19)]
        by_chip, _ = _recommend(players, picks, [], league_teams, played, current_gw=19)
        assert by_chip["wildcard"].available is False
