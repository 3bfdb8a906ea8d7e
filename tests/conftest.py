"""Shared test fixtures for the FPL advisor test suite."""

import pytest

from fpl_advisor.models import Fixture, Gameweek, Player, SquadPick, Team


# ---------------------------------------------------------------------------
# Model factories (API-shaped defaults, override per test)
# ---------------------------------------------------------------------------

def make_player(**overrides) -> Player:
    data = {
        "id": 1,
        "web_name": "Salah",
        "first_name": "Mohamed",
        "second_name": "Salah",
        "team": 1,
        "element_type": 3,
        "now_cost": 130,
        "cost_change_start": 5,
        "total_points": 120,
        "form": "7.5",
        "selected_by_percent": "45.0",
        "minutes": 900,
        "goals_scored": 10,
        "assists": 5,
        "clean_sheets": 3,
        "bonus": 15,
        "chance_of_playing_next_round": 100,
        "status": "a",
        "news": "",
    }
    data.update(overrides)
    return Player.model_validate(data)


def make_team(**overrides) -> Team:
    data = {
        "id": 1,
        "code": 14,
        "name": "Liverpool",
        "short_name": "LIV",
        "strength": 5,
    }
    data.update(overrides)
    return Team.model_validate(data)


def make_fixture(**overrides) -> Fixture:
    data = {
        "id": 1,
        "event": 10,
        "finished": False,
        "started": False,
        "kickoff_time": "2025-11-01T15:00:00Z",
        "team_h": 1,
        "team_a": 2,
        "team_h_score": None,
        "team_a_score": None,
        "team_h_difficulty": 2,
        "team_a_difficulty": 4,
        "stats": [],
    }
    data.update(overrides)
    return Fixture.model_validate(data)


def make_gameweek(**overrides) -> Gameweek:
    data = {
        "id": 10,
        "name": "Gameweek 10",
        "deadline_time": "2025-11-01T11:00:00Z",
        "finished": False,
        "is_current": True,
        "is_next": False,
    }
    data.update(overrides)
    return Gameweek.model_validate(data)


def make_pick(element: int, position: int, **overrides) -> SquadPick:
    data = {
        "element": element,
        "position": position,
        "multiplier": 1,
        "is_captain": False,
        "is_vice_captain": False,
    }
    data.update(overrides)
    return SquadPick.model_validate(data)


_TEAM_NAMES = [
    ("Liverpool", "LIV"), ("Arsenal", "ARS"), ("Man City", "MCI"),
    ("Chelsea", "CHE"), ("Man Utd", "MUN"), ("Tottenham", "TOT"),
    ("Newcastle", "NEW"), ("Aston Villa", "AVL"), ("Brighton", "BHA"),
    ("West Ham", "WHU"),
]


def make_teams(count: int = 4) -> list[Team]:
    return [
        make_team(id=i + 1, code=i + 10, name=_TEAM_NAMES[i][0], short_name=_TEAM_NAMES[i][1])
        for i in range(count)
    ]


def make_upcoming_fixtures(team_id: int, current_gw: int, count: int, difficulty: int = 3) -> list[Fixture]:
    """One home fixture per gameweek from current_gw against team_id + 1."""
    return [
        make_fixture(
            id=100 + i,
            event=current_gw + i,
            team_h=team_id,
            team_a=team_id + 1,
            team_h_difficulty=difficulty,
            team_a_difficulty=5 - difficulty + 1,
        )
        for i in range(count)
    ]


def make_full_gameweek(gw: int, team_ids: list[int], first_id: int = 1000) -> list[Fixture]:
    """Pair teams off into matches (10 matches for 20 teams)."""
    return [
        make_fixture(id=first_id + i, event=gw, team_h=team_ids[2 * i],
                     team_a=team_ids[2 * i + 1], team_h_difficulty=3, team_a_difficulty=3)
        for i in range(len(team_ids) // 2)
    ]


# ---------------------------------------------------------------------------
# Player pool: 20 teams x 8 players (1 GK, 3 DEF, 2 MID, 2 FWD) = 160 players
# Costs vary so a legal 15 fits well within 1000 (100.0m)
# ---------------------------------------------------------------------------

def _make_pool() -> list[Player]:
    players = []
    pid = 1
    positions = [1, 2, 2, 2, 3, 3, 4, 4]
    base_cost = {1: 40, 2: 40, 3: 50, 4: 55}
    for team in range(1, 21):
        for pos in positions:
            players.append(make_player(
                id=pid,
                web_name=f"Player_{pid}",
                team=team,
                element_type=pos,
                now_cost=base_cost[pos] + (pid % 7) * 5,
                cost_change_start=0,
                total_points=20 + (pid * 7) % 90,
                form=str(round(1 + (pid % 9) * 0.75, 2)),
                minutes=300 + (pid % 5) * 120,
                goals_scored=(pid % 6) if pos >= 3 else 0,
                assists=pid % 4,
                clean_sheets=(pid % 5) if pos <= 2 else 0,
            ))
            pid += 1
    return players


@pytest.fixture
def teams():
    return make_teams(4)


@pytest.fixture
def league_teams():
    return [
        make_team(id=i, code=100 + i, name=f"Team {i}", short_name=f"T{i:02d}")
        for i in range(1, 21)
    ]


@pytest.fixture
def player_pool():
    """160 players across 20 teams, all 4 positions."""
    return _make_pool()


@pytest.fixture
def league_fixtures():
    """Five full gameweeks (GW10-14) for the 20-team league."""
    fixtures = []
    team_ids = list(range(1, 21))
    for i, gw in enumerate(range(10, 15)):
        rotated = team_ids[i:] + team_ids[:i]
        fixtures.extend(make_full_gameweek(gw, rotated, first_id=1000 + gw * 10))
    return fixtures
