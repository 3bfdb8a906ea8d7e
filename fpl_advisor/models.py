"""Pydantic schemas for FPL players, fixtures, squads and advisor results.

Input models mirror the JSON shapes of the public FPL API
(``bootstrap-static``, ``fixtures``, ``entry/{id}/event/{gw}/picks``) so raw
payloads validate directly; unknown keys are ignored.
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

POSITION_LABELS = ["", "GK", "DEF", "MID", "FWD"]

# Squad composition rules
SQUAD_QUOTAS = {1: 2, 2: 5, 3: 5, 4: 3}
SQUAD_SIZE = 15
STARTING_XI_SIZE = 11
MAX_PER_TEAM = 3
LAST_GAMEWEEK = 38

CHIP_NAMES = ("bboost", "3xc", "freehit", "wildcard")

_DECIMAL_RE = re.compile(r"\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def parse_decimal(value) -> float:
    """Read a decimal the FPL API ships as a string (e.g. ``form: "7.5"``).

    The leading number is used; ``None``, NaN, infinities and anything
    unparsable all become 0.0. Never raises.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = _DECIMAL_RE.match(str(value))
        if not match:
            return 0.0
        number = float(match.group(0))
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


class _APIModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


# ---------------------------------------------------------------------------
# Upstream data
# ---------------------------------------------------------------------------

class Player(_APIModel):
    """A footballer from the bootstrap-static ``elements`` array."""

    id: int
    web_name: str
    first_name: str = ""
    second_name: str = ""
    element_type: int = Field(ge=1, le=4)  # 1=GK, 2=DEF, 3=MID, 4=FWD
    team: int
    now_cost: int = Field(ge=0)  # tenths of a million
    cost_change_start: int = 0  # tenths, rise since the season started
    total_points: int = 0
    goals_scored: int = Field(0, ge=0)
    assists: int = Field(0, ge=0)
    clean_sheets: int = Field(0, ge=0)
    minutes: int = Field(0, ge=0)
    bonus: int = Field(0, ge=0)
    form: float = 0.0
    selected_by_percent: float = 0.0
    status: str = "a"  # a, d, i, s, n, u
    chance_of_playing_next_round: int | None = None
    news: str | None = ""

    @field_validator("form", "selected_by_percent", mode="before")
    @classmethod
    def _parse_decimal_string(cls, value):
        return parse_decimal(value)

    @property
    def price(self) -> float:
        return self.now_cost / 10


class Team(_APIModel):
    """A Premier League club from the bootstrap-static ``teams`` array."""

    id: int
    code: int = 0
    name: str
    short_name: str
    strength: int = 0
    strength_overall_home: int = 0
    strength_overall_away: int = 0
    strength_attack_home: int = 0
    strength_attack_away: int = 0
    strength_defence_home: int = 0
    strength_defence_away: int = 0


class FixtureStatEntry(_APIModel):
    element: int
    value: int


class FixtureStat(_APIModel):
    """One stat category of a played fixture (goals_scored, bonus, bps...)."""

    identifier: str
    h: list[FixtureStatEntry] = Field(default_factory=list)
    a: list[FixtureStatEntry] = Field(default_factory=list)


class Fixture(_APIModel):
    """A match. ``event`` is None while the fixture is unscheduled."""

    id: int
    event: int | None = None
    team_h: int
    team_a: int
    team_h_difficulty: int = Field(3, ge=1, le=5)
    team_a_difficulty: int = Field(3, ge=1, le=5)
    finished: bool = False
    started: bool | None = None
    kickoff_time: datetime | None = None
    team_h_score: int | None = None
    team_a_score: int | None = None
    stats: list[FixtureStat] = Field(default_factory=list)


class Gameweek(_APIModel):
    id: int
    name: str = ""
    deadline_time: datetime | None = None
    finished: bool = False
    is_current: bool = False
    is_next: bool = False


class SquadPick(_APIModel):
    """A manager's pick. Positions 1-11 start, 12-15 are the bench."""

    element: int
    position: int = Field(ge=1, le=SQUAD_SIZE)
    multiplier: int = 1
    is_captain: bool = False
    is_vice_captain: bool = False

    @property
    def is_starter(self) -> bool:
        return self.position <= STARTING_XI_SIZE


class ChipPlay(_APIModel):
    name: str
    event: int


# ---------------------------------------------------------------------------
# Advisor output
# ---------------------------------------------------------------------------

class FixtureInfo(BaseModel):
    """An upcoming fixture seen from one team's side."""

    opponent: str
    difficulty: int
    is_home: bool
    gw: int


class TransferSuggestion(BaseModel):
    player_out: Player
    player_in: Player
    xpts_gain: float
    cost_delta: int  # tenths; incoming price minus outgoing selling price
    reason: str
    priority: Literal["urgent", "recommended", "optional"]
    hit_cost: int = 0
    net_gain: float = 0.0


class SquadIssue(BaseModel):
    severity: Literal["high", "medium", "low"]
    icon: str
    message: str
    player_id: int | None = None


class ChipRecommendation(BaseModel):
    chip: Literal["bboost", "3xc", "freehit", "wildcard"]
    label: str
    score: int = Field(ge=0, le=100)
    available: bool
    reason: str
    verdict: Literal["strong", "moderate", "weak"]
    best_gw: int | None = None
    best_gw_reason: str = ""


class ScoredPlayer(Player):
    """A pool player annotated by the squad builder."""

    score: float
    xpts: float
    team_name: str
    upcoming_fixtures: list[FixtureInfo] = Field(default_factory=list)


class SquadBuildResult(BaseModel):
    starting_xi: list[ScoredPlayer] = Field(default_factory=list)
    bench: list[ScoredPlayer] = Field(default_factory=list)
    total_cost: int = 0  # tenths
    total_points: int = 0

    @property
    def players(self) -> list[ScoredPlayer]:
        return self.starting_xi + self.bench

    @property
    def squad_ids(self) -> set[int]:
        """Set of player IDs in the squad."""
        return {p.id for p in self.players}
