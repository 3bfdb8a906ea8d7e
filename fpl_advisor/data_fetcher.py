"""Fetch and cache data from the FPL API."""

import json
import os
import sys
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path

import requests
from pydantic import ValidationError

from fpl_advisor.logging_config import get_logger
from fpl_advisor.models import ChipPlay, Fixture, Gameweek, Player, SquadPick, Team
from fpl_advisor.projection import get_current_gameweek
from fpl_advisor.transfers import calculate_free_transfers

logger = get_logger(__name__)

if getattr(sys, "frozen", False):
    _BASE = Path(sys.executable).parent
else:
    _BASE = Path(__file__).resolve().parent.parent

CACHE_DIR = Path(os.environ.get("FPL_ADVISOR_CACHE_DIR") or _BASE / "cache")
API_CACHE_MAX_AGE_SECONDS = 30 * 60  # 30 minutes (injury/price changes)

FPL_API_BASE = "https://fantasy.premierleague.com/api"
FPL_API_ENDPOINTS = {
    "bootstrap": f"{FPL_API_BASE}/bootstrap-static/",
    "fixtures": f"{FPL_API_BASE}/fixtures/",
}


@dataclass
class FPLSnapshot:
    """Validated bootstrap + fixtures data."""

    players: list[Player]
    teams: list[Team]
    fixtures: list[Fixture]
    gameweeks: list[Gameweek]

    @property
    def current_gw(self) -> int:
        return get_current_gameweek(self.gameweeks)


@dataclass
class ManagerTeam:
    """A manager's squad for their latest gameweek."""

    manager_id: int
    name: str
    current_event: int | None
    bank: int  # tenths
    free_transfers: int
    picks: list[SquadPick] = field(default_factory=list)
    chips_played: list[ChipPlay] = field(default_factory=list)


def _cache_path(name: str) -> Path:
    return CACHE_DIR / name


def _is_cache_fresh(path: Path, max_age: int = API_CACHE_MAX_AGE_SECONDS) -> bool:
    if not path.exists():
        return False
    return time.time() - path.stat().st_mtime < max_age


def cache_age_seconds() -> float | None:
    """Return age in seconds of the newest file in the cache, or None."""
    if not CACHE_DIR.exists():
        return None
    files = list(CACHE_DIR.glob("*.json"))
    if not files:
        return None
    return time.time() - max(f.stat().st_mtime for f in files)


def _fetch_url(url: str, timeout: int = 30) -> requests.Response:
    resp = requests.get(url, timeout=timeout)
    resp.raise_for_status()
    return resp


def fetch_fpl_api(endpoint: str, force: bool = False):
    """Fetch JSON from the FPL API, caching locally (30min TTL)."""
    cache_file = _cache_path(f"fpl_api_{endpoint}.json")
    if not force and _is_cache_fresh(cache_file):
        return json.loads(cache_file.read_text(encoding="utf-8"))
    url = FPL_API_ENDPOINTS[endpoint]
    logger.info("Fetching %s", url)
    try:
        data = _fetch_url(url).json()
        CACHE_DIR.mkdir(parents=True, exist_ok=True)
        cache_file.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
    except (requests.RequestException, OSError) as e:
        if cache_file.exists():
            logger.warning("Fetch failed (%s), using stale cache for %s", e, cache_file.name)
            return json.loads(cache_file.read_text(encoding="utf-8"))
        raise
    return data


_manager_cache: dict[str, tuple] = {}
_MANAGER_CACHE_TTL = 60  # 60 seconds
_manager_cache_lock = threading.Lock()


def _cached_manager_fetch(cache_key: str, fetch_fn):
    """Simple TTL cache for manager API calls (thread-safe with stale fallback)."""
    now = time.time()
    with _manager_cache_lock:
        if cache_key in _manager_cache:
            data, ts = _manager_cache[cache_key]
            if now - ts < _MANAGER_CACHE_TTL:
                return data
    try:
        data = fetch_fn()
    except requests.RequestException:
        with _manager_cache_lock:
            if cache_key in _manager_cache:
                logger.warning("Manager fetch failed, serving stale %s", cache_key)
                return _manager_cache[cache_key][0]
        raise
    with _manager_cache_lock:
        _manager_cache[cache_key] = (data, now)
        if len(_manager_cache) > 200:
            stale = [k for k, (_, ts) in _manager_cache.items()
                     if now - ts > _MANAGER_CACHE_TTL]
            for k in stale:
                del _manager_cache[k]
    return data


def fetch_manager_entry(manager_id: int) -> dict:
    """Fetch manager overview (name, bank, value, current_event)."""
    url = f"{FPL_API_BASE}/entry/{manager_id}/"
    return _cached_manager_fetch(f"entry_{manager_id}", lambda: _fetch_url(url).json())


def fetch_manager_picks(manager_id: int, event: int) -> dict:
    """Fetch manager's 15 picks for a gameweek."""
    url = f"{FPL_API_BASE}/entry/{manager_id}/event/{event}/picks/"
    return _cached_manager_fetch(f"picks_{manager_id}_{event}", lambda: _fetch_url(url).json())


def fetch_manager_history(manager_id: int) -> dict:
    """Fetch per-GW history (transfers, chips) for FT calculation."""
    url = f"{FPL_API_BASE}/entry/{manager_id}/history/"
    return _cached_manager_fetch(f"history_{manager_id}", lambda: _fetch_url(url).json())


def _validate_records(model, records: list[dict], kind: str) -> list:
    """Validate each raw record, dropping (and logging) the malformed ones."""
    valid = []
    for record in records:
        try:
            valid.append(model.model_validate(record))
        except ValidationError as exc:
            record_id = record.get("id") if isinstance(record, dict) else None
            logger.warning("Skipping malformed %s %s: %d validation error(s)",
                           kind, record_id, exc.error_count())
    return valid


def parse_snapshot(bootstrap: dict, fixtures: list[dict]) -> FPLSnapshot:
    return FPLSnapshot(
        players=_validate_records(Player, bootstrap.get("elements", []), "player"),
        teams=_validate_records(Team, bootstrap.get("teams", []), "team"),
        fixtures=_validate_records(Fixture, fixtures, "fixture"),
        gameweeks=_validate_records(Gameweek, bootstrap.get("events", []), "gameweek"),
    )


def load_snapshot(force: bool = False) -> FPLSnapshot:
    """Main entry point for the engine: bootstrap + fixtures as models."""
    return parse_snapshot(fetch_fpl_api("bootstrap", force=force), fetch_fpl_api("fixtures", force=force))


def parse_manager_team(manager_id: int, entry: dict, picks_data: dict | None, history: dict) -> ManagerTeam:
    picks_data = picks_data or {}
    entry_history = picks_data.get("entry_history") or {}
    chips = [ChipPlay.model_validate(c) for c in history.get("chips", [])]
    name = f"{entry.get('player_first_name', '')} {entry.get('player_last_name', '')}".strip()
    return ManagerTeam(
        manager_id=manager_id,
        name=name or entry.get("name", ""),
        current_event=entry.get("current_event"),
        bank=entry_history.get("bank", entry.get("last_deadline_bank", 0)) or 0,
        free_transfers=calculate_free_transfers(history),
        picks=[SquadPick.model_validate(p) for p in picks_data.get("picks", [])],
        chips_played=chips,
    )


def load_manager_team(manager_id: int) -> ManagerTeam:
    """Fetch entry, latest picks and history for one manager.

    Before the season starts (no current event) the squad is empty.
    """
    entry = fetch_manager_entry(manager_id)
    current_event = entry.get("current_event")
    picks_data = fetch_manager_picks(manager_id, current_event) if current_event else None
    history = fetch_manager_history(manager_id)
    return parse_manager_team(manager_id, entry, picks_data, history)
