"""Flask JSON API for the FPL advisor."""

import sys

# Ensure UTF-8 for stdout/stderr on Windows (player names contain non-ASCII)
if sys.stdout and hasattr(sys.stdout, "reconfigure"):
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")
if sys.stderr and hasattr(sys.stderr, "reconfigure"):
    sys.stderr.reconfigure(encoding="utf-8", errors="replace")

import numpy as np
import pandas as pd
import requests
from flask import Flask, jsonify, request
from pydantic import ValidationError

from fpl_advisor.chips import DEFAULT_LOOKAHEAD, generate_chip_recommendations
from fpl_advisor.data_fetcher import cache_age_seconds, load_manager_team, load_snapshot
from fpl_advisor.logging_config import get_logger, setup_logging
from fpl_advisor.projection import (
    expected_points,
    fixture_difficulty_score,
    get_position_label,
    get_team_short,
    get_upcoming_fixtures,
    points_per_million,
    status_badge,
)
from fpl_advisor.squad_builder import (
    BUILDER_CONTEXTS,
    FORMATIONS,
    STRATEGIES,
    squad_quota_problems,
)
from fpl_advisor.squad_issues import analyze_squad
from fpl_advisor.transfers import (
    MAX_FREE_TRANSFERS,
    MIN_FREE_TRANSFERS,
    generate_transfer_suggestions,
)
from fpl_advisor.worker import SquadBuilderWorker

setup_logging()
logger = get_logger(__name__)

app = Flask(__name__)

_squad_worker = SquadBuilderWorker()


@app.after_request
def add_no_cache_headers(response):
    """Prevent browsers from caching API responses."""
    if request.path.startswith("/api/"):
        response.headers["Cache-Control"] = "no-store"
    return response


def scrub_nan(records: list[dict]) -> list[dict]:
    """Replace NaN/inf with None in a list of dicts for valid JSON.

    Returns a new list of dicts (does not mutate input).
    """
    result = []
    for row in records:
        cleaned = {}
        for k, v in row.items():
            if isinstance(v, float) and (np.isnan(v) or np.isinf(v)):
                cleaned[k] = None
            else:
                cleaned[k] = v
        result.append(cleaned)
    return result


def _parse_manager_id(value):
    """Return (manager_id, None) or (None, error response)."""
    if not value:
        return None, (jsonify({"error": "manager_id is required."}), 400)
    try:
        return int(value), None
    except (TypeError, ValueError):
        return None, (jsonify({"error": "manager_id must be an integer."}), 400)


def _load_context(manager_id: int):
    """Fetch the shared snapshot plus one manager's team.

    Returns (snapshot, team, None) or (None, None, error response).
    """
    try:
        snapshot = load_snapshot()
    except (requests.RequestException, OSError, ValidationError) as exc:
        logger.error("Could not load FPL data: %s", exc)
        return None, None, (jsonify({"error": f"Could not load FPL data: {exc}"}), 502)
    try:
        team = load_manager_team(manager_id)
    except (requests.RequestException, ValidationError) as exc:
        return None, None, (jsonify({"error": f"Could not fetch manager {manager_id}: {exc}"}), 404)
    if not team.picks:
        return None, None, (jsonify({"error": "Manager has no picks yet (pre-season)."}), 400)
    return snapshot, team, None


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.route("/api/health")
def api_health():
    age = cache_age_seconds()
    return jsonify({
        "status": "ok",
        "cache_age_seconds": round(age, 1) if age is not None else None,
        "squad_builder_pending": _squad_worker.is_pending(),
    })


@app.route("/api/players")
def api_players():
    """Player table with projections, filterable by position and name."""
    try:
        snapshot = load_snapshot()
    except (requests.RequestException, OSError, ValidationError) as exc:
        return jsonify({"players": [], "error": f"Could not load FPL data: {exc}"}), 502

    gw = snapshot.current_gw
    rows = []
    for p in snapshot.players:
        badge = status_badge(p)
        next_fixtures = get_upcoming_fixtures(snapshot.fixtures, snapshot.teams, p.team, gw, 3)
        rows.append({
            "id": p.id,
            "web_name": p.web_name,
            "position": get_position_label(p.element_type),
            "team": get_team_short(snapshot.teams, p.team),
            "price": p.price,
            "total_points": p.total_points,
            "form": p.form,
            "selected_by_percent": p.selected_by_percent,
            "xpts": expected_points(p, snapshot.fixtures, snapshot.teams, gw),
            "fixture_ease": fixture_difficulty_score(snapshot.fixtures, snapshot.teams, p.team, gw),
            "points_per_million": points_per_million(p),
            "status": badge[0] if badge else None,
            "next_3_fixtures": ", ".join(
                f"{f.opponent} ({'H' if f.is_home else 'A'})" for f in next_fixtures
            ),
        })
    df = pd.DataFrame(rows)
    if df.empty:
        return jsonify({"players": [], "gameweek": gw})

    position = request.args.get("position", "").upper()
    if position and position != "ALL":
        df = df[df["position"] == position]

    search = request.args.get("search", "").strip().lower()
    if search:
        df = df[df["web_name"].str.lower().str.contains(search, na=False, regex=False)]

    sort_by = request.args.get("sort", "xpts")
    sort_dir = request.args.get("dir", "desc")
    if sort_by in df.columns:
        df = df.sort_values(sort_by, ascending=(sort_dir == "asc"), kind="stable")

    float_cols = df.select_dtypes(include="float").columns
    df[float_cols] = df[float_cols].round(2)

    return jsonify({"players": scrub_nan(df.to_dict(orient="records")), "gameweek": gw})


@app.route("/api/squad-issues")
def api_squad_issues():
    manager_id, error = _parse_manager_id(request.args.get("manager_id"))
    if error:
        return error
    snapshot, team, error = _load_context(manager_id)
    if error:
        return error

    issues = analyze_squad(team.picks, snapshot.players, snapshot.fixtures,
                           snapshot.teams, snapshot.current_gw)
    return jsonify({"issues": [i.model_dump(mode="json") for i in issues]})


@app.route("/api/transfer-suggestions", methods=["POST"])
def api_transfer_suggestions():
    """Suggest transfers for a manager's current squad."""
    body = request.get_json(silent=True) or {}
    manager_id, error = _parse_manager_id(body.get("manager_id"))
    if error:
        return error
    snapshot, team, error = _load_context(manager_id)
    if error:
        return error

    free_transfers = body.get("free_transfers", team.free_transfers)
    try:
        free_transfers = int(free_transfers)
    except (TypeError, ValueError):
        return jsonify({"error": "free_transfers must be an integer."}), 400
    if not MIN_FREE_TRANSFERS <= free_transfers <= MAX_FREE_TRANSFERS:
        return jsonify({"error": f"free_transfers must be between {MIN_FREE_TRANSFERS} and {MAX_FREE_TRANSFERS}."}), 400

    suggestions = generate_transfer_suggestions(
        snapshot.players, snapshot.teams, snapshot.fixtures, snapshot.gameweeks,
        team.picks, team.bank, free_transfers,
    )
    return jsonify({
        "free_transfers": free_transfers,
        "bank": team.bank / 10,
        "suggestions": [s.model_dump(mode="json") for s in suggestions],
    })


@app.route("/api/chip-recommendations", methods=["POST"])
def api_chip_recommendations():
    body = request.get_json(silent=True) or {}
    manager_id, error = _parse_manager_id(body.get("manager_id"))
    if error:
        return error
    try:
        lookahead = int(body.get("lookahead", DEFAULT_LOOKAHEAD))
    except (TypeError, ValueError):
        return jsonify({"error": "lookahead must be an integer."}), 400
    if lookahead < 0:
        return jsonify({"error": "lookahead must not be negative."}), 400

    snapshot, team, error = _load_context(manager_id)
    if error:
        return error

    recommendations = generate_chip_recommendations(
        snapshot.players, snapshot.teams, snapshot.fixtures, team.picks,
        team.chips_played, snapshot.current_gw, lookahead,
    )
    return jsonify({"chips": [r.model_dump(mode="json") for r in recommendations]})


@app.route("/api/squad-builder", methods=["POST"])
def api_squad_builder():
    """Start a squad build in the background. Newer requests supersede older ones."""
    body = request.get_json(silent=True) or {}

    try:
        budget = float(body.get("budget", 100.0))
    except (TypeError, ValueError):
        return jsonify({"error": "budget must be a number."}), 400
    strategy = body.get("strategy", "balanced")
    if strategy not in STRATEGIES:
        return jsonify({"error": f"strategy must be one of {', '.join(STRATEGIES)}."}), 400
    formation = body.get("formation", "4-4-2")
    if formation not in FORMATIONS:
        return jsonify({"error": f"formation must be one of {', '.join(FORMATIONS)}."}), 400
    builder_context = body.get("builder_context", "regular")
    if builder_context not in BUILDER_CONTEXTS:
        return jsonify({"error": f"builder_context must be one of {', '.join(BUILDER_CONTEXTS)}."}), 400

    try:
        snapshot = load_snapshot()
    except (requests.RequestException, OSError, ValidationError) as exc:
        return jsonify({"error": f"Could not load FPL data: {exc}"}), 502

    request_id = _squad_worker.submit(
        players=snapshot.players,
        teams=snapshot.teams,
        fixtures=snapshot.fixtures,
        current_gw=snapshot.current_gw,
        budget=budget,
        strategy=strategy,
        formation=formation,
        builder_context=builder_context,
    )
    return jsonify({"status": "started", "request_id": request_id}), 202


@app.route("/api/squad-builder/result")
def api_squad_builder_result():
    latest_request = _squad_worker.latest_request
    if latest_request == 0:
        return jsonify({"error": "No squad build requested yet."}), 404

    error = _squad_worker.last_error()
    if error and error[0] == latest_request:
        return jsonify({"status": "error", "request_id": latest_request, "error": str(error[1])}), 500

    latest = _squad_worker.latest()
    if latest is None or latest[0] != latest_request:
        return jsonify({"status": "pending", "request_id": latest_request})

    request_id, result = latest
    problems = squad_quota_problems(result)
    if problems:
        logger.warning("Squad build %d is degraded: %s", request_id, "; ".join(problems))
    return jsonify({
        "status": "ready",
        "request_id": request_id,
        "degraded": bool(problems),
        "problems": problems,
        "result": result.model_dump(mode="json"),
    })
