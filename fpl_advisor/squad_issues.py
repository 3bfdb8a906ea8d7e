"""Flag problems in a manager's starting XI."""

from fpl_advisor.models import Fixture, Player, SquadIssue, SquadPick, Team
from fpl_advisor.projection import fixture_difficulty_score

HARD_FIXTURE_EASE = 2.5
POOR_FORM = 2.0
TOUGH_FIXTURE_THRESHOLD = 4  # starters facing hard runs before we flag it
POOR_FORM_THRESHOLD = 3

SEVERITY_ORDER = {"high": 0, "medium": 1, "low": 2}


def analyze_squad(
    picks: list[SquadPick],
    players: list[Player],
    fixtures: list[Fixture],
    teams: list[Team],
    current_gw: int,
) -> list[SquadIssue]:
    """Return issues with the XI, most severe first. Bench picks are ignored."""
    player_map = {p.id: p for p in players}
    starters = [player_map[pick.element] for pick in picks
                if pick.is_starter and pick.element in player_map]

    issues = []
    for player in starters:
        if player.status in ("i", "s"):
            word = "injured" if player.status == "i" else "suspended"
            issues.append(SquadIssue(
                severity="high",
                icon="🚑",
                message=f"{player.web_name} is {word} — needs replacing",
                player_id=player.id,
            ))
        if player.status == "d":
            chance = player.chance_of_playing_next_round
            issues.append(SquadIssue(
                severity="medium",
                icon="⚠️",
                message=f"{player.web_name} is doubtful ({'?' if chance is None else chance}%)",
                player_id=player.id,
            ))
        if player.minutes == 0:
            issues.append(SquadIssue(
                severity="high",
                icon="📋",
                message=f"{player.web_name} has 0 minutes played — inactive player in starting XI",
                player_id=player.id,
            ))

    tough = sum(
        1 for p in starters
        if fixture_difficulty_score(fixtures, teams, p.team, current_gw) < HARD_FIXTURE_EASE
    )
    if tough >= TOUGH_FIXTURE_THRESHOLD:
        issues.append(SquadIssue(
            severity="medium",
            icon="🔴",
            message=f"{tough} starters face tough fixtures — consider transfers or Free Hit",
        ))

    poor_form = sum(1 for p in starters if p.form < POOR_FORM)
    if poor_form >= POOR_FORM_THRESHOLD:
        issues.append(SquadIssue(
            severity="medium",
            icon="📉",
            message=f"{poor_form} starters in poor form (< 2.0) — time to rethink your XI?",
        ))

    issues.sort(key=lambda i: SEVERITY_ORDER.get(i.severity, 9))
    return issues
