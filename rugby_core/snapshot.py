"""Conversion between live match state and the persisted match record."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List

from .events import CardEvent, ScoreEvent, SystemEvent, dump_log, parse_log
from .match import default_state
from .scoreboard import compute_scoreboard
from .types import MatchSnapshot


def build_snapshot(state: Dict[str, Any]) -> MatchSnapshot:
    """Convert in-memory state to the snapshot handed to persistence.

    Scores are folded from the log at call time, so the stored totals always
    agree with the stored events.
    """
    config = state.get("config") or {}
    board = compute_scoreboard(state.get("log") or [])
    return {
        "homeTeamName": config.get("homeTeam", "Home"),
        "awayTeamName": config.get("awayTeam", "Away"),
        "homeColor": config.get("homeColor", ""),
        "awayColor": config.get("awayColor", ""),
        "homeScore": board["homeScore"],
        "awayScore": board["awayScore"],
        "halfDuration": config.get("halfDuration", 0),
        "competition": config.get("competition") or "",
        "venue": config.get("venue") or "",
        "referee": config.get("referee") or "",
        "currentHalf": state.get("currentHalf") or 1,
        "elapsedSeconds": state.get("elapsedSeconds") or 0,
        "injuryTime": state.get("injuryTime") or 0,
        "config": {
            "playerTracking": bool(config.get("playerTracking")),
            "cardTracking": bool(config.get("cardTracking")),
            "substitutions": bool(config.get("substitutions")),
        },
        "log": dump_log(state.get("log") or []),
        "playerIds": [p["id"] for p in state.get("players") or []],
    }


def restore_state(
    snapshot: Dict[str, Any],
    players: List[dict] | None = None,
    session_id: str | None = None,
) -> Dict[str, Any]:
    """Rebuild a session state from a persisted snapshot.

    The log is validated back into event models and every derived value is
    re-folded from it; the stored totals are not trusted.

    Raises:
        pydantic.ValidationError: if the stored log is malformed
    """
    flags = snapshot.get("config") or {}
    config = {
        "homeTeam": snapshot.get("homeTeamName"),
        "awayTeam": snapshot.get("awayTeamName"),
        "homeColor": snapshot.get("homeColor"),
        "awayColor": snapshot.get("awayColor"),
        "halfDuration": snapshot.get("halfDuration"),
        "competition": snapshot.get("competition"),
        "venue": snapshot.get("venue"),
        "referee": snapshot.get("referee"),
        "playerTracking": flags.get("playerTracking"),
        "cardTracking": flags.get("cardTracking"),
        "substitutions": flags.get("substitutions"),
    }
    state = default_state(session_id, config=config, players=players)
    log = parse_log(snapshot.get("log") or [])
    state["log"] = log
    state["lastTimestamp"] = log[-1].timestamp if log else 0
    state["lastTryTeam"] = compute_scoreboard(log)["lastTryTeam"]
    state["currentHalf"] = snapshot.get("currentHalf") or 1
    state["elapsedSeconds"] = snapshot.get("elapsedSeconds") or 0
    state["injuryTime"] = snapshot.get("injuryTime") or 0
    state["matchId"] = snapshot.get("id")

    markers = [ev.type for ev in log if isinstance(ev, SystemEvent)]
    if "match-end" in markers:
        state["status"] = "completed"
    elif markers and markers[-1] == "half-time" and state["elapsedSeconds"] == 0:
        state["status"] = "half_break"
    elif "match-start" in markers:
        state["status"] = "paused"
    return state


def player_stat_deltas(log: Iterable[Any], player_ids: Iterable[str]) -> Dict[str, Dict[str, int]]:
    """Per-player stat increments one finished match contributes.

    Every participant gets gamesPlayed +1. Confirmed scores add points (and a
    try for tries and penalty tries); cards count by colour. Only players in
    ``player_ids`` are counted; log entries for anyone else are skipped.
    """
    deltas: Dict[str, Dict[str, int]] = {
        player_id: {"gamesPlayed": 1, "tries": 0, "points": 0, "yellowCards": 0, "redCards": 0}
        for player_id in player_ids
    }

    for ev in log:
        if isinstance(ev, ScoreEvent) and ev.player_id in deltas and not ev.pending:
            entry = deltas[ev.player_id]
            entry["points"] += ev.points
            if ev.is_try:
                entry["tries"] += 1
        elif isinstance(ev, CardEvent) and ev.player_id in deltas:
            entry = deltas[ev.player_id]
            if ev.card_type == "yellow":
                entry["yellowCards"] += 1
            else:
                entry["redCards"] += 1
    return deltas
