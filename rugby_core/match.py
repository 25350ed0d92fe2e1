"""Core match state transitions (pure, no UI/storage).

This module implements the business logic of a live rugby match: the event
ledger, the lifecycle/clock state machine and the undo/correction rules.

Architecture:
- State is a plain dict (see types.MatchState) holding lifecycle fields, the
  chronological ``log`` of event models and the match-day ``players``
- Commands are plain dicts with a 'type' field (START, ADD_SCORE, UNDO, ...)
- apply_command() takes (state, cmd) and returns CommandOutcome with updated state
- Mutations are performed on a deepcopy to preserve functional purity
- The session layer receives CommandOutcome and persists when
  ``snapshot_required`` is set (match end)

Key concepts:
- Scores are never stored; scoreboard.compute_scoreboard() folds them from the log
- lastTryTeam: side currently allowed to attempt a conversion
- lastTimestamp: newest event creation time; new events are stamped strictly
  after it so the log order and undo order are well defined
- version: monotonic counter incremented on every applied command

Rejections:
- Invalid actions during play (ineligible conversion, unknown ids, commands
  in the wrong lifecycle state, undo on an empty ledger) are silent no-ops:
  the outcome comes back with ``applied=False``
- Malformed input is rejected earlier by validation.InputSanitizer; the
  reducer only raises ValueError for an unknown score kind or card type

Lifecycle:
- START: not_started -> running, emits match-start
- TOGGLE_TIMER: running <-> paused (half_break resumes to running)
- TICK: +1 second while running, auto-pause when the half's time is reached
- NEXT_HALF: emits half-time, resets the clock, -> half_break
- END: emits match-end, -> completed (terminal)
"""
from __future__ import annotations

import logging
import time
import uuid
from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .constants import (
    CARD_TYPES,
    DEFAULT_AWAY_COLOR,
    DEFAULT_HALF_DURATION,
    DEFAULT_HOME_COLOR,
    HAPTIC_CARD,
    HAPTIC_PENDING,
    HAPTIC_SCORE,
    HAPTIC_SUBSTITUTION,
    HAPTIC_UNDO,
    INJURY_TIME_INCREMENT,
    SIDES,
    SIN_BIN_SECONDS,
)
from .events import (
    UNDOABLE_TYPES,
    CardEvent,
    CardReturnEvent,
    ScoreEvent,
    SubstitutionEvent,
    SystemEvent,
    find_event,
)
from .scoreboard import (
    compute_scoreboard,
    is_conversion_eligible,
    next_last_try_team,
    points_for,
    tail_last_try_team,
)
from .validation import InputSanitizer

logger = logging.getLogger(__name__)

# States in which the ledger accepts scores, cards, subs and corrections
LEDGER_OPEN_STATES = frozenset({"running", "paused", "half_break"})


@dataclass
class CommandOutcome:
    """Result of applying a core command."""

    state: Dict[str, Any]
    cmd_payload: Dict[str, Any]
    snapshot_required: bool
    applied: bool = True
    haptic: Optional[List[int]] = None


def default_config(overrides: Dict[str, Any] | None = None) -> Dict[str, Any]:
    """Match settings with defaults filled in for anything not overridden."""
    config: Dict[str, Any] = {
        "homeTeam": "Home",
        "awayTeam": "Away",
        "homeColor": DEFAULT_HOME_COLOR,
        "awayColor": DEFAULT_AWAY_COLOR,
        "halfDuration": DEFAULT_HALF_DURATION,
        "playerTracking": True,
        "cardTracking": True,
        "substitutions": False,
        "competition": "",
        "venue": "",
        "referee": "",
    }
    if overrides:
        config.update({k: v for k, v in overrides.items() if v is not None})
    return config


def default_state(
    session_id: str | None = None,
    config: Dict[str, Any] | None = None,
    players: List[dict] | None = None,
) -> Dict[str, Any]:
    """Create a fresh, not-started match session state.

    Args:
        session_id: Optional UUID string; generated if not provided
        config: Optional partial MatchConfig merged over the defaults
        players: Optional match-day squad (both sides, each tagged with 'team')

    Returns:
        Dict with keys:
        - status: 'not_started'
        - currentHalf: 1, elapsedSeconds: 0, injuryTime: 0
        - log: [] (event models, chronological)
        - lastTryTeam: None
        - players: normalized squad entries
        - config: full MatchConfig
        - sessionId, matchId (None until persisted), version, lastTimestamp
    """
    return {
        "sessionId": session_id or str(uuid.uuid4()),
        "matchId": None,
        "version": 0,
        "status": "not_started",
        "currentHalf": 1,
        "elapsedSeconds": 0,
        "injuryTime": 0,
        "log": [],
        "lastTimestamp": 0,
        "lastTryTeam": None,
        "players": normalize_players(players),
        "config": default_config(config),
    }


def _coerce_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            return int(stripped, 10)
        except ValueError:
            return None
    return None


def _normalize_player(entry: Any, team: str | None = None) -> dict | None:
    if not isinstance(entry, dict):
        return None
    player_id = entry.get("id")
    if not isinstance(player_id, str) or not player_id.strip():
        return None
    side = team or entry.get("team")
    if side not in SIDES:
        return None
    number = _coerce_int(entry.get("number"))
    raw_name = entry.get("name")
    name = InputSanitizer.sanitize_player_name(raw_name) if isinstance(raw_name, str) else ""
    return {
        "id": player_id.strip(),
        "number": number if number is not None else 0,
        "name": name or (f"Player {number}" if number else "Unknown"),
        "position": InputSanitizer.sanitize_string(entry.get("position") or "", 50),
        "isStarter": bool(entry.get("isStarter", False)),
        "team": side,
    }


def normalize_players(players: List[dict] | None) -> List[dict]:
    """Sanitize a match-day squad from roster/client input.

    Behavior:
        - Skips entries without an id or a valid 'team' ('home'/'away')
        - Coerces shirt numbers to int (0 when missing or unparseable)
        - Sanitizes names via InputSanitizer, falling back to "Player N"
        - Drops later duplicates of an id already seen
    """
    normalized: List[dict] = []
    seen: set[str] = set()
    for entry in players or []:
        player = _normalize_player(entry)
        if player is None or player["id"] in seen:
            continue
        seen.add(player["id"])
        normalized.append(player)
    return normalized


def _now_ms() -> int:
    return int(time.time() * 1000)


def _next_timestamp(state: Dict[str, Any], cmd: Dict[str, Any]) -> int:
    """Creation time for a new event, strictly after the previous one."""
    candidate = _coerce_int(cmd.get("timestamp"))
    if candidate is None:
        candidate = _now_ms()
    last = state.get("lastTimestamp") or 0
    stamp = max(candidate, last + 1)
    state["lastTimestamp"] = stamp
    return stamp


def _event_base(state: Dict[str, Any], cmd: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": cmd.get("eventId") or str(uuid.uuid4()),
        "timestamp": _next_timestamp(state, cmd),
        "half": state.get("currentHalf") or 1,
        "match_time": state.get("elapsedSeconds") or 0,
    }


def _replace_event(log: List[Any], updated: Any) -> List[Any]:
    return [updated if ev.id == updated.id else ev for ev in log]


def _remove_events(log: List[Any], ids: set[str]) -> List[Any]:
    return [ev for ev in log if ev.id not in ids]


def _card_removal_ids(log: List[Any], card: CardEvent) -> set[str]:
    """A card plus any sin-bin return recorded against it."""
    ids = {card.id}
    ids.update(
        ev.id for ev in log if isinstance(ev, CardReturnEvent) and ev.card_id == card.id
    )
    return ids


def _latest_undoable(log: List[Any]) -> Any | None:
    """Most recently created score, card or substitution event.

    Ties on timestamp go to the event inserted later.
    """
    best = None
    best_key: tuple[int, int] | None = None
    for idx, ev in enumerate(log):
        if not isinstance(ev, UNDOABLE_TYPES):
            continue
        key = (ev.timestamp, idx)
        if best_key is None or key > best_key:
            best, best_key = ev, key
    return best


def _rejected(state: Dict[str, Any], cmd: Dict[str, Any], reason: str) -> CommandOutcome:
    logger.debug(f"Ignoring {cmd.get('type')}: {reason}")
    payload = dict(cmd)
    payload["rejected"] = reason
    return CommandOutcome(
        state=state, cmd_payload=payload, snapshot_required=False, applied=False
    )


def _apply_transition(state: Dict[str, Any], cmd: Dict[str, Any]) -> CommandOutcome:
    """Apply pure state transition without side effects.

    Pure transition: works on a deepcopy of the provided state and returns new state + payload.
    The session layer is responsible for persistence.

    Args:
        state: Current match state dict (not mutated)
        cmd: Command dict with 'type' field and command-specific params

    Returns:
        CommandOutcome with:
        - state: Updated state dict (deepcopy with changes applied)
        - cmd_payload: Enriched command (adds generated eventId, sessionId)
        - snapshot_required: True when the match should be handed to persistence
        - applied: False when the command was a silent no-op
        - haptic: Advisory vibration pattern for the UI

    Command types:
        - START / TOGGLE_TIMER / TICK / NEXT_HALF / ADD_INJURY_TIME / END: lifecycle and clock
        - ADD_SCORE: Append a score (conversion only when eligible)
        - RESOLVE_PENDING: Approve (count) or reject (delete) a pending score
        - ADD_CARD: Append a yellow/red card; yellow gets returnTime = now + 600s
        - RETURN_FROM_SIN_BIN: Mark a yellow card served early, append card-return
        - ADD_SUBSTITUTION: Append a substitution, registering a new player if given
        - REMOVE_SCORE_EVENT / REMOVE_CARD / REMOVE_SUBSTITUTION: Targeted removal
        - REASSIGN_SCORE_PLAYER: Change (or clear) the scorer of a score event
        - UNDO: Remove the most recently created score/card/substitution
    """
    new_state: Dict[str, Any] = deepcopy(state)
    ctype = cmd.get("type")
    status = new_state.get("status") or "not_started"
    snapshot_required = False
    haptic: Optional[List[int]] = None
    payload = dict(cmd)
    payload["sessionId"] = new_state.get("sessionId")
    log: List[Any] = new_state.get("log") or []

    if status == "completed":
        return _rejected(state, cmd, "match is completed")

    if ctype == "START":
        if status != "not_started":
            return _rejected(state, cmd, f"cannot start from {status}")
        event = SystemEvent(type="match-start", **_event_base(new_state, cmd))
        new_state["log"] = [event]
        new_state["status"] = "running"
        new_state["currentHalf"] = 1
        new_state["elapsedSeconds"] = 0
        new_state["injuryTime"] = 0
        new_state["lastTryTeam"] = None
        payload["eventId"] = event.id
        logger.info(f"Match {new_state.get('sessionId')} started")

    elif ctype == "TOGGLE_TIMER":
        if status == "running":
            new_state["status"] = "paused"
        elif status in {"paused", "half_break"}:
            new_state["status"] = "running"
        else:
            return _rejected(state, cmd, f"no clock to toggle in {status}")

    elif ctype == "TICK":
        if status != "running":
            return _rejected(state, cmd, "clock is not running")
        previous = new_state.get("elapsedSeconds") or 0
        elapsed = previous + 1
        new_state["elapsedSeconds"] = elapsed
        half_duration = new_state["config"].get("halfDuration") or DEFAULT_HALF_DURATION
        # Auto-pause only on the tick that first reaches the half's time
        if previous < half_duration <= elapsed:
            new_state["status"] = "paused"
            payload["halfTimeReached"] = True
            logger.debug(f"Half {new_state.get('currentHalf')} time reached, clock paused")

    elif ctype == "ADD_INJURY_TIME":
        if status not in LEDGER_OPEN_STATES:
            return _rejected(state, cmd, f"no match in progress ({status})")
        new_state["injuryTime"] = (new_state.get("injuryTime") or 0) + INJURY_TIME_INCREMENT

    elif ctype == "NEXT_HALF":
        if status not in LEDGER_OPEN_STATES:
            return _rejected(state, cmd, f"no match in progress ({status})")
        event = SystemEvent(type="half-time", **_event_base(new_state, cmd))
        new_state["log"] = log + [event]
        new_state["currentHalf"] = (new_state.get("currentHalf") or 1) + 1
        new_state["elapsedSeconds"] = 0
        new_state["injuryTime"] = 0
        new_state["status"] = "half_break"
        payload["eventId"] = event.id

    elif ctype == "END":
        if status not in LEDGER_OPEN_STATES:
            return _rejected(state, cmd, f"no match in progress ({status})")
        event = SystemEvent(type="match-end", **_event_base(new_state, cmd))
        new_state["log"] = log + [event]
        new_state["status"] = "completed"
        payload["eventId"] = event.id
        snapshot_required = True
        logger.info(f"Match {new_state.get('sessionId')} completed")

    elif status not in LEDGER_OPEN_STATES:
        return _rejected(state, cmd, f"ledger is closed ({status})")

    elif ctype == "ADD_SCORE":
        team = cmd.get("team")
        kind = cmd.get("scoreType")
        if team not in SIDES:
            return _rejected(state, cmd, f"unknown team {team!r}")
        points = points_for(kind)
        pending = bool(cmd.get("pending"))
        if kind == "conversion" and not is_conversion_eligible(new_state.get("lastTryTeam"), team):
            return _rejected(state, cmd, f"no try for {team} to convert")
        event = ScoreEvent(
            team=team,
            score_type=kind,
            points=points,
            player_id=cmd.get("playerId") or None,
            pending=pending,
            **_event_base(new_state, cmd),
        )
        new_state["log"] = log + [event]
        new_state["lastTryTeam"] = next_last_try_team(event, new_state.get("lastTryTeam"))
        payload["eventId"] = event.id
        haptic = HAPTIC_PENDING if pending else HAPTIC_SCORE

    elif ctype == "RESOLVE_PENDING":
        event = find_event(log, cmd.get("targetId"), ScoreEvent)
        if event is None or not event.pending:
            return _rejected(state, cmd, "no such pending score")
        if cmd.get("approved"):
            if event.score_type == "conversion" and not is_conversion_eligible(
                new_state.get("lastTryTeam"), event.team
            ):
                return _rejected(state, cmd, f"no try for {event.team} to convert")
            approved = event.model_copy(update={"pending": False})
            new_state["log"] = _replace_event(log, approved)
            new_state["lastTryTeam"] = approved.team if approved.is_try else None
        else:
            new_state["log"] = _remove_events(log, {event.id})

    elif ctype == "ADD_CARD":
        team = cmd.get("team")
        card_type = cmd.get("cardType")
        player_id = cmd.get("playerId")
        if card_type not in CARD_TYPES:
            raise ValueError(f"unknown card type: {card_type!r}")
        if team not in SIDES or not player_id:
            return _rejected(state, cmd, "card needs a team and a player")
        base = _event_base(new_state, cmd)
        event = CardEvent(
            team=team,
            player_id=player_id,
            card_type=card_type,
            return_time=base["match_time"] + SIN_BIN_SECONDS if card_type == "yellow" else None,
            returned=False,
            **base,
        )
        new_state["log"] = log + [event]
        payload["eventId"] = event.id
        haptic = HAPTIC_CARD

    elif ctype == "RETURN_FROM_SIN_BIN":
        card = find_event(log, cmd.get("cardId"), CardEvent)
        if card is None or card.card_type != "yellow" or card.returned:
            return _rejected(state, cmd, "no yellow card waiting to return")
        returned = card.model_copy(update={"returned": True})
        event = CardReturnEvent(
            card_id=card.id,
            team=card.team,
            player_id=card.player_id,
            **_event_base(new_state, cmd),
        )
        new_state["log"] = _replace_event(log, returned) + [event]
        payload["eventId"] = event.id

    elif ctype == "ADD_SUBSTITUTION":
        team = cmd.get("team")
        off_id = cmd.get("offPlayerId")
        on_id = cmd.get("onPlayerId")
        if team not in SIDES or not off_id or not on_id or off_id == on_id:
            return _rejected(state, cmd, "substitution needs two different players")
        players = new_state.get("players") or []
        new_player = cmd.get("newPlayer")
        if new_player and not any(p.get("id") == on_id for p in players):
            registered = _normalize_player({**new_player, "id": on_id, "isStarter": False}, team)
            if registered is not None:
                new_state["players"] = players + [registered]
        event = SubstitutionEvent(
            team=team,
            off_player_id=off_id,
            on_player_id=on_id,
            **_event_base(new_state, cmd),
        )
        new_state["log"] = log + [event]
        payload["eventId"] = event.id
        haptic = HAPTIC_SUBSTITUTION

    elif ctype == "REMOVE_SCORE_EVENT":
        event = find_event(log, cmd.get("targetId"), ScoreEvent)
        if event is None:
            return _rejected(state, cmd, "no such score event")
        new_state["log"] = _remove_events(log, {event.id})
        # Removal can break or create a try/conversion chain: re-fold everything
        new_state["lastTryTeam"] = compute_scoreboard(new_state["log"])["lastTryTeam"]

    elif ctype == "REMOVE_CARD":
        card = find_event(log, cmd.get("targetId"), CardEvent)
        if card is None:
            return _rejected(state, cmd, "no such card")
        new_state["log"] = _remove_events(log, _card_removal_ids(log, card))

    elif ctype == "REMOVE_SUBSTITUTION":
        sub = find_event(log, cmd.get("targetId"), SubstitutionEvent)
        if sub is None:
            return _rejected(state, cmd, "no such substitution")
        new_state["log"] = _remove_events(log, {sub.id})

    elif ctype == "REASSIGN_SCORE_PLAYER":
        event = find_event(log, cmd.get("targetId"), ScoreEvent)
        if event is None:
            return _rejected(state, cmd, "no such score event")
        updated = event.model_copy(update={"player_id": cmd.get("playerId") or None})
        new_state["log"] = _replace_event(log, updated)
        new_state["lastTryTeam"] = compute_scoreboard(new_state["log"])["lastTryTeam"]

    elif ctype == "UNDO":
        target = _latest_undoable(log)
        if target is None:
            return _rejected(state, cmd, "nothing to undo")
        if isinstance(target, CardEvent):
            remaining = _remove_events(log, _card_removal_ids(log, target))
        else:
            remaining = _remove_events(log, {target.id})
        if isinstance(target, ScoreEvent):
            new_state["lastTryTeam"] = tail_last_try_team(
                remaining, target, new_state.get("lastTryTeam")
            )
        new_state["log"] = remaining
        payload["undoneId"] = target.id
        haptic = HAPTIC_UNDO

    else:
        raise ValueError(f"unknown command type: {ctype!r}")

    new_state["version"] = (new_state.get("version") or 0) + 1
    return CommandOutcome(
        state=new_state,
        cmd_payload=payload,
        snapshot_required=snapshot_required,
        haptic=haptic,
    )


def apply_command(state: Dict[str, Any], cmd: Dict[str, Any]) -> CommandOutcome:
    """Apply a match command to in-memory state.

    Args:
        state: Current match state dict (will be mutated in place)
        cmd: Command dict with 'type' field and command-specific params

    Returns:
        CommandOutcome with updated state, enriched command payload and flags

    Note:
        - Internally uses _apply_transition which works on a deepcopy (pure)
        - Mutates input state dict by clearing and updating with new values,
          so callers holding the dict see the new state
        - A rejected command leaves the state untouched
    """
    outcome = _apply_transition(state, cmd)

    if outcome.applied:
        state.clear()
        state.update(outcome.state)
        outcome.state = state

    return outcome
