"""Explicit match session: the object a UI owns and calls into.

The session validates each call, runs it through ``apply_command`` and keeps
the resulting state. Derived views are recomputed from the log on every read.
Persistence is only touched by ``save()`` and ``end()``.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from .clock import clock_display
from .events import CardEvent, SubstitutionEvent, events_of
from .match import CommandOutcome, apply_command, default_state
from .roster import RosterLookup, match_day_squad
from .scoreboard import compute_scoreboard
from .sin_bin import active_sin_bins
from .snapshot import build_snapshot
from .squad import resolve_squad
from .store import MatchStore, PersistenceError
from .types import ClockDisplay, Scoreboard, SinBinEntry, SquadStatus
from .validation import InputSanitizer

logger = logging.getLogger(__name__)


class MatchSession:
    """One live match: ledger, clock and lifecycle for a single operator.

    Every mutating method returns the scoreboard after the call. Invalid
    actions are ignored (see ``last_outcome.applied``); only persistence
    failures raise, as ``PersistenceError``.
    """

    def __init__(
        self,
        store: MatchStore | None = None,
        config: Dict[str, Any] | None = None,
        players: List[dict] | None = None,
        match_id: str | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        validated = InputSanitizer.validate_config(config or {})
        self.store = store
        self.state: Dict[str, Any] = default_state(config=validated, players=players)
        self.state["matchId"] = match_id
        self._clock = clock
        self.last_outcome: Optional[CommandOutcome] = None

    @classmethod
    def from_roster(
        cls,
        roster: RosterLookup,
        home_team_id: str,
        away_team_id: str,
        store: MatchStore | None = None,
        config: Dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> "MatchSession":
        """Build a session whose match-day squads come from the roster."""
        players = match_day_squad(roster, home_team_id, "home") + match_day_squad(
            roster, away_team_id, "away"
        )
        return cls(store=store, config=config, players=players, **kwargs)

    # ==================== internals ====================

    def _dispatch(self, cmd: Dict[str, Any]) -> Scoreboard:
        validated = InputSanitizer.validate_and_sanitize_cmd(cmd)
        payload = validated.model_dump(exclude_none=True)
        if self._clock is not None and "timestamp" not in payload:
            payload["timestamp"] = self._clock()
        self.last_outcome = apply_command(self.state, payload)
        return self.scoreboard

    def _persist(self, finished: bool) -> str:
        if self.store is None:
            raise PersistenceError("no match store configured")
        snapshot = build_snapshot(self.state)
        existing = self.state.get("matchId")
        try:
            if finished:
                match_id = self.store.save_finished_match(snapshot, existing)
            else:
                match_id = self.store.save_live_match(snapshot, existing)
        except PersistenceError as e:
            if e.match_id:
                self.state["matchId"] = e.match_id
            raise
        except Exception as e:
            raise PersistenceError(f"Saving match failed: {e}") from e
        self.state["matchId"] = match_id
        return match_id

    # ==================== lifecycle ====================

    def start(self) -> Scoreboard:
        return self._dispatch({"type": "START"})

    def toggle_timer(self) -> Scoreboard:
        return self._dispatch({"type": "TOGGLE_TIMER"})

    def tick(self) -> Scoreboard:
        return self._dispatch({"type": "TICK"})

    def add_injury_time(self) -> Scoreboard:
        return self._dispatch({"type": "ADD_INJURY_TIME"})

    def next_half(self) -> Scoreboard:
        return self._dispatch({"type": "NEXT_HALF"})

    def end(self) -> Scoreboard:
        """Close the match and hand it to the store.

        The match stays completed in memory when saving fails, so ``save()``
        can be retried.

        Raises:
            PersistenceError: if a store is configured and the save fails
        """
        board = self._dispatch({"type": "END"})
        if self.last_outcome.snapshot_required and self.store is not None:
            self._persist(finished=True)
        return board

    def save(self) -> str:
        """Persist the current ledger; a completed match is saved as finished.

        Raises:
            PersistenceError: if there is no store or the save fails
        """
        return self._persist(finished=self.status == "completed")

    # ==================== ledger ====================

    def add_score(
        self, team: str, kind: str, player_id: str | None = None, pending: bool = False
    ) -> Scoreboard:
        return self._dispatch(
            {
                "type": "ADD_SCORE",
                "team": team,
                "scoreType": kind,
                "playerId": player_id,
                "pending": pending,
            }
        )

    def resolve_pending(self, event_id: str, approved: bool) -> Scoreboard:
        return self._dispatch(
            {"type": "RESOLVE_PENDING", "targetId": event_id, "approved": approved}
        )

    def add_card(self, team: str, player_id: str, severity: str) -> Scoreboard:
        return self._dispatch(
            {"type": "ADD_CARD", "team": team, "playerId": player_id, "cardType": severity}
        )

    def return_from_sin_bin(self, card_id: str) -> Scoreboard:
        return self._dispatch({"type": "RETURN_FROM_SIN_BIN", "cardId": card_id})

    def add_substitution(
        self,
        team: str,
        off_id: str,
        on_id: str,
        new_player: dict | None = None,
    ) -> Scoreboard:
        return self._dispatch(
            {
                "type": "ADD_SUBSTITUTION",
                "team": team,
                "offPlayerId": off_id,
                "onPlayerId": on_id,
                "newPlayer": new_player,
            }
        )

    def remove_score_event(self, event_id: str) -> Scoreboard:
        return self._dispatch({"type": "REMOVE_SCORE_EVENT", "targetId": event_id})

    def remove_card(self, card_id: str) -> Scoreboard:
        return self._dispatch({"type": "REMOVE_CARD", "targetId": card_id})

    def remove_substitution(self, sub_id: str) -> Scoreboard:
        return self._dispatch({"type": "REMOVE_SUBSTITUTION", "targetId": sub_id})

    def reassign_score_player(self, event_id: str, player_id: str | None = None) -> Scoreboard:
        return self._dispatch(
            {"type": "REASSIGN_SCORE_PLAYER", "targetId": event_id, "playerId": player_id}
        )

    def undo(self) -> Scoreboard:
        return self._dispatch({"type": "UNDO"})

    # ==================== derived views ====================

    @property
    def status(self) -> str:
        return self.state["status"]

    @property
    def log(self) -> List[Any]:
        return list(self.state["log"])

    @property
    def players(self) -> List[dict]:
        return list(self.state["players"])

    @property
    def elapsed_seconds(self) -> int:
        return self.state["elapsedSeconds"]

    @property
    def scoreboard(self) -> Scoreboard:
        board = compute_scoreboard(self.state["log"])
        # Conversion eligibility follows the command history (approvals
        # happen after creation), so report the tracked value.
        board["lastTryTeam"] = self.state.get("lastTryTeam")
        return board

    @property
    def clock(self) -> ClockDisplay:
        return clock_display(self.state["elapsedSeconds"], self.state["config"]["halfDuration"])

    def squad(self, team: str, elapsed_seconds: int | None = None) -> SquadStatus:
        log = self.state["log"]
        return resolve_squad(
            team,
            self.state["players"],
            events_of(log, SubstitutionEvent),
            events_of(log, CardEvent),
            self.elapsed_seconds if elapsed_seconds is None else elapsed_seconds,
        )

    def sin_bins(self, elapsed_seconds: int | None = None) -> List[SinBinEntry]:
        return active_sin_bins(
            events_of(self.state["log"], CardEvent),
            self.elapsed_seconds if elapsed_seconds is None else elapsed_seconds,
        )
