"""Score reducer: folds the ledger into the live scoreboard."""
from __future__ import annotations

from typing import Any, Iterable, List, Optional

from .constants import POINTS
from .events import ScoreEvent
from .types import Scoreboard, Side


def points_for(kind: str) -> int:
    """Look up the fixed point value for a score kind.

    Raises:
        ValueError: for anything outside the closed set of score kinds
    """
    try:
        return POINTS[kind]
    except KeyError:
        raise ValueError(f"unknown score kind: {kind!r}") from None


def next_last_try_team(event: ScoreEvent, current: Optional[Side]) -> Optional[Side]:
    """Conversion eligibility after a confirmed score event is applied.

    A try or penalty try opens the conversion for the scoring side; any other
    confirmed score (including the conversion itself) closes it.
    """
    if event.pending:
        return current
    return event.team if event.is_try else None


def is_conversion_eligible(last_try_team: Optional[Side], team: Side) -> bool:
    return last_try_team is not None and last_try_team == team


def compute_scoreboard(log: Iterable[Any]) -> Scoreboard:
    """Fold the full ledger into ``{homeScore, awayScore, lastTryTeam}``.

    Pending events count for nothing. Only score events move the conversion
    state; cards, substitutions and markers leave it alone.
    """
    home = 0
    away = 0
    last_try_team: Optional[Side] = None
    for ev in log:
        if not isinstance(ev, ScoreEvent) or ev.pending:
            continue
        if ev.team == "home":
            home += ev.points
        else:
            away += ev.points
        last_try_team = next_last_try_team(ev, last_try_team)
    return {"homeScore": home, "awayScore": away, "lastTryTeam": last_try_team}


def tail_last_try_team(
    remaining: List[Any], removed: ScoreEvent, current: Optional[Side]
) -> Optional[Side]:
    """Conversion state after quick-undo removed ``removed`` from the tail.

    Undoing a conversion gives the conversion back to the side that kicked it.
    Undoing a pending event changes nothing. Otherwise the newest confirmed
    score left in the ledger decides.
    """
    if removed.pending:
        return current
    if removed.score_type == "conversion":
        return removed.team
    for ev in reversed(remaining):
        if isinstance(ev, ScoreEvent) and not ev.pending:
            return ev.team if ev.is_try else None
    return None
