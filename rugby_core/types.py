"""Type definitions for match state, commands and derived views."""
from __future__ import annotations

from typing import Any, List, Literal, Optional, TypedDict

Side = Literal["home", "away"]
ScoreKind = Literal["try", "conversion", "penalty", "drop-goal", "penalty-try"]
CardType = Literal["yellow", "red"]
MatchStatus = Literal["not_started", "running", "paused", "half_break", "completed"]


class Player(TypedDict, total=False):
    """A match-day squad member, referenced from events by id."""
    id: str
    number: int
    name: str
    position: str
    isStarter: bool
    team: Side


class MatchConfig(TypedDict, total=False):
    """Per-match settings chosen before kick-off."""
    homeTeam: str
    awayTeam: str
    homeColor: str
    awayColor: str
    halfDuration: int  # seconds
    playerTracking: bool
    cardTracking: bool
    substitutions: bool
    competition: str
    venue: str
    referee: str


class MatchState(TypedDict, total=False):
    """
    TypedDict representing one in-memory match session.

    Scores are not stored here; they are always folded from ``log``.
    """
    # Session management
    sessionId: str
    matchId: Optional[str]  # id of the persisted match row, once saved
    version: int  # incremented on every applied command

    # Lifecycle
    status: MatchStatus
    currentHalf: int
    elapsedSeconds: int
    injuryTime: int

    # Ledger
    log: List[Any]  # MatchEvent models, chronological
    lastTimestamp: int  # epoch ms of the newest event, keeps timestamps monotonic
    lastTryTeam: Optional[Side]

    # Squad and settings
    players: List[Player]
    config: MatchConfig


class CommandPayload(TypedDict, total=False):
    """
    TypedDict for command payloads sent to apply_command().

    Fields vary by command type.
    """
    # Common
    type: str
    eventId: Optional[str]  # optional override for the generated event id
    timestamp: Optional[int]  # optional override for the event creation time

    # ADD_SCORE / ADD_CARD / ADD_SUBSTITUTION
    team: Optional[Side]
    scoreType: Optional[ScoreKind]
    playerId: Optional[str]
    pending: Optional[bool]
    cardType: Optional[CardType]
    offPlayerId: Optional[str]
    onPlayerId: Optional[str]
    newPlayer: Optional[Player]

    # RESOLVE_PENDING
    approved: Optional[bool]

    # RETURN_FROM_SIN_BIN / REMOVE_* / REASSIGN_SCORE_PLAYER
    cardId: Optional[str]
    targetId: Optional[str]


class Scoreboard(TypedDict):
    homeScore: int
    awayScore: int
    lastTryTeam: Optional[Side]


class SquadStatus(TypedDict):
    onPitch: List[Player]
    onBench: List[Player]


class SinBinEntry(TypedDict):
    cardId: str
    team: Side
    playerId: str
    matchTime: int
    returnTime: int
    remaining: int
    warning: bool


class ClockDisplay(TypedDict):
    main: str
    overtime: Optional[str]
    isOvertime: bool


class MatchSnapshot(TypedDict, total=False):
    """Shape handed to the persistence collaborator on save/finish."""
    homeTeamName: str
    awayTeamName: str
    homeColor: str
    awayColor: str
    homeScore: int
    awayScore: int
    halfDuration: int
    competition: str
    venue: str
    referee: str
    currentHalf: int
    elapsedSeconds: int
    injuryTime: int
    config: dict[str, bool]
    log: List[dict[str, Any]]
    playerIds: List[str]


# Type alias matching the reducer's Dict[str, Any] usage
StateDict = MatchState
CmdDict = CommandPayload
