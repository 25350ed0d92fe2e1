from .match import (
    CommandOutcome,
    apply_command,
    default_config,
    default_state,
    normalize_players,
)
from .events import (
    CardEvent,
    CardReturnEvent,
    MatchEvent,
    ScoreEvent,
    SubstitutionEvent,
    SystemEvent,
    dump_log,
    parse_log,
)
from .types import (
    ClockDisplay,
    CommandPayload,
    MatchConfig,
    MatchSnapshot,
    MatchState,
    Player,
    Scoreboard,
    SinBinEntry,
    SquadStatus,
)
from .validation import InputSanitizer, ValidatedCmd, ValidatedConfig
from .scoreboard import compute_scoreboard, is_conversion_eligible, points_for
from .squad import resolve_squad
from .sin_bin import active_sin_bins
from .clock import clock_display, format_clock
from .snapshot import build_snapshot, player_stat_deltas, restore_state
from .roster import InMemoryRoster, RosterLookup
from .store import JsonMatchStore, MatchStore, PersistenceError
from .session import MatchSession

__all__ = [
    "CommandOutcome",
    "apply_command",
    "default_config",
    "default_state",
    "normalize_players",
    "CardEvent",
    "CardReturnEvent",
    "MatchEvent",
    "ScoreEvent",
    "SubstitutionEvent",
    "SystemEvent",
    "dump_log",
    "parse_log",
    "ClockDisplay",
    "CommandPayload",
    "MatchConfig",
    "MatchSnapshot",
    "MatchState",
    "Player",
    "Scoreboard",
    "SinBinEntry",
    "SquadStatus",
    "InputSanitizer",
    "ValidatedCmd",
    "ValidatedConfig",
    "compute_scoreboard",
    "is_conversion_eligible",
    "points_for",
    "resolve_squad",
    "active_sin_bins",
    "clock_display",
    "format_clock",
    "build_snapshot",
    "player_stat_deltas",
    "restore_state",
    "InMemoryRoster",
    "RosterLookup",
    "JsonMatchStore",
    "MatchStore",
    "PersistenceError",
    "MatchSession",
]
