"""Fixed rugby scoring rules and match defaults."""
from __future__ import annotations

from typing import Dict, List

POINTS: Dict[str, int] = {
    "try": 5,
    "conversion": 2,
    "penalty": 3,
    "drop-goal": 3,
    "penalty-try": 7,
}

# Score kinds that open a conversion opportunity
TRY_KINDS = frozenset({"try", "penalty-try"})

SIDES = ("home", "away")
CARD_TYPES = ("yellow", "red")
SYSTEM_EVENT_TYPES = ("match-start", "half-time", "match-end")

SIN_BIN_SECONDS = 600
SIN_BIN_WARNING_SECONDS = 60
INJURY_TIME_INCREMENT = 60

DEFAULT_HALF_DURATION = 40 * 60
MIN_HALF_DURATION_MIN = 5
MAX_HALF_DURATION_MIN = 60

DEFAULT_HOME_COLOR = "#3b82f6"
DEFAULT_AWAY_COLOR = "#ef4444"

# Advisory vibration patterns (milliseconds) attached to command outcomes
HAPTIC_SCORE: List[int] = [50]
HAPTIC_PENDING: List[int] = [100]
HAPTIC_CARD: List[int] = [100, 50, 100]
HAPTIC_SUBSTITUTION: List[int] = [50]
HAPTIC_UNDO: List[int] = [30]
