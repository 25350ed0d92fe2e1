"""Sin-bin timers derived from yellow cards and the match clock."""
from __future__ import annotations

from typing import Any, Iterable, List

from .constants import SIN_BIN_WARNING_SECONDS
from .events import CardEvent
from .types import SinBinEntry


def is_sin_bin_active(card: CardEvent, elapsed_seconds: int) -> bool:
    return (
        card.card_type == "yellow"
        and not card.returned
        and card.return_time is not None
        and elapsed_seconds < card.return_time
    )


def active_sin_bins(cards: Iterable[Any], elapsed_seconds: int) -> List[SinBinEntry]:
    """List yellow cards still being served at ``elapsed_seconds``.

    ``warning`` flags the last minute of the window; it is a display hint only.
    """
    entries: List[SinBinEntry] = []
    for card in cards:
        if not isinstance(card, CardEvent) or not is_sin_bin_active(card, elapsed_seconds):
            continue
        remaining = card.return_time - elapsed_seconds
        entries.append(
            {
                "cardId": card.id,
                "team": card.team,
                "playerId": card.player_id,
                "matchTime": card.match_time,
                "returnTime": card.return_time,
                "remaining": remaining,
                "warning": remaining <= SIN_BIN_WARNING_SECONDS,
            }
        )
    return entries
