"""Roster lookup capability consumed by the match session."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Protocol

from .validation import InputSanitizer

logger = logging.getLogger(__name__)

STAT_FIELDS = ("gamesPlayed", "tries", "points", "yellowCards", "redCards")


class RosterLookup(Protocol):
    def list_players(self, team_id: str) -> List[dict]:
        ...

    def resolve_player(self, player_id: str) -> Optional[dict]:
        ...


class InMemoryRoster:
    """Team player pools with cumulative career stats.

    Players are plain dicts: id, teamId, number, name, position, isStarter
    plus the counters in STAT_FIELDS.
    """

    def __init__(self, players: Iterable[dict] = ()) -> None:
        self._players: Dict[str, dict] = {}
        for player in players:
            self.add_player(player)

    def add_player(self, player: dict) -> dict:
        if not player.get("id") or not player.get("teamId"):
            raise ValueError("player needs an id and a teamId")
        entry = {
            "id": player["id"],
            "teamId": player["teamId"],
            "number": int(player.get("number") or 0),
            "name": InputSanitizer.sanitize_player_name(player.get("name") or ""),
            "position": player.get("position") or "",
            "isStarter": bool(player.get("isStarter", False)),
        }
        for stat in STAT_FIELDS:
            entry[stat] = int(player.get(stat) or 0)
        self._players[entry["id"]] = entry
        return dict(entry)

    def list_players(self, team_id: str) -> List[dict]:
        """Players of a team sorted by shirt number."""
        players = [dict(p) for p in self._players.values() if p["teamId"] == team_id]
        return sorted(players, key=lambda p: p["number"])

    def resolve_player(self, player_id: str) -> Optional[dict]:
        player = self._players.get(player_id)
        return dict(player) if player is not None else None

    def apply_stat_deltas(self, deltas: Dict[str, Dict[str, int]]) -> None:
        """Add one match's increments; unknown player ids are skipped."""
        for player_id, delta in deltas.items():
            player = self._players.get(player_id)
            if player is None:
                logger.debug(f"Skipping stats for unknown player {player_id}")
                continue
            for stat in STAT_FIELDS:
                player[stat] += int(delta.get(stat, 0))


def match_day_squad(roster: RosterLookup, team_id: str, side: str) -> List[dict]:
    """Roster players of ``team_id`` tagged with the side they play on."""
    return [
        {
            "id": p["id"],
            "number": p.get("number", 0),
            "name": p.get("name", ""),
            "position": p.get("position", ""),
            "isStarter": bool(p.get("isStarter")),
            "team": side,
        }
        for p in roster.list_players(team_id)
    ]
