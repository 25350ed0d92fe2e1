"""Who is on the pitch and who is on the bench (subs, red cards, sin bin)."""
from __future__ import annotations

from typing import Any, Iterable, List, Set

from .events import CardEvent, SubstitutionEvent, sort_log
from .sin_bin import is_sin_bin_active
from .types import Player, Side, SquadStatus


def _shirt_order(player: Player) -> tuple[int, str]:
    return (int(player.get("number") or 0), player.get("id") or "")


def excluded_player_ids(team: Side, cards: Iterable[Any], elapsed_seconds: int) -> Set[str]:
    """Red-carded players plus players currently serving a yellow card."""
    excluded: Set[str] = set()
    for card in cards:
        if not isinstance(card, CardEvent) or card.team != team:
            continue
        if card.card_type == "red" or is_sin_bin_active(card, elapsed_seconds):
            excluded.add(card.player_id)
    return excluded


def on_field_ids(team: Side, players: Iterable[Player], substitutions: Iterable[Any]) -> Set[str]:
    """Starters with every substitution for ``team`` replayed in order."""
    current = {
        p["id"] for p in players if p.get("team") == team and p.get("isStarter")
    }
    for sub in sort_log(s for s in substitutions if isinstance(s, SubstitutionEvent)):
        if sub.team != team:
            continue
        current.discard(sub.off_player_id)
        current.add(sub.on_player_id)
    return current


def resolve_squad(
    team: Side,
    players: Iterable[Player],
    substitutions: Iterable[Any],
    cards: Iterable[Any],
    elapsed_seconds: int,
) -> SquadStatus:
    """Split a team's match-day squad into on-pitch and on-bench lists.

    Pure: works for any elapsed time, so history views can ask "who was on"
    at an earlier point by passing the matching ledger slice and clock.

    Args:
        team: 'home' or 'away'
        players: Match-day squad (both teams may be mixed in)
        substitutions: Substitution events (other event kinds are ignored)
        cards: Card events (other event kinds are ignored)
        elapsed_seconds: Match clock to evaluate sin-bin windows against

    Returns:
        Dict with onPitch (on field and not excluded) and onBench (not on
        field), both sorted by shirt number. Excluded players on the field
        appear in neither list.
    """
    team_players: List[Player] = sorted(
        (p for p in players if p.get("team") == team), key=_shirt_order
    )
    on_field = on_field_ids(team, team_players, substitutions)
    excluded = excluded_player_ids(team, cards, elapsed_seconds)

    on_pitch = [p for p in team_players if p["id"] in on_field and p["id"] not in excluded]
    on_bench = [p for p in team_players if p["id"] not in on_field]
    return {"onPitch": on_pitch, "onBench": on_bench}
