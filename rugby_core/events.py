"""Match event variants and the ledger helpers that order them.

Every event is a frozen pydantic model tagged by its ``type`` field, so a
persisted log entry can be validated straight back into the right variant.
Python attributes are snake_case; the persisted form uses camelCase aliases,
matching the log shape stored by the match history.
"""
from __future__ import annotations

from typing import Annotated, Any, Iterable, List, Literal, Optional, Self, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic.alias_generators import to_camel

from .constants import POINTS, SIN_BIN_SECONDS, TRY_KINDS


class _EventBase(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    id: str = Field(..., min_length=1)
    timestamp: int = Field(..., ge=0, description="Creation time, epoch ms")
    half: int = Field(1, ge=1)
    match_time: int = Field(0, ge=0, description="Elapsed match-clock seconds")

    @property
    def minute(self) -> int:
        return self.match_time // 60


class ScoreEvent(_EventBase):
    type: Literal["score"] = "score"
    team: Literal["home", "away"]
    score_type: Literal["try", "conversion", "penalty", "drop-goal", "penalty-try"]
    points: int = 0
    player_id: Optional[str] = None
    pending: bool = False

    @model_validator(mode="before")
    @classmethod
    def fill_points(cls, data: Any) -> Any:
        """Derive points from the score kind when the caller leaves them out"""
        if isinstance(data, dict):
            kind = data.get("score_type", data.get("scoreType"))
            if data.get("points") is None and kind in POINTS:
                data = {**data, "points": POINTS[kind]}
        return data

    @model_validator(mode="after")
    def check_points(self) -> Self:
        expected = POINTS[self.score_type]
        if self.points != expected:
            raise ValueError(
                f"{self.score_type} is worth {expected} points, got {self.points}"
            )
        return self

    @property
    def is_try(self) -> bool:
        return self.score_type in TRY_KINDS


class CardEvent(_EventBase):
    type: Literal["card"] = "card"
    team: Literal["home", "away"]
    player_id: str = Field(..., min_length=1)
    card_type: Literal["yellow", "red"]
    return_time: Optional[int] = None
    returned: bool = False

    @model_validator(mode="before")
    @classmethod
    def fill_return_time(cls, data: Any) -> Any:
        """Yellow cards always carry a return time; older logs may omit it"""
        if isinstance(data, dict):
            kind = data.get("card_type", data.get("cardType"))
            current = data.get("return_time", data.get("returnTime"))
            if kind == "yellow" and current is None:
                match_time = data.get("match_time", data.get("matchTime")) or 0
                data = {**data, "return_time": int(match_time) + SIN_BIN_SECONDS}
                data.pop("returnTime", None)
        return data

    @model_validator(mode="after")
    def check_return_time(self) -> Self:
        if self.card_type == "red" and self.return_time is not None:
            raise ValueError("red cards have no return time")
        return self


class SubstitutionEvent(_EventBase):
    type: Literal["substitution"] = "substitution"
    team: Literal["home", "away"]
    off_player_id: str = Field(..., min_length=1)
    on_player_id: str = Field(..., min_length=1)


class CardReturnEvent(_EventBase):
    type: Literal["card-return"] = "card-return"
    card_id: str = Field(..., min_length=1)
    team: Literal["home", "away"]
    player_id: str = Field(..., min_length=1)


class SystemEvent(_EventBase):
    type: Literal["match-start", "half-time", "match-end"]


MatchEvent = Annotated[
    Union[ScoreEvent, CardEvent, SubstitutionEvent, CardReturnEvent, SystemEvent],
    Field(discriminator="type"),
]

_LOG_ADAPTER: TypeAdapter[List[MatchEvent]] = TypeAdapter(List[MatchEvent])

# Event kinds the quick-undo may remove
UNDOABLE_TYPES = (ScoreEvent, CardEvent, SubstitutionEvent)


def sort_log(events: Iterable[Any]) -> List[Any]:
    """Order events chronologically; equal timestamps keep insertion order."""
    return sorted(events, key=lambda ev: ev.timestamp)


def parse_log(raw: Iterable[dict]) -> List[Any]:
    """Validate a persisted log (camelCase dicts) back into event models.

    Raises:
        pydantic.ValidationError: if an entry is not a known event variant
    """
    return sort_log(_LOG_ADAPTER.validate_python(list(raw)))


def dump_log(events: Iterable[Any]) -> List[dict]:
    """Serialize events to the persisted camelCase shape (with ``minute``)."""
    dumped: List[dict] = []
    for ev in sort_log(events):
        entry = ev.model_dump(by_alias=True)
        entry["minute"] = ev.minute
        dumped.append(entry)
    return dumped


def find_event(events: Iterable[Any], event_id: str | None, kind: type | None = None):
    """Return the event with ``event_id`` (optionally of a given variant), or None."""
    if not event_id:
        return None
    for ev in events:
        if ev.id == event_id and (kind is None or isinstance(ev, kind)):
            return ev
    return None


def events_of(events: Iterable[Any], kind: type) -> List[Any]:
    return [ev for ev in events if isinstance(ev, kind)]
