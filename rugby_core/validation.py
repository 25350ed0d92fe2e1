"""
Input validation schemas using Pydantic v2
Validates match commands, new players and match configuration
"""

import logging
import re
from typing import Literal, Optional, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .constants import MAX_HALF_DURATION_MIN, MIN_HALF_DURATION_MIN

logger = logging.getLogger(__name__)

COMMAND_TYPES = {
    "START",
    "TOGGLE_TIMER",
    "TICK",
    "ADD_INJURY_TIME",
    "NEXT_HALF",
    "END",
    "ADD_SCORE",
    "RESOLVE_PENDING",
    "ADD_CARD",
    "RETURN_FROM_SIN_BIN",
    "ADD_SUBSTITUTION",
    "REMOVE_SCORE_EVENT",
    "REMOVE_CARD",
    "REMOVE_SUBSTITUTION",
    "REASSIGN_SCORE_PLAYER",
    "UNDO",
}

# Commands addressing an existing event through targetId
TARGETED_COMMANDS = {
    "RESOLVE_PENDING",
    "REMOVE_SCORE_EVENT",
    "REMOVE_CARD",
    "REMOVE_SUBSTITUTION",
    "REASSIGN_SCORE_PLAYER",
}

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")

# ==================== MODELS ====================


class ValidatedPlayer(BaseModel):
    """Player introduced mid-match (e.g. an unnamed replacement)"""

    id: Optional[str] = Field(None, min_length=1, max_length=64)
    number: int = Field(..., ge=0, le=99, description="Shirt number")
    name: str = Field("", max_length=100)
    position: str = Field("", max_length=50)
    isStarter: bool = False

    model_config = ConfigDict(extra="ignore")


class ValidatedCmd(BaseModel):
    """Match command with per-type required fields"""

    type: str = Field(..., min_length=1, max_length=50, description="Command type")

    # Optional overrides for the generated event id / creation time
    eventId: Optional[str] = Field(None, min_length=1, max_length=64)
    timestamp: Optional[int] = Field(None, ge=0, description="Epoch ms")

    team: Optional[Literal["home", "away"]] = None
    scoreType: Optional[
        Literal["try", "conversion", "penalty", "drop-goal", "penalty-try"]
    ] = None
    playerId: Optional[str] = Field(None, min_length=1, max_length=64)
    pending: Optional[bool] = None
    cardType: Optional[Literal["yellow", "red"]] = None

    offPlayerId: Optional[str] = Field(None, min_length=1, max_length=64)
    onPlayerId: Optional[str] = Field(None, min_length=1, max_length=64)
    newPlayer: Optional[ValidatedPlayer] = None

    approved: Optional[bool] = None
    cardId: Optional[str] = Field(None, min_length=1, max_length=64)
    targetId: Optional[str] = Field(None, min_length=1, max_length=64)

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        """Validate command type is one of allowed types"""
        if v not in COMMAND_TYPES:
            raise ValueError(f"type must be one of {sorted(COMMAND_TYPES)}, got {v}")
        return v

    @model_validator(mode="after")
    def validate_command_fields(self) -> Self:
        """Validate required fields based on command type"""
        cmd_type = self.type

        if cmd_type == "ADD_SCORE":
            if self.team is None:
                raise ValueError("ADD_SCORE requires team")
            if self.scoreType is None:
                raise ValueError("ADD_SCORE requires scoreType")

        elif cmd_type == "ADD_CARD":
            if self.team is None:
                raise ValueError("ADD_CARD requires team")
            if self.playerId is None:
                raise ValueError("ADD_CARD requires playerId")
            if self.cardType is None:
                raise ValueError("ADD_CARD requires cardType")

        elif cmd_type == "ADD_SUBSTITUTION":
            if self.team is None:
                raise ValueError("ADD_SUBSTITUTION requires team")
            if self.offPlayerId is None or self.onPlayerId is None:
                raise ValueError("ADD_SUBSTITUTION requires offPlayerId and onPlayerId")

        elif cmd_type == "RETURN_FROM_SIN_BIN":
            if self.cardId is None:
                raise ValueError("RETURN_FROM_SIN_BIN requires cardId")

        elif cmd_type in TARGETED_COMMANDS:
            if self.targetId is None:
                raise ValueError(f"{cmd_type} requires targetId")
            if cmd_type == "RESOLVE_PENDING" and self.approved is None:
                raise ValueError("RESOLVE_PENDING requires approved")

        return self

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class ValidatedConfig(BaseModel):
    """Match setup as entered before kick-off"""

    homeTeam: str = Field("Home", min_length=1, max_length=100)
    awayTeam: str = Field("Away", min_length=1, max_length=100)
    homeColor: Optional[str] = None
    awayColor: Optional[str] = None
    halfDuration: Optional[int] = Field(None, description="Half length in seconds")
    playerTracking: Optional[bool] = None
    cardTracking: Optional[bool] = None
    substitutions: Optional[bool] = None
    competition: Optional[str] = Field(None, max_length=100)
    venue: Optional[str] = Field(None, max_length=100)
    referee: Optional[str] = Field(None, max_length=100)

    @field_validator("homeTeam", "awayTeam")
    @classmethod
    def validate_team_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) == 0:
            raise ValueError("team name cannot be empty")
        if "<" in v and ">" in v:
            raise ValueError("team name contains HTML tags")
        return v

    @field_validator("homeColor", "awayColor")
    @classmethod
    def validate_color(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not _HEX_COLOR.match(v):
            raise ValueError("colour must be #rrggbb")
        return v.lower()

    @field_validator("halfDuration")
    @classmethod
    def validate_half_duration(cls, v: Optional[int]) -> Optional[int]:
        """Half duration must be between 5 and 60 minutes"""
        if v is None:
            return v
        if v < MIN_HALF_DURATION_MIN * 60 or v > MAX_HALF_DURATION_MIN * 60:
            raise ValueError(
                f"halfDuration must be between {MIN_HALF_DURATION_MIN} and "
                f"{MAX_HALF_DURATION_MIN} minutes"
            )
        return v

    model_config = ConfigDict(extra="ignore")


class InputSanitizer:
    """Utility class for input sanitization"""

    @staticmethod
    def sanitize_string(value: str, max_length: int = 255) -> str:
        """Sanitize string input"""
        if not isinstance(value, str):
            return str(value)[:max_length]

        # Strip whitespace
        value = value.strip()

        # Limit length
        value = value[:max_length]

        # Remove null bytes
        value = value.replace("\0", "")

        return value

    @staticmethod
    def sanitize_player_name(name: str) -> str:
        """Sanitize player name for display - keep accents, apostrophes and hyphens"""
        name = InputSanitizer.sanitize_string(name, 100)

        # Remove control characters and markup/script special chars, keep Unicode letters
        dangerous_chars = r'[<>{}[\]\\|;()&$`"\*\x00-\x1f\x7f]'
        name = re.sub(dangerous_chars, "", name)

        return name.strip()

    @staticmethod
    def validate_and_sanitize_cmd(cmd_dict: dict) -> ValidatedCmd:
        """
        Validate and sanitize command dictionary

        Returns:
            ValidatedCmd: Validated command object

        Raises:
            ValueError: If validation fails
        """
        try:
            return ValidatedCmd(**cmd_dict)
        except Exception as e:
            logger.warning(f"Command validation failed: {e}")
            raise ValueError(f"Invalid command: {str(e)}")

    @staticmethod
    def validate_config(config: dict) -> dict:
        """
        Validate match setup and return only the fields that were given

        Raises:
            ValueError: If validation fails
        """
        try:
            validated = ValidatedConfig(**config)
        except Exception as e:
            logger.warning(f"Match config validation failed: {e}")
            raise ValueError(f"Invalid match config: {str(e)}")
        return validated.model_dump(exclude_none=True)


# ==================== EXPORT ====================

__all__ = [
    "COMMAND_TYPES",
    "ValidatedCmd",
    "ValidatedConfig",
    "ValidatedPlayer",
    "InputSanitizer",
]
