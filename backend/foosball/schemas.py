import re
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MAX_NAME_LENGTH = 100
MIN_NAME_LENGTH = 2
MAX_PLAYER_ID = 999_999

_STRIPPED_CHARS = re.compile(r"[<>\"']")
_WHITESPACE = re.compile(r"\s+")

PlayerRole = Literal["goalkeeper", "forward"]


def sanitize_name(value: str) -> str:
    """Strip markup/quote characters, collapse whitespace and cap the length."""

    cleaned = _STRIPPED_CHARS.sub("", value.strip())
    cleaned = _WHITESPACE.sub(" ", cleaned)
    return cleaned[:MAX_NAME_LENGTH].strip()


class PlayerCreate(BaseModel):
    name: str
    role: PlayerRole

    model_config = ConfigDict(extra="forbid")

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        if not isinstance(value, str):
            raise TypeError("name must be a string")
        cleaned = sanitize_name(value)
        if len(cleaned) < MIN_NAME_LENGTH:
            raise ValueError(
                f"name must be at least {MIN_NAME_LENGTH} characters long"
            )
        return cleaned


class PlayerOut(BaseModel):
    id: int
    name: str
    role: PlayerRole
    rating: int
    matches_played: int = Field(alias="matchesPlayed")
    wins: int
    losses: int
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class MatchCreate(BaseModel):
    team1: list[int] = Field(..., min_length=2, max_length=2)
    team2: list[int] = Field(..., min_length=2, max_length=2)
    winner: Literal[1, 2]

    model_config = ConfigDict(extra="forbid")

    @field_validator("team1", "team2")
    @classmethod
    def _validate_ids(cls, value: list[int]) -> list[int]:
        for pid in value:
            if pid <= 0 or pid > MAX_PLAYER_ID:
                raise ValueError(f"player id {pid} is not valid")
        return value

    @model_validator(mode="after")
    def _players_unique(self) -> "MatchCreate":
        everyone = self.team1 + self.team2
        if len(set(everyone)) != len(everyone):
            raise ValueError("each player can only be selected once")
        return self


class RatingChangesOut(BaseModel):
    team1Delta: float
    team2Delta: float


class MatchRecordedOut(BaseModel):
    id: int
    team1: list[int]
    team2: list[int]
    winner: int
    playedAt: datetime
    ratingChanges: RatingChangesOut


class MatchPlayerNamesOut(BaseModel):
    team1Goalkeeper: str
    team1Forward: str
    team2Goalkeeper: str
    team2Forward: str


class MatchOut(BaseModel):
    id: int
    team1: list[int]
    team2: list[int]
    winner: int
    playedAt: datetime
    ratingChanges: RatingChangesOut
    playerNames: MatchPlayerNamesOut


class StatisticsOut(BaseModel):
    totalPlayers: int
    totalMatches: int
    goalkeepers: int
    forwards: int
    averageRating: int
    bestPlayer: Optional[PlayerOut] = None
    playersWithMatches: int


class ResetOut(BaseModel):
    success: bool
    seeded: int = 0
