from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
)
from sqlalchemy.sql import func

from .config import DEFAULT_RATING
from .db import Base

PLAYER_ROLES = ("goalkeeper", "forward")


def player_name_key(name: str) -> str:
    """Return the case-folded form names are compared by.

    SQL ``lower()`` only folds ASCII on SQLite, so the key is computed here.
    """

    return name.strip().casefold()


def _default_name_key(context):
    return player_name_key(context.get_current_parameters()["name"])


class Player(Base):
    __tablename__ = "player"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    name_key = Column(String(255), nullable=False, default=_default_name_key)
    role = Column(String(20), nullable=False)
    rating = Column(Integer, nullable=False, default=DEFAULT_RATING)
    matches_played = Column(Integer, nullable=False, default=0)
    wins = Column(Integer, nullable=False, default=0)
    losses = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("uq_player_name_key", "name_key", unique=True),
        Index("ix_player_rating", "rating"),
        CheckConstraint(
            "role IN ('goalkeeper', 'forward')", name="ck_player_role"
        ),
        CheckConstraint(
            "matches_played = wins + losses", name="ck_player_match_counts"
        ),
    )


class Match(Base):
    __tablename__ = "match"
    id = Column(Integer, primary_key=True, autoincrement=True)
    # slot 1 is the goalkeeper, slot 2 the forward
    team1_player1_id = Column(Integer, ForeignKey("player.id"), nullable=False)
    team1_player2_id = Column(Integer, ForeignKey("player.id"), nullable=False)
    team2_player1_id = Column(Integer, ForeignKey("player.id"), nullable=False)
    team2_player2_id = Column(Integer, ForeignKey("player.id"), nullable=False)
    winner = Column(SmallInteger, nullable=False)
    team1_delta = Column(Float, nullable=False)
    team2_delta = Column(Float, nullable=False)
    played_at = Column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("winner IN (1, 2)", name="ck_match_winner"),
        Index("ix_match_played_at", "played_at"),
    )

    @property
    def team1(self) -> list[int]:
        return [self.team1_player1_id, self.team1_player2_id]

    @property
    def team2(self) -> list[int]:
        return [self.team2_player1_id, self.team2_player2_id]
