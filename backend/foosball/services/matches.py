from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from ..models import Match, Player
from ..time_utils import coerce_utc


@dataclass(frozen=True)
class MatchView:
    """A stored match together with its participants' current display names."""

    id: int
    team1: list[int]
    team2: list[int]
    winner: int
    played_at: datetime
    team1_delta: float
    team2_delta: float
    team1_goalkeeper: str
    team1_forward: str
    team2_goalkeeper: str
    team2_forward: str


async def get_matches(session: AsyncSession) -> list[MatchView]:
    """Return all matches, most recent first, with participant names joined in."""

    t1p1 = aliased(Player)
    t1p2 = aliased(Player)
    t2p1 = aliased(Player)
    t2p2 = aliased(Player)
    stmt = (
        select(Match, t1p1.name, t1p2.name, t2p1.name, t2p2.name)
        .join(t1p1, Match.team1_player1_id == t1p1.id)
        .join(t1p2, Match.team1_player2_id == t1p2.id)
        .join(t2p1, Match.team2_player1_id == t2p1.id)
        .join(t2p2, Match.team2_player2_id == t2p2.id)
        .order_by(Match.played_at.desc(), Match.id.desc())
    )
    rows = (await session.execute(stmt)).all()
    return [
        MatchView(
            id=m.id,
            team1=m.team1,
            team2=m.team2,
            winner=m.winner,
            played_at=coerce_utc(m.played_at),
            team1_delta=m.team1_delta,
            team2_delta=m.team2_delta,
            team1_goalkeeper=n1,
            team1_forward=n2,
            team2_goalkeeper=n3,
            team2_forward=n4,
        )
        for m, n1, n2, n3, n4 in rows
    ]
