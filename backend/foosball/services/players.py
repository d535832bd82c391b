import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import DEFAULT_RATING
from ..db_errors import is_unique_violation
from ..exceptions import DuplicatePlayer
from ..models import Player, player_name_key

logger = logging.getLogger(__name__)

SAMPLE_PLAYERS = [
    ("Mario", "goalkeeper"),
    ("Luigi", "forward"),
    ("Paolo", "goalkeeper"),
    ("Marco", "forward"),
    ("Giovanni", "goalkeeper"),
    ("Luca", "forward"),
]


async def get_players(session: AsyncSession) -> list[Player]:
    """Return every player, strongest first and alphabetical within a rating."""

    stmt = select(Player).order_by(Player.rating.desc(), Player.name_key.asc())
    return list((await session.execute(stmt)).scalars().all())


async def create_player(session: AsyncSession, name: str, role: str) -> Player:
    normalized_name = name.strip()
    exists = (
        await session.execute(
            select(Player.id).where(Player.name_key == player_name_key(normalized_name))
        )
    ).scalar_one_or_none()
    if exists is not None:
        raise DuplicatePlayer(normalized_name)

    player = Player(
        name=normalized_name,
        name_key=player_name_key(normalized_name),
        role=role,
        rating=DEFAULT_RATING,
        matches_played=0,
        wins=0,
        losses=0,
    )
    session.add(player)
    try:
        await session.commit()
    except IntegrityError as exc:
        # a concurrent registration won the unique index
        await session.rollback()
        if is_unique_violation(exc):
            raise DuplicatePlayer(normalized_name) from exc
        raise
    await session.refresh(player)
    logger.info("Created player %s (%s) with id %s", player.name, player.role, player.id)
    return player


async def seed_sample_players(session: AsyncSession) -> int:
    """Insert the demo roster when no players exist yet; return how many were added."""

    count = (await session.execute(select(func.count()).select_from(Player))).scalar()
    if count:
        return 0
    for name, role in SAMPLE_PLAYERS:
        session.add(
            Player(
                name=name,
                role=role,
                rating=DEFAULT_RATING,
                matches_played=0,
                wins=0,
                losses=0,
            )
        )
    await session.commit()
    logger.info("Inserted %d sample players", len(SAMPLE_PLAYERS))
    return len(SAMPLE_PLAYERS)
