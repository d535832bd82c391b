import logging
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import app_environment, is_production
from ..exceptions import OperationForbidden
from ..models import Match, Player

logger = logging.getLogger(__name__)


async def reset_all(session: AsyncSession, *, environment: str | None = None) -> None:
    """Delete every match and player. Development only.

    The environment check lives here rather than in the HTTP layer so no
    caller can wipe a production store. ``environment`` can only tighten the
    check: the deployment environment is always consulted as well.
    """

    deployed = app_environment()
    env = environment or deployed
    if is_production(env) or is_production(deployed):
        logger.warning(
            "Refusing to reset the database (environment %r, deployment %r)",
            env,
            deployed,
        )
        raise OperationForbidden("reset is not allowed in production")

    # matches reference players, so they go first
    await session.execute(delete(Match))
    await session.execute(delete(Player))
    await session.commit()
    logger.info("Database reset (environment %r)", env)


async def check_health(session: AsyncSession) -> dict[str, Any]:
    try:
        players = (
            await session.execute(select(func.count()).select_from(Player))
        ).scalar()
        matches = (
            await session.execute(select(func.count()).select_from(Match))
        ).scalar()
    except (SQLAlchemyError, OSError) as exc:
        logger.error("Health check failed: %s", exc)
        return {"connected": False, "error": str(exc)}
    return {
        "connected": True,
        "dialect": session.bind.dialect.name if session.bind is not None else None,
        "players": players,
        "matches": matches,
    }
