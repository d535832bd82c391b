from __future__ import annotations

from typing import Any, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Match, Player
from .players import get_players
from .rating import round_half_up


def win_rate(wins: int, matches_played: int) -> float:
    """Return the win percentage (0-100) rounded half-up to one decimal place."""
    if matches_played <= 0:
        return 0.0
    return round_half_up(wins * 1000 / matches_played) / 10


def summarize_players(players: Sequence[Player]) -> dict[str, Any]:
    """Compute league-wide figures from an already ordered player list.

    ``players`` is expected in leaderboard order, so the first entry is the
    best player.
    """
    total = len(players)
    average = (
        round_half_up(sum(p.rating for p in players) / total) if total else 0
    )
    return {
        "total_players": total,
        "goalkeepers": sum(1 for p in players if p.role == "goalkeeper"),
        "forwards": sum(1 for p in players if p.role == "forward"),
        "average_rating": average,
        "best_player": players[0] if players else None,
        "players_with_matches": sum(1 for p in players if p.matches_played > 0),
    }


async def league_statistics(session: AsyncSession) -> dict[str, Any]:
    players = await get_players(session)
    total_matches = (
        await session.execute(select(func.count()).select_from(Match))
    ).scalar()
    summary = summarize_players(players)
    summary["total_matches"] = total_matches or 0
    return summary
