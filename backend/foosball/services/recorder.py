"""Transactional recording of a finished two-a-side match.

``record_match`` is the only code path that changes player ratings or
statistics and the only one that creates match rows. Every attempt runs in
its own session and transaction: the four player rows are read under a write
lock, updated, and committed together with the new match row, or nothing is
written at all.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from .. import config, db
from ..db_errors import is_store_unavailable, is_transaction_conflict
from ..exceptions import (
    DomainException,
    InvalidTeamComposition,
    StoreUnavailable,
    TransactionConflict,
    UnknownPlayer,
)
from ..models import Match, Player
from ..time_utils import utcnow
from .rating import compute_rating, round_half_up, team_rating

logger = logging.getLogger(__name__)

TEAM_SIZE = 2


@dataclass(frozen=True)
class RatingChangeResult:
    team1_delta: float
    team2_delta: float


@dataclass(frozen=True)
class MatchResult:
    match_id: int
    team1: list[int]
    team2: list[int]
    winner: int
    played_at: datetime
    rating_changes: RatingChangeResult


def validate_teams(
    team1: Sequence[int], team2: Sequence[int], winner: int
) -> tuple[list[int], list[int]]:
    """Check roster shape and winner before any database work happens."""

    team1 = list(team1)
    team2 = list(team2)
    if len(team1) != TEAM_SIZE or len(team2) != TEAM_SIZE:
        raise InvalidTeamComposition(
            f"each team must have exactly {TEAM_SIZE} players"
        )
    if winner not in (1, 2):
        raise InvalidTeamComposition("winner must be 1 or 2")
    everyone = team1 + team2
    if len(set(everyone)) != len(everyone):
        duplicates = sorted({pid for pid in everyone if everyone.count(pid) > 1})
        raise InvalidTeamComposition(
            "a player can only appear once per match: "
            + ", ".join(str(pid) for pid in duplicates)
        )
    return team1, team2


async def _load_players(session: AsyncSession, ids: list[int]) -> dict[int, Player]:
    # Lock rows in id order so concurrent recorders cannot deadlock each other.
    rows = (
        await session.execute(
            select(Player)
            .where(Player.id.in_(ids))
            .order_by(Player.id)
            .with_for_update()
        )
    ).scalars().all()
    players = {p.id: p for p in rows}
    missing = set(ids) - set(players)
    if missing:
        raise UnknownPlayer(missing)
    return players


def _apply_result(player: Player, delta: float, won: bool) -> None:
    player.rating = round_half_up(player.rating + delta)
    player.matches_played += 1
    if won:
        player.wins += 1
    else:
        player.losses += 1


async def _insert_match(
    session: AsyncSession,
    team1: list[int],
    team2: list[int],
    winner: int,
    changes: RatingChangeResult,
) -> Match:
    match = Match(
        team1_player1_id=team1[0],
        team1_player2_id=team1[1],
        team2_player1_id=team2[0],
        team2_player2_id=team2[1],
        winner=winner,
        team1_delta=changes.team1_delta,
        team2_delta=changes.team2_delta,
        played_at=utcnow(),
    )
    session.add(match)
    await session.flush()
    return match


async def _record_once(
    factory: sessionmaker,
    team1: list[int],
    team2: list[int],
    winner: int,
    k: int,
) -> MatchResult:
    async with factory() as session:
        async with session.begin():
            players = await _load_players(session, team1 + team2)

            rating1 = team_rating(*(players[pid].rating for pid in team1))
            rating2 = team_rating(*(players[pid].rating for pid in team2))
            outcome1 = 1 if winner == 1 else 0
            outcome2 = 1 if winner == 2 else 0

            new_rating1 = compute_rating(rating1, rating2, outcome1, k)
            new_rating2 = compute_rating(rating2, rating1, outcome2, k)
            changes = RatingChangeResult(
                team1_delta=new_rating1 - rating1,
                team2_delta=new_rating2 - rating2,
            )

            for pid in team1:
                _apply_result(players[pid], changes.team1_delta, winner == 1)
            for pid in team2:
                _apply_result(players[pid], changes.team2_delta, winner == 2)
            await session.flush()

            match = await _insert_match(session, team1, team2, winner, changes)
            match_id = match.id
            played_at = match.played_at

    return MatchResult(
        match_id=match_id,
        team1=team1,
        team2=team2,
        winner=winner,
        played_at=played_at,
        rating_changes=changes,
    )


def _translate_store_error(exc: BaseException) -> DomainException | None:
    if isinstance(exc, SQLAlchemyError) and is_transaction_conflict(exc):
        return TransactionConflict()
    if is_store_unavailable(exc):
        return StoreUnavailable(f"database error: {exc}")
    return None


async def record_match(
    team1: Sequence[int],
    team2: Sequence[int],
    winner: int,
    *,
    session_factory: sessionmaker | None = None,
    k: int | None = None,
    max_attempts: int | None = None,
    backoff_seconds: float | None = None,
) -> MatchResult:
    """Apply the result of one match to its four players and store the match.

    Raises ``InvalidTeamComposition`` or ``UnknownPlayer`` for bad input,
    which are never retried. ``TransactionConflict`` and ``StoreUnavailable``
    are retried with exponential backoff, each attempt in a fresh transaction
    that re-reads the current ratings; the last one is raised once
    ``max_attempts`` is used up.
    """

    team1, team2 = validate_teams(team1, team2, winner)
    factory = session_factory or db.session_factory()
    k = config.K_FACTOR if k is None else k
    attempts = max_attempts or config.RECORD_MATCH_MAX_ATTEMPTS
    delay = (
        config.RECORD_MATCH_BACKOFF_SECONDS
        if backoff_seconds is None
        else backoff_seconds
    )

    attempt = 0
    while True:
        attempt += 1
        try:
            result = await _record_once(factory, team1, team2, winner, k)
        except (SQLAlchemyError, OSError) as exc:
            error = _translate_store_error(exc)
            if error is None:
                raise
            if attempt >= attempts:
                logger.error(
                    "Recording match %s vs %s failed after %d attempt(s): %s",
                    team1,
                    team2,
                    attempt,
                    error.code,
                )
                raise error from exc
            logger.warning(
                "Recording match %s vs %s hit %s (attempt %d/%d); retrying",
                team1,
                team2,
                error.code,
                attempt,
                attempts,
            )
            await asyncio.sleep(delay * 2 ** (attempt - 1))
            continue

        logger.info(
            "Recorded match %s: %s vs %s, winner team %d, deltas %+g/%+g",
            result.match_id,
            team1,
            team2,
            winner,
            result.rating_changes.team1_delta,
            result.rating_changes.team2_delta,
        )
        return result
