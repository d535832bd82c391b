import asyncio
import sqlite3

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from foosball import db
from foosball.exceptions import (
    InvalidTeamComposition,
    StoreUnavailable,
    TransactionConflict,
    UnknownPlayer,
)
from foosball.models import Match, Player
from foosball.services import recorder
from foosball.services.recorder import record_match, validate_teams


async def _match_count() -> int:
    async with db.session_factory()() as session:
        return (await session.execute(select(func.count()).select_from(Match))).scalar()


def _snapshot(players):
    return [(p.rating, p.matches_played, p.wins, p.losses) for p in players]


@pytest.mark.anyio
async def test_equal_teams_winner_gains_sixteen():
    a, b, c, d = await add_players(("A", 1500), ("B", 1500), ("C", 1500), ("D", 1500))

    result = await record_match([a, b], [c, d], 1)

    assert result.rating_changes.team1_delta == 16
    assert result.rating_changes.team2_delta == -16
    assert result.team1 == [a, b]
    assert result.team2 == [c, d]
    assert result.winner == 1
    assert result.match_id is not None

    pa, pb, pc, pd = await fetch_players([a, b, c, d])
    assert [p.rating for p in (pa, pb, pc, pd)] == [1516, 1516, 1484, 1484]
    assert all(p.matches_played == 1 for p in (pa, pb, pc, pd))
    assert (pa.wins, pa.losses) == (1, 0)
    assert (pb.wins, pb.losses) == (1, 0)
    assert (pc.wins, pc.losses) == (0, 1)
    assert (pd.wins, pd.losses) == (0, 1)
    assert await _match_count() == 1


@pytest.mark.anyio
async def test_team_two_win_updates_counters():
    a, b, c, d = await add_players(("A", 1600), ("B", 1400), ("C", 1500), ("D", 1500))

    result = await record_match([a, b], [c, d], 2)

    assert result.rating_changes.team1_delta == -16
    assert result.rating_changes.team2_delta == 16
    pa, pb, pc, pd = await fetch_players([a, b, c, d])
    # the same delta is applied to both teammates regardless of their own rating
    assert (pa.rating, pb.rating) == (1584, 1384)
    assert (pc.rating, pd.rating) == (1516, 1516)
    assert (pc.wins, pd.wins) == (1, 1)
    assert (pa.losses, pb.losses) == (1, 1)


@pytest.mark.anyio
async def test_fractional_team_mean_rounds_each_player():
    a, b, c, d = await add_players(("A", 1500), ("B", 1501), ("C", 1500), ("D", 1500))

    result = await record_match([a, b], [c, d], 1)

    assert result.rating_changes.team1_delta == 15.5
    assert result.rating_changes.team2_delta == -16
    pa, pb, pc, pd = await fetch_players([a, b, c, d])
    assert (pa.rating, pb.rating) == (1516, 1517)
    assert (pc.rating, pd.rating) == (1484, 1484)


@pytest.mark.anyio
async def test_match_row_stores_rosters_and_deltas():
    a, b, c, d = await add_players(("A", 1500), ("B", 1500), ("C", 1500), ("D", 1500))

    result = await record_match([a, b], [c, d], 1)

    async with db.session_factory()() as session:
        match = await session.get(Match, result.match_id)
    assert match.team1 == [a, b]
    assert match.team2 == [c, d]
    assert match.winner == 1
    assert (match.team1_delta, match.team2_delta) == (16, -16)
    assert match.played_at is not None


@pytest.mark.anyio
async def test_unknown_player_changes_nothing():
    a, b, c = await add_players(("A", 1500), ("B", 1500), ("C", 1500))
    before = _snapshot(await fetch_players([a, b, c]))

    with pytest.raises(UnknownPlayer) as exc:
        await record_match([a, b], [c, 9999], 1)

    assert exc.value.player_ids == [9999]
    assert exc.value.retryable is False
    assert _snapshot(await fetch_players([a, b, c])) == before
    assert await _match_count() == 0


@pytest.mark.parametrize(
    "team1, team2, winner, message",
    [
        ([1, 2], [3], 1, "exactly 2 players"),
        ([1, 2, 3], [4, 5], 1, "exactly 2 players"),
        ([1, 2], [3, 4], 3, "winner must be 1 or 2"),
        ([1, 2], [2, 3], 1, "only appear once"),
        ([1, 1], [3, 4], 2, "only appear once"),
    ],
)
def test_invalid_team_composition(team1, team2, winner, message):
    with pytest.raises(InvalidTeamComposition) as exc:
        validate_teams(team1, team2, winner)
    assert message in exc.value.detail


@pytest.mark.anyio
async def test_duplicate_player_rejected_before_touching_store():
    a, b, c = await add_players(("A", 1500), ("B", 1500), ("C", 1500))

    with pytest.raises(InvalidTeamComposition):
        await record_match([a, b], [b, c], 1)

    assert [p.matches_played for p in await fetch_players([a, b, c])] == [0, 0, 0]


@pytest.mark.anyio
async def test_failure_before_match_insert_rolls_back_players(monkeypatch):
    a, b, c, d = await add_players(("A", 1500), ("B", 1500), ("C", 1500), ("D", 1500))
    before = _snapshot(await fetch_players([a, b, c, d]))

    async def exploding_insert(session, *args, **kwargs):
        # player updates are already flushed to the database at this point
        flushed = (
            await session.execute(select(Player.matches_played).where(Player.id == a))
        ).scalar_one()
        assert flushed == 1
        raise RuntimeError("insert failed")

    monkeypatch.setattr(recorder, "_insert_match", exploding_insert)

    with pytest.raises(RuntimeError, match="insert failed"):
        await record_match([a, b], [c, d], 1)

    assert _snapshot(await fetch_players([a, b, c, d])) == before
    assert await _match_count() == 0


@pytest.mark.anyio
async def test_conflict_is_retried_then_succeeds(monkeypatch):
    a, b, c, d = await add_players(("A", 1500), ("B", 1500), ("C", 1500), ("D", 1500))
    real_record_once = recorder._record_once
    calls = []

    async def flaky(*args, **kwargs):
        calls.append(1)
        if len(calls) == 1:
            raise OperationalError(
                "SELECT", {}, sqlite3.OperationalError("database is locked")
            )
        return await real_record_once(*args, **kwargs)

    monkeypatch.setattr(recorder, "_record_once", flaky)

    result = await record_match([a, b], [c, d], 1, max_attempts=3, backoff_seconds=0)

    assert len(calls) == 2
    assert result.rating_changes.team1_delta == 16
    assert [p.matches_played for p in await fetch_players([a, b, c, d])] == [1, 1, 1, 1]


@pytest.mark.anyio
async def test_conflict_surfaces_after_attempts_exhausted(monkeypatch):
    calls = []

    async def always_locked(*args, **kwargs):
        calls.append(1)
        raise OperationalError(
            "SELECT", {}, sqlite3.OperationalError("database is locked")
        )

    monkeypatch.setattr(recorder, "_record_once", always_locked)

    with pytest.raises(TransactionConflict) as exc:
        await record_match([1, 2], [3, 4], 1, max_attempts=2, backoff_seconds=0)

    assert len(calls) == 2
    assert exc.value.retryable is True
    assert exc.value.status_code == 409


@pytest.mark.anyio
async def test_connection_failure_maps_to_store_unavailable(monkeypatch):
    async def unreachable(*args, **kwargs):
        raise ConnectionRefusedError("connection refused")

    monkeypatch.setattr(recorder, "_record_once", unreachable)

    with pytest.raises(StoreUnavailable) as exc:
        await record_match([1, 2], [3, 4], 1, max_attempts=1)

    assert exc.value.retryable is True
    assert exc.value.status_code == 503


@pytest.mark.anyio
async def test_other_database_errors_propagate_unchanged(monkeypatch):
    calls = []

    async def broken(*args, **kwargs):
        calls.append(1)
        raise IntegrityError("INSERT", {}, sqlite3.IntegrityError("CHECK constraint failed"))

    monkeypatch.setattr(recorder, "_record_once", broken)

    with pytest.raises(IntegrityError):
        await record_match([1, 2], [3, 4], 1, max_attempts=3, backoff_seconds=0)

    assert len(calls) == 1


def test_concurrent_matches_sharing_a_player_both_apply(tmp_path):
    async def run():
        engine = db.build_engine(f"sqlite+aiosqlite:///{tmp_path / 'concurrent.db'}")
        factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(db.Base.metadata.create_all)
            async with factory() as session:
                players = [Player(name=name, role="forward") for name in "ABCDEFG"]
                session.add_all(players)
                await session.commit()
                ids = [p.id for p in players]

            shared = ids[0]
            results = await asyncio.gather(
                record_match([shared, ids[1]], [ids[2], ids[3]], 1, session_factory=factory),
                record_match([ids[4], ids[5]], [shared, ids[6]], 1, session_factory=factory),
            )
            async with factory() as session:
                player = await session.get(Player, shared)
                matches = (
                    await session.execute(select(func.count()).select_from(Match))
                ).scalar()
            return player, matches, results
        finally:
            await engine.dispose()

    player, matches, results = asyncio.run(run())

    assert matches == 2
    assert player.matches_played == 2
    assert (player.wins, player.losses) == (1, 1)
    first, second = results
    expected = 1500 + first.rating_changes.team1_delta + second.rating_changes.team2_delta
    assert player.rating == expected
