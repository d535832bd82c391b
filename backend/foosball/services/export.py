"""JSON snapshot and CSV exports of the league data."""

from __future__ import annotations

import csv
from datetime import datetime, timezone
from typing import Any, Sequence

import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Player
from ..time_utils import coerce_utc
from .matches import MatchView, get_matches
from .players import get_players
from .stats import win_rate

EXPORT_FORMAT_VERSION = "2.0"
CSV_EXPORTS = ("players", "matches", "leaderboard")

PLAYER_COLUMNS = ["Name", "Role", "Rating", "Matches", "Wins", "Losses", "WinRate"]
MATCH_COLUMNS = [
    "Date",
    "Team1_Goalkeeper",
    "Team1_Forward",
    "Team2_Goalkeeper",
    "Team2_Forward",
    "Winner",
]


def player_record(player: Player) -> dict[str, Any]:
    return {
        "id": player.id,
        "name": player.name,
        "role": player.role,
        "rating": player.rating,
        "matchesPlayed": player.matches_played,
        "wins": player.wins,
        "losses": player.losses,
        "createdAt": coerce_utc(player.created_at).isoformat()
        if player.created_at
        else None,
    }


def match_record(match: MatchView) -> dict[str, Any]:
    return {
        "id": match.id,
        "team1": match.team1,
        "team2": match.team2,
        "winner": match.winner,
        "playedAt": match.played_at.isoformat(),
        "ratingChanges": {
            "team1Delta": match.team1_delta,
            "team2Delta": match.team2_delta,
        },
        "playerNames": {
            "team1Goalkeeper": match.team1_goalkeeper,
            "team1Forward": match.team1_forward,
            "team2Goalkeeper": match.team2_goalkeeper,
            "team2Forward": match.team2_forward,
        },
    }


async def export_snapshot(session: AsyncSession) -> dict[str, Any]:
    players = await get_players(session)
    matches = await get_matches(session)
    return {
        "metadata": {
            "exportedAt": datetime.now(timezone.utc).isoformat(),
            "version": EXPORT_FORMAT_VERSION,
            "totalPlayers": len(players),
            "totalMatches": len(matches),
        },
        "players": [player_record(p) for p in players],
        "matches": [match_record(m) for m in matches],
    }


def _to_csv(frame: pd.DataFrame) -> str:
    return frame.to_csv(index=False, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")


def _player_rows(players: Sequence[Player]) -> list[list[Any]]:
    return [
        [
            p.name,
            p.role,
            p.rating,
            p.matches_played,
            p.wins,
            p.losses,
            f"{win_rate(p.wins, p.matches_played):.1f}%",
        ]
        for p in players
    ]


def players_csv(players: Sequence[Player]) -> str:
    return _to_csv(pd.DataFrame(_player_rows(players), columns=PLAYER_COLUMNS))


def leaderboard_csv(players: Sequence[Player]) -> str:
    frame = pd.DataFrame(_player_rows(players), columns=PLAYER_COLUMNS)
    frame.insert(0, "Position", range(1, len(frame) + 1))
    return _to_csv(frame)


def matches_csv(matches: Sequence[MatchView]) -> str:
    rows = [
        [
            m.played_at.date().isoformat(),
            m.team1_goalkeeper,
            m.team1_forward,
            m.team2_goalkeeper,
            m.team2_forward,
            "Team1" if m.winner == 1 else "Team2",
        ]
        for m in matches
    ]
    return _to_csv(pd.DataFrame(rows, columns=MATCH_COLUMNS))


async def export_csv(session: AsyncSession, kind: str) -> tuple[str, str]:
    """Return ``(filename, csv_text)`` for one of ``CSV_EXPORTS``."""

    if kind not in CSV_EXPORTS:
        raise ValueError(f"unsupported export type {kind!r}")

    stamp = datetime.now(timezone.utc).date().isoformat()
    if kind == "matches":
        body = matches_csv(await get_matches(session))
    elif kind == "leaderboard":
        body = leaderboard_csv(await get_players(session))
    else:
        body = players_csv(await get_players(session))
    return f"{kind}_{stamp}.csv", body
