from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..exceptions import ProblemDetail
from ..ratelimit import limiter, write_rate_limit
from ..schemas import (
    MatchCreate,
    MatchOut,
    MatchPlayerNamesOut,
    MatchRecordedOut,
    RatingChangesOut,
)
from ..services import get_matches, record_match
from ..time_utils import coerce_utc

# Resource-only prefix; the API prefix is added in main.py
router = APIRouter(
    prefix="/matches",
    tags=["matches"],
    responses={
        404: {"model": ProblemDetail},
        409: {"model": ProblemDetail},
        422: {"model": ProblemDetail},
        503: {"model": ProblemDetail},
    },
)


@router.get("", response_model=list[MatchOut])
async def list_matches(session: AsyncSession = Depends(get_session)):
    matches = await get_matches(session)
    return [
        MatchOut(
            id=m.id,
            team1=m.team1,
            team2=m.team2,
            winner=m.winner,
            playedAt=m.played_at,
            ratingChanges=RatingChangesOut(
                team1Delta=m.team1_delta, team2Delta=m.team2_delta
            ),
            playerNames=MatchPlayerNamesOut(
                team1Goalkeeper=m.team1_goalkeeper,
                team1Forward=m.team1_forward,
                team2Goalkeeper=m.team2_goalkeeper,
                team2Forward=m.team2_forward,
            ),
        )
        for m in matches
    ]


# The recorder opens its own session per attempt, so no request session here.
@router.post("", response_model=MatchRecordedOut, status_code=201)
@limiter.limit(write_rate_limit)
async def create_match_route(request: Request, body: MatchCreate) -> MatchRecordedOut:
    result = await record_match(body.team1, body.team2, body.winner)
    return MatchRecordedOut(
        id=result.match_id,
        team1=result.team1,
        team2=result.team2,
        winner=result.winner,
        playedAt=coerce_utc(result.played_at),
        ratingChanges=RatingChangesOut(
            team1Delta=result.rating_changes.team1_delta,
            team2Delta=result.rating_changes.team2_delta,
        ),
    )
