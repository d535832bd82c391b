from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..exceptions import ProblemDetail
from ..ratelimit import limiter, write_rate_limit
from ..schemas import PlayerCreate, PlayerOut
from ..services import create_player, get_players

router = APIRouter(
    prefix="/players",
    tags=["players"],
    responses={409: {"model": ProblemDetail}},
)


@router.get("", response_model=list[PlayerOut])
async def list_players(session: AsyncSession = Depends(get_session)):
    players = await get_players(session)
    return [PlayerOut.model_validate(p) for p in players]


@router.post("", response_model=PlayerOut, status_code=201)
@limiter.limit(write_rate_limit)
async def create_player_route(
    request: Request,
    body: PlayerCreate,
    session: AsyncSession = Depends(get_session),
):
    player = await create_player(session, body.name, body.role)
    return PlayerOut.model_validate(player)
