from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..exceptions import ProblemDetail
from ..schemas import ResetOut
from ..services import reset_all, seed_sample_players

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    responses={403: {"model": ProblemDetail}},
)


@router.post("/reset", response_model=ResetOut)
async def reset_route(
    reseed: bool = False,
    session: AsyncSession = Depends(get_session),
) -> ResetOut:
    await reset_all(session)
    seeded = await seed_sample_players(session) if reseed else 0
    return ResetOut(success=True, seeded=seeded)
