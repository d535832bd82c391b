from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..exceptions import ProblemDetail, http_problem
from ..schemas import PlayerOut, StatisticsOut
from ..services import league_statistics
from ..services.export import CSV_EXPORTS, export_csv, export_snapshot

router = APIRouter(tags=["statistics"], responses={400: {"model": ProblemDetail}})


@router.get("/statistics", response_model=StatisticsOut)
async def statistics(session: AsyncSession = Depends(get_session)) -> StatisticsOut:
    summary = await league_statistics(session)
    best = summary["best_player"]
    return StatisticsOut(
        totalPlayers=summary["total_players"],
        totalMatches=summary["total_matches"],
        goalkeepers=summary["goalkeepers"],
        forwards=summary["forwards"],
        averageRating=summary["average_rating"],
        bestPlayer=PlayerOut.model_validate(best) if best is not None else None,
        playersWithMatches=summary["players_with_matches"],
    )


@router.get("/export")
async def export_json(session: AsyncSession = Depends(get_session)) -> JSONResponse:
    snapshot = await export_snapshot(session)
    return JSONResponse(
        content=snapshot,
        headers={"Content-Disposition": 'attachment; filename="foosball_export.json"'},
    )


@router.get("/export/csv/{kind}")
async def export_csv_route(
    kind: str, session: AsyncSession = Depends(get_session)
) -> Response:
    if kind not in CSV_EXPORTS:
        raise http_problem(
            status_code=400,
            detail=f"unsupported export type; expected one of: {', '.join(CSV_EXPORTS)}",
            code="export_type_invalid",
        )
    filename, body = await export_csv(session, kind)
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
