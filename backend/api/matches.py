"""Match listing, acknowledgement and export API endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Request, HTTPException, Query
from fastapi.responses import StreamingResponse

from core.repository import DEFAULT_MATCH_LIMIT
from models.match import MarkSeenRequest

router = APIRouter()


@router.get("/matches")
async def list_matches(request: Request, limit: int = Query(DEFAULT_MATCH_LIMIT, ge=1, le=1000)):
    repo = request.app.state.repository
    return await repo.get_matches(limit=limit)


@router.patch("/matches")
async def mark_matches_seen(request: Request, body: MarkSeenRequest):
    if body.ids is None:
        raise HTTPException(400, "ids array required")
    repo = request.app.state.repository
    updated = await repo.mark_matches_seen(body.ids)
    return {"ok": True, "updated": updated}


@router.get("/matches/export")
async def export_matches_xlsx(request: Request, limit: int = Query(1000, ge=1, le=10000)):
    """Export current matches as an Excel file download."""
    svc = request.app.state.export_service
    output = await svc.export_matches_xlsx(limit=limit)

    now_str = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    filename = f"matches_{now_str}.xlsx"

    return StreamingResponse(
        output,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
