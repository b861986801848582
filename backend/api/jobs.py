"""Poll job control API endpoints."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from models.poll import PollResponse, PollStatus

router = APIRouter()

# Non-ok poll outcomes surfaced to the caller as error statuses
STATUS_CODES: dict[PollStatus, int] = {"busy": 409, "timeout": 504, "failed": 500}


@router.post("/poll", response_model=PollResponse)
async def run_poll(request: Request):
    scheduler = request.app.state.scheduler
    result = await scheduler.run_poll_now()
    body = PollResponse(message=result.message, matched=result.matched)
    code = STATUS_CODES.get(result.status)
    if code:
        return JSONResponse(status_code=code, content=body.model_dump())
    return body


@router.get("/poll/status")
async def get_poll_status(request: Request):
    scheduler = request.app.state.scheduler
    return scheduler.get_status()
