"""Watchlist CRUD API endpoints."""

from fastapi import APIRouter, Request, HTTPException

from models.watchlist import WatchlistCreate, WatchlistDelete, WatchlistUpdate

router = APIRouter()


@router.get("/watchlist")
async def list_watchlist(request: Request):
    repo = request.app.state.repository
    return await repo.get_watchlist_items()


@router.post("/watchlist", status_code=201)
async def create_watchlist_item(request: Request, body: WatchlistCreate):
    if not body.query or not body.query.strip():
        raise HTTPException(400, "Query is required")
    repo = request.app.state.repository
    return await repo.create_watchlist_item(body.query)


@router.patch("/watchlist")
async def update_watchlist_item(request: Request, body: WatchlistUpdate):
    if body.id is None:
        raise HTTPException(400, "ID is required")
    if body.query is not None and not body.query.strip():
        raise HTTPException(400, "Query cannot be empty")
    repo = request.app.state.repository
    item = await repo.update_watchlist_item(body.id, query=body.query, active=body.active)
    if item is None:
        raise HTTPException(404, "Watchlist item not found")
    return item


@router.delete("/watchlist")
async def delete_watchlist_item(request: Request, body: WatchlistDelete):
    if body.id is None:
        raise HTTPException(400, "ID is required")
    repo = request.app.state.repository
    deleted = await repo.delete_watchlist_item(body.id)
    if not deleted:
        raise HTTPException(404, "Watchlist item not found")
    return {"ok": True}
