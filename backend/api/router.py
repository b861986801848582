"""Main API router — aggregates all sub-routers."""

from fastapi import APIRouter

from api.watchlist import router as watchlist_router
from api.matches import router as matches_router
from api.jobs import router as jobs_router

api_router = APIRouter(prefix="/api")

api_router.include_router(watchlist_router, tags=["Watchlist"])
api_router.include_router(matches_router, tags=["Matches"])
api_router.include_router(jobs_router, tags=["Poll"])
