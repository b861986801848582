"""FastAPI application entry point with lifespan for storage, clients and scheduler init."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from core.errors import StorageError
from core.kalshi_client import KalshiClient
from core.llm_client import AnthropicClient
from core.repository import create_repository
from core.scheduler import SchedulerManager
from services.export_service import ExportService
from services.matcher import SemanticMatcher
from services.poller import PollerService
from api.router import api_router

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Startup ---
    logger.info("Starting up, storage backend: %s", config.STORAGE_BACKEND)
    repo = create_repository(
        config.STORAGE_BACKEND,
        sqlite_path=config.SQLITE_PATH,
        es_host=config.ES_HOST,
    )
    await repo.init()

    kalshi = KalshiClient(
        base_url=config.KALSHI_API_BASE,
        timeout=config.KALSHI_TIMEOUT,
        rate_limit_delay=config.KALSHI_RATE_LIMIT_DELAY,
    )
    llm = AnthropicClient(
        api_key=config.ANTHROPIC_API_KEY,
        model=config.ANTHROPIC_MODEL,
        max_tokens=config.LLM_MAX_TOKENS,
        temperature=config.LLM_TEMPERATURE,
        timeout=config.LLM_TIMEOUT,
    )
    if not config.ANTHROPIC_API_KEY:
        logger.warning("ANTHROPIC_API_KEY not set, polls will find no matches")

    poller = PollerService(
        repo,
        kalshi,
        SemanticMatcher(llm),
        max_pages=config.POLL_MAX_PAGES,
        page_size=config.POLL_PAGE_SIZE,
        batch_size=config.POLL_BATCH_SIZE,
        page_delay=config.POLL_PAGE_DELAY,
        budget_seconds=config.POLL_BUDGET_SECONDS,
    )
    scheduler = SchedulerManager(poller, interval_minutes=config.POLL_INTERVAL_MINUTES)
    await scheduler.start()

    # Store on app state
    app.state.repository = repo
    app.state.kalshi = kalshi
    app.state.llm = llm
    app.state.poller = poller
    app.state.export_service = ExportService(repo)
    app.state.scheduler = scheduler

    logger.info("Backend ready")

    yield

    # --- Shutdown ---
    logger.info("Shutting down")
    await scheduler.shutdown()
    await kalshi.close()
    await llm.close()
    await repo.close()


app = FastAPI(title="Kalshi Market Screener", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)
