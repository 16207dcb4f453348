from contextlib import asynccontextmanager
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from klaim.config import settings
from klaim.core.errors import register_error_handlers
from klaim.core.logging import configure_logging
from klaim.core.redis import close_redis
from klaim.routers import auth, users, assets
from klaim.services.chain_events import chain_event_job

logger = structlog.get_logger(__name__)
scheduler = AsyncIOScheduler()

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL, json_output=settings.LOG_JSON)
    if settings.watched_contracts:
        scheduler.add_job(
            chain_event_job, "interval",
            seconds=settings.EVENT_POLL_INTERVAL_SEC,
            max_instances=1, coalesce=True,
        )
        scheduler.start()
        logger.info("chain_event_watcher_started", contracts=settings.watched_contracts)
    else:
        logger.info("chain_event_watcher_disabled")
    yield
    if scheduler.running:
        scheduler.shutdown()
    await close_redis()

app = FastAPI(title="Klaim API", lifespan=lifespan)

_allowed_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()] or ["http://localhost:3000"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_error_handlers(app)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(assets.router)

@app.get("/health")
async def health():
    return {"status": "ok"}
