"""Follow-up engine: FastAPI entrypoint (REST API + health check)."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from api.decisions import router as decisions_router
from api.errors import register_error_handlers
from api.follow_ups import router as follow_ups_router
from api.notifications import router as notifications_router
from api.tasks import router as tasks_router
from api.threads import router as threads_router
from src.core.config import settings
from src.core.db import async_session, engine, redis
from src.core.services import build_services

logging.basicConfig(level=getattr(logging, settings.log_level))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting follow-up engine (%s backend)...", settings.generation_backend)
    app.state.services = build_services(async_session, settings)
    yield
    logger.info("Shutting down...")
    await redis.aclose()
    await engine.dispose()


app = FastAPI(title="Follow-up Engine", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(follow_ups_router)
app.include_router(threads_router)
app.include_router(decisions_router)
app.include_router(tasks_router)
app.include_router(notifications_router)


@app.get("/health")
async def health():
    checks = {"api": "ok"}
    try:
        await redis.ping()
        checks["redis"] = "ok"
    except Exception:
        checks["redis"] = "error"
    try:
        async with async_session() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception:
        checks["database"] = "error"
    status = "ok" if all(v == "ok" for v in checks.values()) else "degraded"
    return {"status": status, **checks}
