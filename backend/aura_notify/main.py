"""
FastAPI app entrypoint.

Hosts the daily motivation scheduler (every 15 minutes, UTC) and the on-demand test trigger.
"""
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from aura_notify.api.routes import motivation
from aura_notify.core.constants import DAILY_MOTIVATION_JOB_ID, TICK_MINUTES
from aura_notify.scheduler.motivation_job import run_daily_motivation_job

logger = logging.getLogger(__name__)

_scheduler = BackgroundScheduler(timezone="UTC")


@asynccontextmanager
async def lifespan(app: FastAPI):
    _scheduler.add_job(
        run_daily_motivation_job,
        "cron",
        minute=f"*/{TICK_MINUTES}",
        timezone="UTC",
        id=DAILY_MOTIVATION_JOB_ID,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    _scheduler.start()
    app.state.scheduler = _scheduler
    logger.info("Daily motivation job scheduled every %s minutes (UTC)", TICK_MINUTES)
    yield
    _scheduler.shutdown(wait=False)


app = FastAPI(title="Aura Notify", version="0.1.0", lifespan=lifespan)

# CORS: optional CORS_ORIGINS env (comma-separated)
_cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
if _cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(motivation.router, tags=["motivation"])


@app.get("/", include_in_schema=False)
def root():
    return {"message": "Aura Notify", "docs": "/docs", "health": "/health"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
