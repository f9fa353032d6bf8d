from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Header, HTTPException, Request
from loguru import logger

from src.api.router import api_router
from src.config import get_settings
from src.db.database import init_db
from src.scheduler.jobs import FreeGamesWatcher, build_pipeline
from src.scheduler.runner import start_scheduler

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up...")
    await init_db()

    # Start the watcher and its scheduler
    watcher = FreeGamesWatcher(build_pipeline(settings))
    app.state.watcher = watcher
    app.state.scheduler = start_scheduler(watcher, settings)

    yield

    # Stop the scheduler
    app.state.scheduler.shutdown()
    watcher.pipeline.fetcher.close()
    logger.info("Shutting down...")


# Disable interactive docs in production
docs_url = None if settings.is_production else "/docs"
redoc_url = None if settings.is_production else "/redoc"

app = FastAPI(
    title="Free Game Radar API",
    description="Epic Games Store free game watcher",
    version="0.1.0",
    lifespan=lifespan,
    docs_url=docs_url,
    redoc_url=redoc_url,
)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.get("/api/admin/status")
async def admin_status(request: Request, x_admin_key: str = Header(None)):
    # Require admin key in production
    if settings.is_production:
        if not settings.admin_api_key:
            raise HTTPException(status_code=503, detail="Admin API not configured")
        if x_admin_key != settings.admin_api_key:
            raise HTTPException(status_code=401, detail="Invalid admin key")

    scheduler = getattr(request.app.state, "scheduler", None)
    watcher = getattr(request.app.state, "watcher", None)

    jobs = []
    if scheduler:
        for job in scheduler.get_jobs():
            jobs.append(
                {
                    "id": job.id,
                    "name": job.name,
                    "next_run": str(job.next_run_time) if job.next_run_time else None,
                }
            )

    last_result = watcher.last_result if watcher else None
    return {
        "scheduler_running": scheduler is not None and scheduler.running,
        "check_schedule": settings.check_schedule,
        "cycle_running": watcher is not None and watcher.is_running,
        "last_run_at": str(watcher.last_run_at) if watcher and watcher.last_run_at else None,
        "last_result": (
            {
                "fetched": last_result.fetched,
                "fetch_failed": last_result.fetch_failed,
                "new_ids": last_result.new_ids,
                "failed_ids": last_result.failed_ids,
            }
            if last_result
            else None
        ),
        "jobs": jobs,
    }
