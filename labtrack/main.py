from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from sqlmodel import select

from labtrack.core.database import SessionDep, init_db
from labtrack.core.error_handling import APIException
from labtrack.core.logging import app_logger
from labtrack.core.middleware import setup_middleware
from labtrack.core.settings import settings
from labtrack.src.jobs.maintenance_scheduler import start_scheduler, stop_scheduler
from labtrack.src.routes import maintenance

# Import all models to ensure they're registered with SQLModel metadata
from labtrack.src.models import Notification, Record, Transaction, User  # noqa: F401


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_logger.info("Starting up...")
    await init_db()
    start_scheduler()
    app_logger.info("DB connected, maintenance scheduler started")
    yield
    app_logger.info("Shutting down...")
    stop_scheduler()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

setup_middleware(app)

app.include_router(maintenance.router, prefix="/maintenance")


@app.get("/health")
async def health_check():
    """Health check for Docker healthcheck"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "labtrack-maintenance"
    }


@app.get("/readiness")
async def readiness_check(session: SessionDep):
    """Readiness check with database connectivity"""
    try:
        await session.exec(select(1))
    except Exception as e:
        raise APIException(500, "Database unavailable", error_code="NOT_READY", context={"error": str(e)})
    return {
        "status": "ready",
        "database": "connected",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
