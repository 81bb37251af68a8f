from apscheduler.schedulers.asyncio import AsyncIOScheduler

from labtrack.core.database import async_session_maker
from labtrack.core.settings import settings
from labtrack.src.services.maintenance import run_maintenance_sweep

scheduler = AsyncIOScheduler(timezone=settings.maintenance_timezone)


async def daily_transaction_maintenance():
    # Failures propagate so APScheduler logs them; the next tick retries from scratch
    async with async_session_maker() as session:
        return await run_maintenance_sweep(session, trigger="scheduled")


def start_scheduler():
    if settings.environment == "development":
        # Testing: every 5 minutes
        scheduler.add_job(
            func=daily_transaction_maintenance,
            trigger="interval",
            minutes=5,
            id="transaction_maintenance",
            replace_existing=True,
        )
    else:
        # Production: once a day at the configured wall-clock time
        scheduler.add_job(
            func=daily_transaction_maintenance,
            trigger="cron",
            hour=settings.maintenance_hour,
            minute=settings.maintenance_minute,
            timezone=settings.maintenance_timezone,
            id="transaction_maintenance",
            replace_existing=True,
            coalesce=True,
        )
    scheduler.start()


def stop_scheduler():
    scheduler.shutdown()
