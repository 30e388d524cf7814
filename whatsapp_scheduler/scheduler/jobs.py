"""APScheduler job — runs the reminder pipeline in-process every few minutes.

Off by default: production triggers the pipeline through the HTTP endpoint
from an external cron. Both triggers can coexist; overlapping runs rely on the
dedup check like any other overlap.
"""

import logging
from datetime import timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from whatsapp_scheduler.config import get_settings
from whatsapp_scheduler.domain.civil_time import BRASILIA
from whatsapp_scheduler.infrastructure.database import SessionLocal

logger = logging.getLogger(__name__)

JOB_ID = "whatsapp_message_scheduler"

# APScheduler resolves pytz zones by name and a FixedOffset has none
SCHEDULER_TZ = timezone(BRASILIA.utcoffset(None), "-03")

scheduler = AsyncIOScheduler(timezone=SCHEDULER_TZ)


async def reminder_scheduler_job():
    """Periodic job: queue and dispatch due WhatsApp reminders."""
    from whatsapp_scheduler.application.services.scheduler_service import run_scheduler

    settings = get_settings()
    db = SessionLocal()
    try:
        result = await run_scheduler(db, settings=settings)
        logger.info(f"Scheduler job finished with {result.status_code}: {result.body}")
    finally:
        db.close()


def start_scheduler():
    """Register the interval job and start APScheduler, when enabled."""
    settings = get_settings()
    if not settings.SCHEDULER_ENABLED:
        logger.info("In-process scheduler disabled; waiting for external triggers")
        return

    scheduler.add_job(
        reminder_scheduler_job,
        trigger=IntervalTrigger(minutes=settings.SCHEDULER_INTERVAL_MINUTES, timezone=SCHEDULER_TZ),
        id=JOB_ID,
        name=f"WhatsApp reminders (every {settings.SCHEDULER_INTERVAL_MINUTES} mins)",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.start()
    logger.info(f"Scheduler started: WhatsApp reminders every {settings.SCHEDULER_INTERVAL_MINUTES} mins")


def stop_scheduler():
    """Stop the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
