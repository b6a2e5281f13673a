# core/scheduler.py
import logging
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from config.settings import settings
from core.batch_processor import BatchProcessor

logger = logging.getLogger(__name__)

JOB_ID = "process-pending-requests"


def build_scheduler(
    processor: BatchProcessor,
    *,
    crontab: Optional[str] = None,
    timezone: Optional[str] = None,
) -> AsyncIOScheduler:
    """
    Cron-driven trigger for BatchProcessor.run_cycle. Missed or overlapping
    fires collapse into one; the processor's own gate still rejects overlap.
    """
    crontab = crontab or settings.REQUEST_PROCESSING_INTERVAL
    timezone = timezone or settings.PROCESSING_TIMEZONE
    scheduler = AsyncIOScheduler(timezone=timezone)
    scheduler.add_job(
        processor.run_cycle,
        CronTrigger.from_crontab(crontab, timezone=timezone),
        id=JOB_ID,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    logger.info("scheduler.job.added id=%s crontab=%r tz=%s", JOB_ID, crontab, timezone)
    return scheduler
