import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


async def run_collectors(pipeline):
    """Job: every enabled collector, one after another."""
    logger.info("Running scheduled job: Collectors")
    try:
        results = await pipeline.scraper.run_all()
        logger.info(f"Collectors done: {sum(r.processed_count for r in results)} new records")
    except Exception as e:
        logger.error(f"Collector run failed: {e}", exc_info=True)


async def run_validation_sweep(pipeline):
    logger.info("Running scheduled job: Validation sweep")
    try:
        report = await pipeline.engine.run_sweep()
        logger.info(f"Sweep done: {report.to_dict()}")
    except Exception as e:
        logger.error(f"Validation sweep failed: {e}", exc_info=True)


async def run_revalidation(pipeline):
    """Job: flag stale startups, then re-run the collectors that found them."""
    logger.info("Running scheduled job: Revalidation")
    try:
        requests = await pipeline.engine.revalidate_stale()
        if requests:
            await pipeline.scraper.reacquire(requests)
    except Exception as e:
        logger.error(f"Revalidation failed: {e}", exc_info=True)


def start_scheduler(pipeline):
    # Every 6 hours: collectors
    scheduler.add_job(
        run_collectors,
        CronTrigger(hour='*/6', minute=0),
        args=[pipeline],
        id='collectors',
        replace_existing=True,
        max_instances=1,
    )

    # Hourly: confidence sweep
    scheduler.add_job(
        run_validation_sweep,
        CronTrigger(minute=30),
        args=[pipeline],
        id='validation_sweep',
        replace_existing=True,
        max_instances=1,
    )

    # Daily: revalidation (3:15 AM)
    scheduler.add_job(
        run_revalidation,
        CronTrigger(hour=3, minute=15),
        args=[pipeline],
        id='revalidation',
        replace_existing=True,
        max_instances=1,
    )

    scheduler.start()
    logger.info("APScheduler started. Collectors every 6h, validation sweep hourly at :30, revalidation daily 3:15am.")


async def stop_scheduler():
    logger.info("Stopping APScheduler...")
    if scheduler.running:
        scheduler.shutdown()
