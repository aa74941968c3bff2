import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core.config import settings
from core.session import GameSession

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


async def run_daily_rollover(session: GameSession):
    """
    Catch midnight while the app stays open.

    check_and_reset_day is a no-op until the calendar date changes, so
    running it every minute is harmless.
    """
    try:
        result = session.foreground(replay=False)
        if result.reset:
            logger.info("Midnight rollover applied (day %s)", result.current_day)
    except Exception:
        logger.exception("Daily rollover check failed")


async def run_retry_replay(session: GameSession):
    try:
        results = await session.replay_retry_queue()
        if results["processed"] or results["failed"]:
            logger.info("Retry queue replay: %s", results)
    except Exception:
        logger.exception("Retry queue replay failed")


def start_scheduler(session: GameSession):
    scheduler.add_job(
        run_daily_rollover,
        IntervalTrigger(minutes=settings.ROLLOVER_CHECK_MINUTES),
        args=[session],
        id="daily_rollover",
        replace_existing=True,
    )
    scheduler.add_job(
        run_retry_replay,
        IntervalTrigger(minutes=settings.RETRY_REPLAY_MINUTES),
        args=[session],
        id="retry_replay",
        replace_existing=True,
    )
    scheduler.start()


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
