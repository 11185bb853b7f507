"""Background scheduler that expires abandoned booking sessions."""
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from courtbook.core.config import settings
from courtbook.services.session_store import SessionStore, session_store

logger = logging.getLogger(__name__)


class SessionSweeper:
    """Periodically removes sessions that have been idle too long."""

    def __init__(
        self,
        store: SessionStore,
        ttl_minutes: Optional[int] = None,
        interval_minutes: Optional[int] = None,
    ):
        """Initialize the scheduler."""
        self.store = store
        self.ttl_minutes = ttl_minutes or settings.SESSION_TTL_MINUTES
        self.interval_minutes = interval_minutes or settings.SESSION_SWEEP_INTERVAL_MINUTES
        self.scheduler = AsyncIOScheduler()
        self.running = False

    async def start(self):
        """Start the scheduler."""
        if self.running:
            logger.warning("Session sweeper is already running")
            return

        logger.info("Starting session sweeper")
        self.scheduler.add_job(
            self.sweep,
            IntervalTrigger(minutes=self.interval_minutes),
            id="session_sweep_job",
            name="Expire idle booking sessions",
            replace_existing=True,
        )

        self.scheduler.start()
        self.running = True
        logger.info("Session sweeper started")

    async def stop(self):
        """Stop the scheduler."""
        if not self.running:
            return

        logger.info("Stopping session sweeper")
        self.scheduler.shutdown(wait=False)
        self.running = False
        logger.info("Session sweeper stopped")

    async def sweep(self):
        """Expire idle sessions; a failed run is logged and retried next interval."""
        logger.debug("Running session sweep")
        try:
            expired = self.store.expire_idle(self.ttl_minutes)
        except Exception as e:
            logger.error(f"Error in session sweep: {e}", exc_info=True)
            return
        for session_id in expired:
            logger.debug(f"Expired session {session_id}")


# Singleton instance
session_sweeper = SessionSweeper(session_store)
