"""
# File Cleanup Service

Daily maintenance job, scheduled with APScheduler on `FILE_CLEANUP_CRON` (02:00 by default):

1. Delete files in `UPLOADS_DIR/temp` older than `TEMP_FILE_RETENTION_DAYS`, keeping `.gitkeep`.
2. Run counter reconciliation when `COUNTER_RECONCILIATION_ENABLED` is set.

Errors are logged; the job never raises into the scheduler.
"""

import os
import time
from pathlib import Path
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from content_forum.config import settings
from content_forum.managers.logging_manager import get_logger

logger = get_logger(prefix="[File Cleanup]")

JOB_ID = "daily_maintenance"
KEEP_FILES = {".gitkeep"}


class FileCleanupService:
    """Owns the scheduler running the daily maintenance job."""

    def __init__(self, uploads_dir: Optional[str] = None, reconciliation_service=None):
        self.temp_dir = Path(uploads_dir or settings.UPLOADS_DIR) / "temp"
        self.reconciliation_service = reconciliation_service
        self.scheduler = AsyncIOScheduler()

    def start(self):
        """Register the daily job and start the scheduler."""
        if not self.scheduler.running:
            self.scheduler.add_job(
                self.run_daily_maintenance,
                CronTrigger.from_crontab(settings.FILE_CLEANUP_CRON),
                id=JOB_ID,
                replace_existing=True,
            )
            self.scheduler.start()
            logger.info("File cleanup scheduler started (cron: %s)", settings.FILE_CLEANUP_CRON)

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("File cleanup scheduler stopped")

    def cleanup_temp_files(self, days: Optional[int] = None) -> int:
        """
        Delete temp files whose modification time is older than `days`.

        Returns:
            int: Number of files deleted.
        """
        days = settings.TEMP_FILE_RETENTION_DAYS if days is None else days
        if not self.temp_dir.is_dir():
            return 0

        cutoff = time.time() - days * 24 * 60 * 60
        deleted = 0
        for entry in os.scandir(self.temp_dir):
            if not entry.is_file() or entry.name in KEEP_FILES:
                continue
            try:
                if entry.stat().st_mtime < cutoff:
                    os.remove(entry.path)
                    deleted += 1
            except OSError as e:
                logger.warning("Could not delete temp file %s: %s", entry.path, e)

        logger.info("Removed %d temp files older than %d days", deleted, days)
        return deleted

    def manual_cleanup(self) -> int:
        """Delete every temp file regardless of age."""
        return self.cleanup_temp_files(days=0)

    async def run_daily_maintenance(self) -> None:
        try:
            self.cleanup_temp_files()
        except Exception as e:
            logger.error("Temp file cleanup failed: %s", e, exc_info=True)

        if self.reconciliation_service is not None and settings.COUNTER_RECONCILIATION_ENABLED:
            try:
                await self.reconciliation_service.reconcile()
            except Exception as e:
                logger.error("Counter reconciliation failed: %s", e, exc_info=True)
