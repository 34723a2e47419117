import asyncio
import logging
import os
import time
from dataclasses import dataclass
from typing import Callable, Optional

import aiofiles.os

from ytdl_server.config.settings import RetentionPolicy
from ytdl_server.core.errors import FilesystemError

logger = logging.getLogger(__name__)

MS_PER_MINUTE = 60 * 1000


@dataclass(frozen=True)
class SweepReport:
    """Counts from one pass over the output directory"""
    deleted: int = 0
    failed: int = 0
    remaining: int = 0


class RetentionSweeper:
    """
    Age-based cleanup of the output directory.

    Deletes every entry whose mtime is older than the policy's max age. It has
    no knowledge of files still being streamed.
    """

    def __init__(
        self,
        output_dir: str,
        policy: RetentionPolicy,
        clock: Callable[[], float] = time.time
    ):
        self.output_dir = output_dir
        self.policy = policy
        self.clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def max_age_ms(self) -> int:
        return self.policy.max_age_minutes * MS_PER_MINUTE

    async def sweep(self) -> SweepReport:
        """Run one cleanup pass. Per-file failures are counted, never raised."""
        logger.info("Starting automatic file cleanup...")
        try:
            entries = await aiofiles.os.listdir(self.output_dir)
        except FileNotFoundError:
            logger.warning(f"Output directory {self.output_dir} does not exist, nothing to clean")
            return SweepReport()
        except OSError as e:
            raise FilesystemError(f"Could not list output directory: {e.strerror or e}")

        now_ms = self.clock() * 1000
        deleted = 0
        failed = 0

        for name in entries:
            path = os.path.join(self.output_dir, name)
            try:
                stat = await aiofiles.os.stat(path)
                age_ms = now_ms - stat.st_mtime * 1000
                if age_ms > self.max_age_ms:
                    await aiofiles.os.remove(path)
                    deleted += 1
                    logger.info(f"Deleted: {name} (age: {round(age_ms / MS_PER_MINUTE)} minutes)")
            except OSError as e:
                failed += 1
                logger.warning(f"Failed to delete {name}: {e.strerror or e}")

        report = SweepReport(deleted=deleted, failed=failed, remaining=len(entries) - deleted)
        logger.info(
            f"Cleanup complete: {report.deleted} files deleted, {report.failed} errors, "
            f"{report.remaining} files remaining"
        )
        return report

    async def _run_periodically(self, interval_seconds: float) -> None:
        while True:
            try:
                await self.sweep()
            except Exception:
                logger.exception("Cleanup error")
            await asyncio.sleep(interval_seconds)

    def start(self) -> Optional[asyncio.Task]:
        """Sweep now and then every interval. Does nothing when the interval is not positive."""
        if self.policy.interval_minutes <= 0:
            logger.info("Auto cleanup disabled (set FILE_CLEANUP_INTERVAL > 0 to enable)")
            return None
        if self._task is not None and not self._task.done():
            return self._task

        logger.info(f"Auto cleanup enabled: every {self.policy.interval_minutes} minutes")
        self._task = asyncio.create_task(
            self._run_periodically(self.policy.interval_minutes * 60)
        )
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
