"""Build-in-progress guard and the entry points that start orchestration runs"""

import asyncio
import contextlib
import logging
import threading
from collections.abc import Iterator
from datetime import datetime

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.cron import CronTrigger

from niveflow.models.run_result import RunResult
from niveflow.services.orchestrator import Orchestrator

logger = logging.getLogger(__name__)

SCHEDULED_JOB_ID = "docs_sync"


class BuildInProgressError(Exception):
    """Raised when a run is requested while another one is active"""

    pass


class BuildGuard:
    """Process-wide build-in-progress state backed by a mutex"""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @property
    def building(self) -> bool:
        return self._lock.locked()

    @property
    def state(self) -> str:
        return "building" if self.building else "idle"

    def try_acquire(self) -> bool:
        """Switch to building without waiting; False if already building"""
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        self._lock.release()

    @contextlib.contextmanager
    def hold(self) -> Iterator[None]:
        """
        Hold the guard for the duration of a block

        Raises:
            BuildInProgressError: If a run is already active
        """
        if not self.try_acquire():
            raise BuildInProgressError("A build is already in progress")
        try:
            yield
        finally:
            self.release()


class BuildTrigger:
    """Start orchestration runs from the webhook and the scheduler, one at a time"""

    def __init__(self, orchestrator: Orchestrator | None = None, guard: BuildGuard | None = None):
        """
        Initialize build trigger

        Args:
            orchestrator: Orchestrator to run (optional, creates new if None)
            guard: Build guard (optional, creates new if None)
        """
        self.orchestrator = orchestrator or Orchestrator()
        self.guard = guard or BuildGuard()
        self.scheduler: BaseScheduler | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def building(self) -> bool:
        return self.guard.building

    async def _run_safely(self, force: bool, only: str | None) -> RunResult:
        """Run the orchestrator; unexpected errors are logged, never raised"""
        start_time = datetime.now()
        try:
            return await self.orchestrator.run(force=force, only=only)
        except Exception as e:
            logger.error(f"Orchestration run failed: {e}", exc_info=True)
            end_time = datetime.now()
            return RunResult(
                success=False,
                start_time=start_time,
                end_time=end_time,
                duration_seconds=(end_time - start_time).total_seconds(),
                error=str(e),
            )

    async def run_guarded(self, force: bool = False, only: str | None = None) -> RunResult | None:
        """
        Run and wait for completion, unless a run is already active

        Returns:
            RunResult, or None if the run was skipped because another one is active
        """
        try:
            with self.guard.hold():
                return await self._run_safely(force, only)
        except BuildInProgressError:
            logger.warning("Build already in progress, skipping this run")
            return None

    def trigger(self, only: str | None = None, force: bool = True) -> bool:
        """
        Start a detached run on the running event loop

        Returns:
            True if the run was started, False if a run is already active
        """
        if not self.guard.try_acquire():
            return False

        try:
            task = asyncio.get_running_loop().create_task(self._run_detached(force, only))
        except Exception:
            self.guard.release()
            raise

        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def _run_detached(self, force: bool, only: str | None) -> None:
        try:
            result = await self._run_safely(force, only)
            if result.success:
                logger.info("Triggered build finished")
            else:
                logger.error(f"Triggered build failed: {result.error}")
        finally:
            self.guard.release()

    async def wait_idle(self) -> None:
        """Wait for detached runs started by this trigger"""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def configure_scheduler(self, scheduler: BaseScheduler, cron_expression: str) -> None:
        """
        Register the scheduled (non-forced) run

        Args:
            scheduler: Scheduler instance (an AsyncIOScheduler in the services)
            cron_expression: Standard 5-field crontab expression
        """
        self.scheduler = scheduler

        scheduler.add_job(
            self.run_guarded,
            trigger=CronTrigger.from_crontab(cron_expression),
            kwargs={"force": False},
            id=SCHEDULED_JOB_ID,
            name="Documentation sync and build",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )

        logger.info(f"Scheduled sync and build: {cron_expression}")

    def stop_scheduler(self) -> None:
        """Remove the scheduled job"""
        if self.scheduler:
            try:
                self.scheduler.remove_job(SCHEDULED_JOB_ID)
                logger.info("Stopped sync scheduler")
            except JobLookupError:
                logger.warning("Sync job not found during shutdown")
