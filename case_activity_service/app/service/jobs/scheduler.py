"""
Cron-driven job runner.

Each registered job gets one asyncio task that sleeps until the next cron
occurrence (evaluated in the configured timezone) and then runs the job. A
lock per job name allows at most one concurrent run, whether the run was
started by the timer or triggered manually.
"""
import asyncio
import datetime
import logging
from typing import Any, Awaitable, Callable, Dict, List, NamedTuple, Optional
from zoneinfo import ZoneInfo

from croniter import croniter

from case_activity_service.app.service.exceptions import ConfigurationError, JobAlreadyRunningError

logger = logging.getLogger(__name__)

INACTIVITY_SCAN_JOB = "inactivity_scan"
WEEKLY_DIGEST_JOB = "weekly_digest"


class ScheduledJob(NamedTuple):
    name: str
    schedule: str
    func: Callable[[], Awaitable[Any]]


class JobScheduler:
    def __init__(
        self,
        timezone: str = "UTC",
        clock: Callable[[], datetime.datetime] = lambda: datetime.datetime.now(datetime.UTC),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.timezone = ZoneInfo(timezone)
        self._now = clock
        self._sleep = sleep
        self._jobs: Dict[str, ScheduledJob] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._tasks: List[asyncio.Task] = []
        self._cancelled = False

    def register(self, name: str, schedule: str, func: Callable[[], Awaitable[Any]]) -> None:
        if not croniter.is_valid(schedule):
            raise ConfigurationError(f"Invalid cron expression for job '{name}': '{schedule}'")
        self._jobs[name] = ScheduledJob(name=name, schedule=schedule, func=func)
        self._locks[name] = asyncio.Lock()
        logger.info(f"Scheduled job '{name}' registered: '{schedule}' ({self.timezone.key})")

    @property
    def job_names(self) -> List[str]:
        return list(self._jobs)

    def is_running(self, name: str) -> bool:
        return name in self._locks and self._locks[name].locked()

    def next_run(self, name: str, after: Optional[datetime.datetime] = None) -> datetime.datetime:
        job = self._jobs[name]
        base = (after or self._now()).astimezone(self.timezone)
        return croniter(job.schedule, base).get_next(datetime.datetime)

    async def run_job(self, name: str) -> Any:
        if name not in self._jobs:
            raise KeyError(name)
        lock = self._locks[name]
        if lock.locked():
            raise JobAlreadyRunningError(name)
        async with lock:
            logger.info(f"Running job '{name}'...")
            result = await self._jobs[name].func()
            logger.info(f"Job '{name}' finished.")
            return result

    async def _job_loop(self, job: ScheduledJob):
        last_fire: Optional[datetime.datetime] = None
        while not self._cancelled:
            now = self._now()
            # Never fire the same occurrence twice if the timer wakes slightly early
            after = now if last_fire is None or now > last_fire else last_fire
            next_at = self.next_run(job.name, after)
            last_fire = next_at
            delay = max(0.0, (next_at - now).total_seconds())
            logger.debug(f"Job '{job.name}' next run at {next_at.isoformat()} (in {delay:.0f}s)")
            await self._sleep(delay)
            if self._cancelled:
                break
            try:
                await self.run_job(job.name)
            except JobAlreadyRunningError:
                logger.warning(f"Skipping scheduled run of '{job.name}': previous run still in progress.")
            except Exception as e:
                logger.error(f"Scheduled job '{job.name}' failed: {e}", exc_info=True)
        logger.info(f"Scheduler loop for '{job.name}' stopped.")

    async def start(self):
        if self._tasks:
            return
        self._cancelled = False
        self._tasks = [asyncio.create_task(self._job_loop(job)) for job in self._jobs.values()]
        logger.info(f"Job scheduler started with {len(self._tasks)} jobs.")

    async def stop(self):
        self._cancelled = True
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Job scheduler stopped.")
