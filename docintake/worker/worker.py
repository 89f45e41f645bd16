import asyncio

from docintake.config.settings import Settings
from docintake.database.connection import get_connection
from docintake.database.models import JobRecord
from docintake.database.repositories.job_repository import JobRepository
from docintake.logging.logger import Log
from docintake.worker.job_runner import JobRunner


class Worker:
    """Poll loop: claim -> dispatch -> sleep when idle.

    Up to ``worker_concurrency`` jobs run at once; the loop only claims a job
    when a slot is free.
    """

    def __init__(
        self,
        job_repo: JobRepository,
        job_runner: JobRunner,
        settings: Settings,
    ) -> None:
        self._job_repo = job_repo
        self._job_runner = job_runner
        self._settings = settings
        self._slots = asyncio.Semaphore(max(1, settings.worker_concurrency))
        self._running: set[asyncio.Task[None]] = set()

    async def run(self, max_jobs: int | None = None) -> None:
        """Main poll loop. Runs until cancelled.

        If max_jobs is set, stop after dispatching that many jobs and wait
        for them to finish (for testing).
        """
        Log.info("Worker started, polling for jobs")
        jobs_done = 0
        try:
            while max_jobs is None or jobs_done < max_jobs:
                await self._slots.acquire()
                job = await self._try_claim_job()
                if job is None:
                    self._slots.release()
                    Log.debug("No jobs available, sleeping")
                    await asyncio.sleep(self._settings.job_poll_interval_seconds)
                    continue
                self._dispatch(job)
                jobs_done += 1
        except asyncio.CancelledError:
            Log.info("Worker shutting down gracefully")
            raise
        finally:
            if self._running:
                await asyncio.gather(*self._running, return_exceptions=True)

    def _dispatch(self, job: JobRecord) -> None:
        task = asyncio.create_task(self._run_job(job))
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def _run_job(self, job: JobRecord) -> None:
        try:
            await self._job_runner.run(job)
        except Exception as exc:
            Log.error(f"Job {job.id} could not be recorded, it stays in processing: {exc}")
        finally:
            self._slots.release()

    async def _try_claim_job(self) -> JobRecord | None:
        """Attempt to claim the next pending job. Gracefully handle DB errors."""
        try:
            async with get_connection() as conn:
                return await self._job_repo.claim_next_job(conn)
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return None
