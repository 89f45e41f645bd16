from docintake.config.settings import Settings
from docintake.database.models import JobRecord
from docintake.database.repositories.job_repository import JobRepository
from docintake.logging.logger import Log
from docintake.pipeline.exceptions import DocumentNotFoundError, InvalidLevelError
from docintake.pipeline.orchestrator import PipelineOrchestrator


class JobRunner:
    """Run one job, catch exceptions, and apply retry logic."""

    PERMANENT_ERRORS = (DocumentNotFoundError, InvalidLevelError)

    def __init__(
        self,
        pipeline: PipelineOrchestrator,
        job_repo: JobRepository,
        settings: Settings,
    ) -> None:
        self._pipeline = pipeline
        self._job_repo = job_repo
        self._settings = settings

    async def run(self, job: JobRecord) -> None:
        """Execute a single job with error handling."""
        Log.info(f"Running job {job.id} (attempt {job.attempts + 1})")
        try:
            result = await self._pipeline.process_document(
                job.document_id, level=job.level, reprocess=job.reprocess
            )
            await self._job_repo.mark_done(job.id)
            completed_by = f" by {result.completed_by}" if result.completed_by else ""
            Log.info(f"Job {job.id} completed successfully{completed_by}")
        except Exception as exc:
            await self._handle_failure(job, exc)

    async def _handle_failure(self, job: JobRecord, exc: Exception) -> None:
        """Increment attempts; mark failed if at max, otherwise back to pending."""
        Log.error(f"Job {job.id} failed: {exc}")
        if isinstance(exc, self.PERMANENT_ERRORS):
            await self._job_repo.mark_failed(job.id, str(exc))
            Log.error(f"Job {job.id} cannot succeed on retry, marked failed")
        elif job.attempts + 1 >= self._settings.max_job_attempts:
            await self._job_repo.mark_failed(job.id, str(exc))
            Log.error(f"Job {job.id} permanently failed after {job.attempts + 1} attempts")
        else:
            await self._job_repo.increment_attempts(job.id, str(exc))
            Log.warning(f"Job {job.id} will be retried (attempt {job.attempts + 1})")
