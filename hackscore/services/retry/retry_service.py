from typing import Optional

from hackscore.exceptions.dispatch_exceptions import InvalidRequestError, LedgerError, describe_error
from hackscore.models.schemas.job_status import JobCreate
from hackscore.services.job_status.base_ledger import JobStatusLedger
from hackscore.services.worker_client.remote_worker_client import RemoteWorkerClient
from hackscore.utils.exception import AppException
from hackscore.utils.logging import get_logger

logger = get_logger(__name__)


class RetryService:
    """
    Re-submits a repository whose earlier analysis failed.

    The job row and its queue message are created together by the ledger;
    the worker is then nudged to look for work. The nudge is optional: the
    job is picked up by the next dispatch cycle either way.
    """

    def __init__(self, ledger: JobStatusLedger, worker_client: RemoteWorkerClient):
        self.ledger = ledger
        self.worker_client = worker_client

    async def retry(self, repository_name: Optional[str], user_id: str, evaluation_id: Optional[str] = None) -> str:
        if not repository_name or not repository_name.strip():
            raise InvalidRequestError("Repository name is required", field="repositoryName")

        job = JobCreate(repository_name=repository_name.strip(), user_id=user_id, evaluation_id=evaluation_id)
        try:
            job_id = await self.ledger.create_job(job)
        except LedgerError as e:
            logger.error(f"Failed to create retry job for {job.repository_name}: {e}", extra={"error_code": e.error_code, "details": e.details})
            raise AppException(status_code=500, message="Failed to create retry job") from e

        logger.info(f"Created retry job {job_id} for {job.repository_name}")
        await self._wake_worker(job_id)
        return job_id

    async def _wake_worker(self, job_id: str) -> None:
        try:
            await self.worker_client.poll()
            logger.info(f"Worker poll triggered for retry job {job_id}")
        except Exception as e:
            logger.warning(f"Could not trigger worker poll for retry job {job_id}: {describe_error(e)}")
