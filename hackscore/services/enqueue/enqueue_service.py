import uuid
from typing import Any, Dict, Optional, Tuple, Union

from hackscore.core.config import settings
from hackscore.exceptions.dispatch_exceptions import InvalidRequestError
from hackscore.models.schemas.queue_message import MessageId
from hackscore.services.job_status.base_ledger import JobStatusLedger
from hackscore.services.queue.base_queue import QueueClient
from hackscore.utils.logging import get_logger

logger = get_logger(__name__)


class EnqueueService:
    """Submits a repository for analysis: one queue message and one ``queued`` ledger row."""

    def __init__(self, queue: QueueClient, ledger: JobStatusLedger, queue_name: str = settings.QUEUE_NAME):
        self.queue = queue
        self.ledger = ledger
        self.queue_name = queue_name

    async def enqueue(
        self,
        repository: Optional[str],
        user_id: str,
        evaluation_criteria: Optional[Dict[str, Any]] = None,
        hackathon_id: Optional[Union[str, int]] = None,
    ) -> Tuple[str, MessageId]:
        if not repository or not repository.strip():
            raise InvalidRequestError("Repository is required", field="repository")

        job_id = str(uuid.uuid4())
        message: Dict[str, Any] = {
            "jobId": job_id,
            "repository": repository.strip(),
            "userId": user_id,
            "evaluationCriteria": evaluation_criteria or {},
        }
        if hackathon_id is not None:
            message["hackathonId"] = hackathon_id

        # The message id keys every later status write, so the send goes first.
        msg_id = await self.queue.send(self.queue_name, message)
        await self.ledger.record_enqueued(job_id, msg_id, message)

        logger.info(f"Enqueued job {job_id} for {message['repository']} as message {msg_id}")
        return job_id, msg_id
