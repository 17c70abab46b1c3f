"""Interface of the job status table the dispatcher drives."""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from hackscore.models.schemas.job_status import JobCreate, JobStatusRecord, JobStatusUpdate
from hackscore.models.schemas.queue_message import MessageId


class JobStatusLedger(ABC):
    """
    Persisted job status, keyed by the originating queue message.

    Implementations raise ``LedgerError`` and must apply
    ``update_by_queue_message_id`` only when the row's current status is an
    allowed predecessor of the new one (see ``ALLOWED_PREDECESSORS``), so that
    concurrent writers can never move a job backwards.
    """

    @abstractmethod
    async def update_by_queue_message_id(
        self, msg_id: MessageId, update: JobStatusUpdate, job_id: Optional[Any] = None
    ) -> bool:
        """
        Apply ``update`` if the transition is allowed. True if a row changed.

        The row is the one keyed by ``msg_id`` or, when given, the one whose
        id is ``job_id``. Retry jobs are inserted before their message exists
        and are only reachable through the job id carried in the message.
        """

    @abstractmethod
    async def create_job(self, job: JobCreate) -> str:
        """Create (and enqueue) a brand-new job, returning its id."""

    @abstractmethod
    async def record_enqueued(self, job_id: str, queue_message_id: MessageId, payload: Dict[str, Any]) -> JobStatusRecord:
        """Insert the ``queued`` row for a message that was just sent."""

    @abstractmethod
    async def get_job(self, job_id: str) -> Optional[JobStatusRecord]:
        """Fetch a job by id, or None."""
