import uuid
from typing import Any, Dict, List, Optional

from supabase import AsyncClient

from hackscore.core.config import settings
from hackscore.exceptions.dispatch_exceptions import LedgerError
from hackscore.models.schemas.job_status import (
    ALLOWED_PREDECESSORS,
    LEGACY_STATUS_ALIASES,
    JobCreate,
    JobStatus,
    JobStatusRecord,
    JobStatusUpdate,
)
from hackscore.models.schemas.queue_message import MessageId
from hackscore.services.job_status.base_ledger import JobStatusLedger
from hackscore.utils.logging import get_logger

logger = get_logger(__name__)


def _predecessor_values(target: JobStatus) -> List[str]:
    allowed = ALLOWED_PREDECESSORS[target]
    values = sorted(status.value for status in allowed)
    values.extend(alias for alias, status in LEGACY_STATUS_ALIASES.items() if status in allowed)
    return values


def _job_key(job_id: Optional[Any]) -> Optional[str]:
    """Canonical form of a job id taken from a queue message, or None if it is not a UUID."""
    if job_id is None:
        return None
    try:
        return str(uuid.UUID(str(job_id)))
    except ValueError:
        logger.warning(f"Ignoring non-UUID jobId {job_id!r} in queue message")
        return None


class SupabaseJobStatusLedger(JobStatusLedger):
    """
    ``job_status`` table accessed through PostgREST.

    Status writes are conditional updates (``status IN (...)``), so the
    transition check and the write happen in one statement and a late
    ``completed`` can never overwrite a ``failed`` that landed first.
    """

    def __init__(self, supabase: AsyncClient, table: str = settings.JOB_STATUS_TABLE):
        self.supabase = supabase
        self.table = table

    async def update_by_queue_message_id(
        self, msg_id: MessageId, update: JobStatusUpdate, job_id: Optional[Any] = None
    ) -> bool:
        predecessors = _predecessor_values(update.status)
        if not predecessors:
            return False

        query = self.supabase.table(self.table).update(update.to_row())
        job_key = _job_key(job_id)
        if job_key is None:
            query = query.eq("queue_message_id", msg_id)
        else:
            query = query.or_(f"queue_message_id.eq.{msg_id},id.eq.{job_key}")
        try:
            response = await query.in_("status", predecessors).execute()
        except Exception as e:
            raise LedgerError("update", f"message {msg_id} -> {update.status.value}: {e}", cause=e) from e

        changed = bool(response.data)
        if not changed:
            logger.debug(f"No job_status row moved to {update.status.value} for message {msg_id} (job {job_key})")
        return changed

    async def create_job(self, job: JobCreate) -> str:
        try:
            response = await self.supabase.rpc(
                "create_retry_job",
                {
                    "p_repository_name": job.repository_name,
                    "p_user_id": job.user_id,
                    "p_evaluation_id": job.evaluation_id,
                },
            ).execute()
        except Exception as e:
            raise LedgerError("create", str(e), cause=e) from e

        if not response.data:
            raise LedgerError("create", "create_retry_job returned no job id")
        return str(response.data)

    async def record_enqueued(self, job_id: str, queue_message_id: MessageId, payload: Dict[str, Any]) -> JobStatusRecord:
        row = {
            "id": job_id,
            "queue_message_id": queue_message_id,
            "status": JobStatus.QUEUED.value,
            "payload": payload,
        }
        try:
            response = await self.supabase.table(self.table).insert(row).execute()
        except Exception as e:
            raise LedgerError("insert", str(e), cause=e) from e

        inserted = response.data[0] if response.data else row
        return JobStatusRecord.from_row(inserted)

    async def get_job(self, job_id: str) -> Optional[JobStatusRecord]:
        try:
            response = await (
                self.supabase.table(self.table)
                .select("*")
                .eq("id", job_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise LedgerError("select", str(e), cause=e) from e

        if not response.data:
            return None
        return JobStatusRecord.from_row(response.data[0])
