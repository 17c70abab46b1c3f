from typing import Any, Dict, List

from pydantic import ValidationError
from supabase import AsyncClient

from hackscore.exceptions.dispatch_exceptions import QueueOperationError
from hackscore.models.schemas.queue_message import MessageId, QueueMessage, QueueMetrics
from hackscore.services.queue.base_queue import QueueClient
from hackscore.utils.logging import get_logger

logger = get_logger(__name__)


class PgmqQueueClient(QueueClient):
    """
    pgmq queue reached through the ``pgmq_*`` RPC wrappers exposed by Supabase.
    """

    def __init__(self, supabase: AsyncClient):
        self.supabase = supabase

    async def _rpc(self, operation: str, queue_name: str, function: str, params: Dict[str, Any]) -> Any:
        try:
            response = await self.supabase.rpc(function, params).execute()
        except Exception as e:
            logger.error(f"{function} failed for queue {queue_name}: {e}")
            raise QueueOperationError(operation, queue_name, str(e), cause=e) from e
        return response.data

    async def read(self, queue_name: str, visibility_timeout: int, max_count: int = 1) -> List[QueueMessage]:
        rows = await self._rpc(
            "read",
            queue_name,
            "pgmq_read",
            {"queue_name": queue_name, "visibility_timeout": visibility_timeout, "qty": max_count},
        )
        if rows is None:
            return []
        if not isinstance(rows, list):
            raise QueueOperationError("read", queue_name, f"unexpected response type {type(rows).__name__}")
        try:
            return [QueueMessage.model_validate(row) for row in rows]
        except ValidationError as e:
            raise QueueOperationError("read", queue_name, f"malformed message: {e}", cause=e) from e

    async def delete(self, queue_name: str, msg_id: MessageId) -> bool:
        deleted = await self._rpc("delete", queue_name, "pgmq_delete", {"queue_name": queue_name, "msg_id": msg_id})
        return bool(deleted)

    async def archive(self, queue_name: str, msg_id: MessageId) -> bool:
        archived = await self._rpc("archive", queue_name, "pgmq_archive", {"queue_name": queue_name, "msg_id": msg_id})
        return bool(archived)

    async def send(self, queue_name: str, message: Dict[str, Any]) -> MessageId:
        msg_id = await self._rpc("send", queue_name, "pgmq_send", {"queue_name": queue_name, "message": message})
        if msg_id is None:
            raise QueueOperationError("send", queue_name, "no message id returned")
        return msg_id

    async def metrics(self, queue_name: str) -> QueueMetrics:
        rows = await self._rpc("metrics", queue_name, "pgmq_metrics", {"queue_name_param": queue_name})
        row = rows[0] if isinstance(rows, list) and rows else rows
        if not row:
            return QueueMetrics(queue_name=queue_name)
        try:
            return QueueMetrics.model_validate({**row, "queue_name": row.get("queue_name") or queue_name})
        except ValidationError as e:
            raise QueueOperationError("metrics", queue_name, f"malformed metrics: {e}", cause=e) from e
