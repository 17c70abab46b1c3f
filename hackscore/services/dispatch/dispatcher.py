"""
Dispatcher

Claims one message from the analysis queue, hands it to the remote worker
and drives the job status ledger:

    queued -> processing -> completed            (hand-off accepted)
                         -> failed + archive     (hand-off could not start)
    completed -> failed                          (worker failed later)

``completed`` means the worker accepted the job, not that the analysis
succeeded. The hand-off task is not awaited here; a continuation records a
later failure. Until it lands a reader can see ``completed`` for a job whose
analysis is going to fail.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

from hackscore.core.config import settings
from hackscore.exceptions.dispatch_exceptions import describe_error
from hackscore.models.schemas.dispatch_payload import DispatchPayload, WorkerAck
from hackscore.models.schemas.job_status import JobStatusUpdate
from hackscore.models.schemas.queue_message import MessageId, QueueMessage
from hackscore.services.dispatch.outcomes import DispatchOutcome, DispatchResult
from hackscore.services.job_status.base_ledger import JobStatusLedger
from hackscore.services.queue.base_queue import QueueClient
from hackscore.services.worker_client.remote_worker_client import RemoteWorkerClient
from hackscore.utils.logging import get_logger

logger = get_logger(__name__)

HANDOFF_RESULT: Dict[str, Any] = {
    "success": True,
    "message": "Job forwarded to remote worker",
    "workerProcessing": True,
}


class Dispatcher:
    """
    Single-flight queue dispatcher. One instance per process.
    """

    def __init__(
        self,
        queue: QueueClient,
        ledger: JobStatusLedger,
        worker_client: RemoteWorkerClient,
        queue_name: str = settings.QUEUE_NAME,
        visibility_timeout: int = settings.QUEUE_VISIBILITY_TIMEOUT,
    ):
        self.queue = queue
        self.ledger = ledger
        self.worker_client = worker_client
        self.queue_name = queue_name
        self.visibility_timeout = visibility_timeout

        self._lock = asyncio.Lock()
        self._handoffs: Set[asyncio.Task] = set()
        self.last_process_time: Optional[datetime] = None

    @property
    def is_processing(self) -> bool:
        return self._lock.locked()

    @property
    def in_flight_handoffs(self) -> int:
        return len(self._handoffs)

    def status_snapshot(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "service": "repo_worker",
            "isProcessing": self.is_processing,
            "lastProcessTime": self.last_process_time.isoformat() if self.last_process_time else None,
            "inFlightHandoffs": self.in_flight_handoffs,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def dispatch_once(self) -> DispatchResult:
        """
        Claim and hand off at most one queued job.

        Never raises for collaborator failures; every path ends in a
        ``DispatchResult``.
        """
        # No await between the check and the acquire, so this cannot race on one loop.
        if self._lock.locked():
            logger.info("Dispatch already in progress, skipping")
            return DispatchResult(DispatchOutcome.ALREADY_IN_PROGRESS)

        async with self._lock:
            self.last_process_time = datetime.now(timezone.utc)
            return await self._dispatch_locked()

    async def _dispatch_locked(self) -> DispatchResult:
        try:
            messages = await self.queue.read(self.queue_name, self.visibility_timeout, 1)
        except Exception as e:
            logger.error(f"Failed to read from queue {self.queue_name}: {describe_error(e)}")
            return DispatchResult(DispatchOutcome.QUEUE_READ_ERROR, error=describe_error(e))

        if not messages:
            logger.debug(f"No messages in queue {self.queue_name}")
            return DispatchResult(DispatchOutcome.IDLE)

        message = messages[0]
        msg_id = message.msg_id
        job_id = message.message.get("jobId")
        logger.info(
            f"Processing message {msg_id} (delivery #{message.delivery_count})",
            extra={"msg_id": msg_id, "job_id": job_id},
        )

        await self._write_status(msg_id, job_id, JobStatusUpdate.processing())

        try:
            handoff = self.worker_client.forward(DispatchPayload.from_message(message))
        except Exception as e:
            return await self._fail_handoff(message, e)

        self._watch_handoff(msg_id, job_id, handoff)

        await self._write_status(msg_id, job_id, JobStatusUpdate.completed(HANDOFF_RESULT))
        await self._release(msg_id, archive=False)

        return DispatchResult(DispatchOutcome.DISPATCHED, message_id=msg_id, result=dict(HANDOFF_RESULT))

    async def _fail_handoff(self, message: QueueMessage, error: Exception) -> DispatchResult:
        detail = describe_error(error)
        logger.error(f"Hand-off of message {message.msg_id} failed before it was accepted: {detail}")
        await self._write_status(message.msg_id, message.message.get("jobId"), JobStatusUpdate.failed(detail))
        await self._release(message.msg_id, archive=True)
        return DispatchResult(DispatchOutcome.DISPATCH_ERROR, message_id=message.msg_id, error=detail)

    async def _write_status(self, msg_id: MessageId, job_id: Optional[Any], update: JobStatusUpdate) -> bool:
        """Best-effort ledger write. The ledger is a progress signal, not a gate."""
        try:
            changed = await self.ledger.update_by_queue_message_id(msg_id, update, job_id=job_id)
        except Exception as e:
            logger.error(f"Could not mark message {msg_id} {update.status.value}: {describe_error(e)}")
            return False
        if not changed:
            logger.warning(f"Job status for message {msg_id} not moved to {update.status.value} (missing row or later state)")
        return changed

    async def _release(self, msg_id: MessageId, archive: bool) -> None:
        operation = "archive" if archive else "delete"
        try:
            if archive:
                released = await self.queue.archive(self.queue_name, msg_id)
            else:
                released = await self.queue.delete(self.queue_name, msg_id)
        except Exception as e:
            # The message reappears once its visibility timeout lapses.
            logger.error(f"Failed to {operation} message {msg_id}: {describe_error(e)}")
            return
        if not released:
            logger.warning(f"Message {msg_id} was already gone when trying to {operation} it")

    def _watch_handoff(self, msg_id: MessageId, job_id: Optional[Any], handoff: "asyncio.Future[WorkerAck]") -> None:
        task = asyncio.ensure_future(self._await_handoff(msg_id, job_id, handoff))
        self._handoffs.add(task)
        task.add_done_callback(self._handoffs.discard)

    async def _await_handoff(self, msg_id: MessageId, job_id: Optional[Any], handoff: "asyncio.Future[WorkerAck]") -> None:
        try:
            ack = await handoff
        except Exception as e:
            detail = describe_error(e)
            logger.error(
                f"Remote worker failed message {msg_id} after hand-off: {detail}",
                extra={"msg_id": msg_id, "error_code": getattr(e, "error_code", type(e).__name__)},
            )
            await self._write_status(msg_id, job_id, JobStatusUpdate.failed(detail))
            return
        logger.info(f"Remote worker finished message {msg_id} with status {ack.status_code}")

    async def drain(self, timeout: Optional[float] = None) -> int:
        """
        Wait for in-flight hand-off continuations.

        Continuations still running when ``timeout`` expires are cancelled
        without a ledger write: the worker keeps analysing those jobs, so
        losing the connection to it is not a job failure. Returns how many
        were abandoned.
        """
        pending = set(self._handoffs)
        if not pending:
            return 0
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        if not still_running:
            return 0

        logger.warning(
            f"Abandoning {len(still_running)} hand-off(s) still running after drain timeout; "
            "their jobs stay completed"
        )
        # Cancelling the watcher also cancels the request it is awaiting.
        for task in still_running:
            task.cancel()
        await asyncio.gather(*still_running, return_exceptions=True)
        return len(still_running)
