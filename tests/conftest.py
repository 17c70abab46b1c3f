"""
Global test configuration and fixtures for the dispatch subsystem.

Provides in-memory stand-ins for the queue, the job status ledger and the
remote worker client so that the dispatcher and the services can be driven
without Supabase or a network.
"""

import asyncio
import uuid
from typing import Any, Dict, List, Optional

import pytest

from hackscore.core.config import Settings
from hackscore.models.schemas.dispatch_payload import DispatchPayload, WorkerAck
from hackscore.models.schemas.job_status import (
    JobCreate,
    JobStatus,
    JobStatusRecord,
    JobStatusUpdate,
    can_transition,
    normalize_status,
)
from hackscore.models.schemas.queue_message import MessageId, QueueMessage, QueueMetrics
from hackscore.services.dispatch import Dispatcher
from hackscore.services.job_status.base_ledger import JobStatusLedger
from hackscore.services.queue.base_queue import QueueClient


class InMemoryQueue(QueueClient):
    """Visibility-timeout queue kept in a list. Reads move messages to ``in_flight``."""

    def __init__(self, messages: Optional[List[QueueMessage]] = None):
        self.visible: List[QueueMessage] = list(messages or [])
        self.in_flight: Dict[MessageId, QueueMessage] = {}
        self.deleted: List[MessageId] = []
        self.archived: List[MessageId] = []
        self.sent: List[Dict[str, Any]] = []
        self.read_calls = 0
        self.read_error: Optional[Exception] = None
        self.delete_error: Optional[Exception] = None
        self.read_gate: Optional[asyncio.Event] = None
        self._next_id = 1000

    def put(self, msg_id: MessageId, body: Dict[str, Any]) -> QueueMessage:
        message = QueueMessage(msg_id=msg_id, message=body)
        self.visible.append(message)
        return message

    def contains(self, msg_id: MessageId) -> bool:
        return any(m.msg_id == msg_id for m in self.visible) or msg_id in self.in_flight

    @property
    def mutations(self) -> int:
        return len(self.deleted) + len(self.archived)

    async def read(self, queue_name: str, visibility_timeout: int, max_count: int = 1) -> List[QueueMessage]:
        self.read_calls += 1
        if self.read_gate is not None:
            await self.read_gate.wait()
        if self.read_error is not None:
            raise self.read_error
        claimed = self.visible[:max_count]
        self.visible = self.visible[max_count:]
        result = []
        for message in claimed:
            message = message.model_copy(update={"read_ct": message.read_ct + 1})
            self.in_flight[message.msg_id] = message
            result.append(message)
        return result

    async def delete(self, queue_name: str, msg_id: MessageId) -> bool:
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append(msg_id)
        return self.in_flight.pop(msg_id, None) is not None

    async def archive(self, queue_name: str, msg_id: MessageId) -> bool:
        self.archived.append(msg_id)
        return self.in_flight.pop(msg_id, None) is not None

    async def send(self, queue_name: str, message: Dict[str, Any]) -> MessageId:
        self._next_id += 1
        self.sent.append(message)
        self.put(self._next_id, message)
        return self._next_id

    async def metrics(self, queue_name: str) -> QueueMetrics:
        return QueueMetrics(
            queue_name=queue_name,
            queue_length=len(self.visible) + len(self.in_flight),
            total_messages=self._next_id - 1000,
        )


class InMemoryLedger(JobStatusLedger):
    """
    ``job_status`` rows in a dict, applying the same transition rule as the
    real table. ``create_job`` behaves like the ``create_retry_job`` RPC: the
    row is inserted without a message id and the queued message only carries
    the ``jobId``.
    """

    def __init__(self, queue: Optional[InMemoryQueue] = None):
        self.queue = queue
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.writes: List[tuple] = []
        self.update_error: Optional[Exception] = None
        self.create_error: Optional[Exception] = None

    def add_row(self, queue_message_id: MessageId, status: str = "queued", payload: Optional[Dict[str, Any]] = None) -> str:
        job_id = str(uuid.uuid4())
        self.rows[job_id] = {
            "id": job_id,
            "queue_message_id": queue_message_id,
            "status": status,
            "payload": payload or {},
            "result": None,
            "error": None,
        }
        return job_id

    def row_for(self, queue_message_id: MessageId) -> Optional[Dict[str, Any]]:
        for row in self.rows.values():
            if queue_message_id is not None and row["queue_message_id"] == queue_message_id:
                return row
        return None

    def status_of(self, queue_message_id: MessageId) -> Optional[str]:
        row = self.row_for(queue_message_id)
        return row["status"] if row else None

    async def update_by_queue_message_id(self, msg_id: MessageId, update: JobStatusUpdate, job_id: Optional[Any] = None) -> bool:
        self.writes.append((msg_id, update.status.value))
        if self.update_error is not None:
            raise self.update_error
        row = self.row_for(msg_id)
        if row is None and job_id is not None:
            row = self.rows.get(str(job_id))
        if row is None or not can_transition(normalize_status(row["status"]), update.status):
            return False
        row.update(update.to_row())
        return True

    async def create_job(self, job: JobCreate) -> str:
        if self.create_error is not None:
            raise self.create_error
        job_id = str(uuid.uuid4())
        payload = {"jobId": job_id, "repository": job.repository_name, "userId": job.user_id, "isRetry": True}
        self.rows[job_id] = {
            "id": job_id,
            "queue_message_id": None,
            "status": JobStatus.QUEUED.value,
            "payload": payload,
            "result": None,
            "error": None,
        }
        if self.queue is not None:
            self.queue.put(f"retry-{job_id}", dict(payload))
        return job_id

    async def record_enqueued(self, job_id: str, queue_message_id: MessageId, payload: Dict[str, Any]) -> JobStatusRecord:
        self.rows[job_id] = {
            "id": job_id,
            "queue_message_id": queue_message_id,
            "status": JobStatus.QUEUED.value,
            "payload": payload,
            "result": None,
            "error": None,
        }
        return JobStatusRecord.from_row(self.rows[job_id])

    async def get_job(self, job_id: str) -> Optional[JobStatusRecord]:
        row = self.rows.get(job_id)
        return JobStatusRecord.from_row(row) if row else None


class FakeWorkerClient:
    """
    Records forwarded payloads. Each hand-off is a future the test resolves,
    unless ``auto_ack`` is set.
    """

    def __init__(self, auto_ack: bool = True):
        self.base_url = "http://worker.test"
        self.auto_ack = auto_ack
        self.forwarded: List[DispatchPayload] = []
        self.handoffs: List[asyncio.Future] = []
        self.forward_error: Optional[Exception] = None
        self.poll_error: Optional[Exception] = None
        self.poll_calls = 0
        self.closed = False

    def forward(self, payload: DispatchPayload) -> "asyncio.Future[WorkerAck]":
        if self.forward_error is not None:
            raise self.forward_error
        self.forwarded.append(payload)
        future = asyncio.get_running_loop().create_future()
        if self.auto_ack:
            future.set_result(WorkerAck(status_code=202, body={"accepted": True}))
        self.handoffs.append(future)
        return future

    async def poll(self) -> WorkerAck:
        self.poll_calls += 1
        if self.poll_error is not None:
            raise self.poll_error
        return WorkerAck(status_code=200)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        SUPABASE_URL="http://supabase.test",
        SUPABASE_SERVICE_ROLE_KEY="service-role",
        REMOTE_WORKER_URL="http://worker.test",
        REMOTE_WORKER_AUTH_TOKEN="worker-token",
        QUEUE_NAME="repo_analysis_queue",
        QUEUE_VISIBILITY_TIMEOUT=300,
    )


@pytest.fixture
def queue() -> InMemoryQueue:
    return InMemoryQueue()


@pytest.fixture
def ledger(queue) -> InMemoryLedger:
    return InMemoryLedger(queue)


@pytest.fixture
def worker_client() -> FakeWorkerClient:
    return FakeWorkerClient()


@pytest.fixture
def dispatcher(queue, ledger, worker_client) -> Dispatcher:
    return Dispatcher(queue, ledger, worker_client, queue_name="repo_analysis_queue", visibility_timeout=300)
