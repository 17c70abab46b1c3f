"""
Tests for Dispatcher

Drives dispatch_once against in-memory queue, ledger and worker client.
"""

import asyncio

import pytest

from hackscore.exceptions.dispatch_exceptions import (
    LedgerError,
    QueueOperationError,
    WorkerRejectedError,
    WorkerUnreachableError,
)
from hackscore.models.schemas.job_status import JobCreate, JobStatusUpdate
from hackscore.services.dispatch import DispatchOutcome
from hackscore.services.dispatch.dispatcher import HANDOFF_RESULT


QUEUE = "repo_analysis_queue"


@pytest.fixture
def queued_job(queue, ledger):
    body = {
        "jobId": "job-1",
        "repository": "octo/demo",
        "userId": "user-1",
        "evaluationCriteria": {"innovation": 5},
    }
    queue.put("m1", body)
    ledger.add_row("m1", payload=body)
    return body


class TestDispatchOnce:
    """Happy path and idle behaviour."""

    @pytest.mark.asyncio
    async def test_dispatches_single_message(self, dispatcher, queue, ledger, worker_client):
        queue.put("m1", {"repo": "octo/demo"})
        ledger.add_row("m1")

        result = await dispatcher.dispatch_once()

        assert result.outcome is DispatchOutcome.DISPATCHED
        assert result.message_id == "m1"
        assert result.result == HANDOFF_RESULT
        assert ledger.status_of("m1") == "completed"
        assert ledger.row_for("m1")["result"] == HANDOFF_RESULT
        assert not queue.contains("m1")
        assert queue.deleted == ["m1"]
        assert queue.archived == []
        assert len(worker_client.forwarded) == 1
        assert worker_client.forwarded[0].to_wire() == {"repo": "octo/demo", "requiresSecrets": True}

    @pytest.mark.asyncio
    async def test_ledger_moves_through_processing_then_completed(self, dispatcher, ledger, queued_job):
        await dispatcher.dispatch_once()

        assert ledger.writes == [("m1", "processing"), ("m1", "completed")]

    @pytest.mark.asyncio
    async def test_forwarded_payload_has_no_credentials(self, dispatcher, queue, ledger, worker_client):
        queue.put(
            "m2",
            {
                "jobId": "job-2",
                "repository": "octo/private",
                "userId": "user-9",
                "githubToken": "ghp_secret",
                "secrets": {"OPENAI_API_KEY": "sk-xxx"},
                "evaluationCriteria": {"notes": "x", "api_key": "nope"},
            },
        )
        ledger.add_row("m2")

        await dispatcher.dispatch_once()

        wire = worker_client.forwarded[0].to_wire()
        assert wire == {
            "jobId": "job-2",
            "repository": "octo/private",
            "userId": "user-9",
            "evaluationCriteria": {"notes": "x"},
            "requiresSecrets": True,
        }

    @pytest.mark.asyncio
    async def test_empty_queue_is_idle_without_side_effects(self, dispatcher, queue, ledger, worker_client):
        result = await dispatcher.dispatch_once()

        assert result.outcome is DispatchOutcome.IDLE
        assert result.ok
        assert queue.read_calls == 1
        assert ledger.writes == []
        assert queue.mutations == 0
        assert worker_client.forwarded == []

    @pytest.mark.asyncio
    async def test_missing_ledger_row_does_not_block_dispatch(self, dispatcher, queue, worker_client):
        queue.put("orphan", {"repository": "octo/orphan"})

        result = await dispatcher.dispatch_once()

        assert result.outcome is DispatchOutcome.DISPATCHED
        assert queue.deleted == ["orphan"]
        assert len(worker_client.forwarded) == 1

    @pytest.mark.asyncio
    async def test_legacy_pending_row_is_dispatched(self, dispatcher, queue, ledger):
        queue.put("m3", {"repository": "octo/legacy"})
        ledger.add_row("m3", status="pending")

        await dispatcher.dispatch_once()

        assert ledger.status_of("m3") == "completed"


class TestSingleFlight:

    @pytest.mark.asyncio
    async def test_overlapping_calls_read_queue_once(self, dispatcher, queue, queued_job):
        queue.read_gate = asyncio.Event()

        first = asyncio.create_task(dispatcher.dispatch_once())
        await asyncio.sleep(0)
        assert dispatcher.is_processing

        second = await dispatcher.dispatch_once()
        assert second.outcome is DispatchOutcome.ALREADY_IN_PROGRESS
        assert second.to_payload() == {"message": "Worker is already processing", "isProcessing": True}

        queue.read_gate.set()
        first_result = await first

        assert first_result.outcome is DispatchOutcome.DISPATCHED
        assert queue.read_calls == 1
        assert not dispatcher.is_processing

    @pytest.mark.asyncio
    async def test_gate_released_after_queue_read_error(self, dispatcher, queue):
        queue.read_error = QueueOperationError("read", QUEUE, "connection reset")

        result = await dispatcher.dispatch_once()

        assert result.outcome is DispatchOutcome.QUEUE_READ_ERROR
        assert not dispatcher.is_processing

        queue.read_error = None
        assert (await dispatcher.dispatch_once()).outcome is DispatchOutcome.IDLE

    @pytest.mark.asyncio
    async def test_sequential_calls_each_take_a_message(self, dispatcher, queue, ledger):
        for msg_id in ("a", "b"):
            queue.put(msg_id, {"repository": f"octo/{msg_id}"})
            ledger.add_row(msg_id)

        first = await dispatcher.dispatch_once()
        second = await dispatcher.dispatch_once()
        third = await dispatcher.dispatch_once()

        assert [first.message_id, second.message_id] == ["a", "b"]
        assert third.outcome is DispatchOutcome.IDLE


class TestFailurePaths:

    @pytest.mark.asyncio
    async def test_queue_read_error_leaves_everything_untouched(self, dispatcher, queue, ledger, worker_client):
        queue.read_error = QueueOperationError("read", QUEUE, "timeout")

        result = await dispatcher.dispatch_once()

        assert result.outcome is DispatchOutcome.QUEUE_READ_ERROR
        assert "QUEUE_READ_ERROR" in result.error
        assert result.to_payload()["error"] == "Failed to read from queue"
        assert ledger.writes == []
        assert queue.mutations == 0
        assert worker_client.forwarded == []

    @pytest.mark.asyncio
    async def test_synchronous_handoff_failure_archives_message(self, dispatcher, queue, ledger, worker_client, queued_job):
        worker_client.forward_error = ConnectionRefusedError("connection refused")

        result = await dispatcher.dispatch_once()

        assert result.outcome is DispatchOutcome.DISPATCH_ERROR
        assert result.message_id == "m1"
        assert "connection refused" in result.error
        assert ledger.status_of("m1") == "failed"
        assert "connection refused" in ledger.row_for("m1")["error"]
        assert queue.archived == ["m1"]
        assert queue.deleted == []
        payload = result.to_payload()
        assert payload["error"] == "Processing failed"
        assert payload["messageId"] == "m1"

    @pytest.mark.asyncio
    async def test_late_rejection_corrects_completed_to_failed(self, dispatcher, queue, ledger, worker_client, queued_job):
        worker_client.auto_ack = False

        result = await dispatcher.dispatch_once()
        assert result.outcome is DispatchOutcome.DISPATCHED
        assert ledger.status_of("m1") == "completed"
        assert queue.deleted == ["m1"]
        assert dispatcher.in_flight_handoffs == 1

        worker_client.handoffs[0].set_exception(WorkerRejectedError(502, "bad gateway"))
        assert await dispatcher.drain(timeout=1) == 0

        assert ledger.status_of("m1") == "failed"
        assert "WORKER_REJECTED" in ledger.row_for("m1")["error"]
        assert ledger.row_for("m1")["result"] is None
        assert ledger.writes[-1] == ("m1", "failed")
        assert dispatcher.in_flight_handoffs == 0

    @pytest.mark.asyncio
    async def test_unreachable_worker_after_handoff_marks_failed(self, dispatcher, ledger, worker_client, queued_job):
        worker_client.auto_ack = False

        await dispatcher.dispatch_once()
        worker_client.handoffs[0].set_exception(WorkerUnreachableError("ConnectError: refused"))
        await dispatcher.drain(timeout=1)

        assert ledger.status_of("m1") == "failed"
        assert "WORKER_UNREACHABLE" in ledger.row_for("m1")["error"]

    @pytest.mark.asyncio
    async def test_failed_row_is_never_moved_back_to_completed(self, dispatcher, queue, ledger):
        queue.put("m9", {"repository": "octo/redelivered"})
        ledger.add_row("m9", status="failed")

        result = await dispatcher.dispatch_once()

        assert result.outcome is DispatchOutcome.DISPATCHED
        assert ledger.writes == [("m9", "processing"), ("m9", "completed")]
        assert ledger.status_of("m9") == "failed"

    @pytest.mark.asyncio
    async def test_ledger_write_failure_does_not_change_outcome(self, dispatcher, queue, ledger, queued_job):
        ledger.update_error = LedgerError("update", "postgrest down")

        result = await dispatcher.dispatch_once()

        assert result.outcome is DispatchOutcome.DISPATCHED
        assert queue.deleted == ["m1"]

    @pytest.mark.asyncio
    async def test_delete_failure_is_still_dispatched(self, dispatcher, queue, queued_job):
        queue.delete_error = QueueOperationError("delete", QUEUE, "rpc failed")

        result = await dispatcher.dispatch_once()

        assert result.outcome is DispatchOutcome.DISPATCHED
        assert not dispatcher.is_processing

    @pytest.mark.asyncio
    async def test_malformed_payload_is_a_dispatch_error(self, dispatcher, queue, ledger, worker_client):
        queue.put("bad", {"repository": ["not", "a", "string"]})
        ledger.add_row("bad")

        result = await dispatcher.dispatch_once()

        assert result.outcome is DispatchOutcome.DISPATCH_ERROR
        assert queue.archived == ["bad"]
        assert ledger.status_of("bad") == "failed"
        assert worker_client.forwarded == []


class TestStatusSnapshot:

    def test_snapshot_shape(self, dispatcher):
        snapshot = dispatcher.status_snapshot()

        assert snapshot["status"] == "ok"
        assert snapshot["service"] == "repo_worker"
        assert snapshot["isProcessing"] is False
        assert snapshot["inFlightHandoffs"] == 0
        assert snapshot["lastProcessTime"] is None
        assert "timestamp" in snapshot

    @pytest.mark.asyncio
    async def test_drain_with_nothing_in_flight(self, dispatcher):
        assert await dispatcher.drain(timeout=0.1) == 0

    @pytest.mark.asyncio
    async def test_snapshot_records_last_dispatch(self, dispatcher):
        await dispatcher.dispatch_once()

        assert dispatcher.status_snapshot()["lastProcessTime"] is not None

    @pytest.mark.asyncio
    async def test_drain_timeout_abandons_handoffs_without_failing_jobs(self, dispatcher, ledger, worker_client, queued_job):
        worker_client.auto_ack = False
        await dispatcher.dispatch_once()

        assert await dispatcher.drain(timeout=0.01) == 1

        assert worker_client.handoffs[0].cancelled()
        assert dispatcher.in_flight_handoffs == 0
        assert ledger.status_of("m1") == "completed"
        assert ledger.writes == [("m1", "processing"), ("m1", "completed")]


class TestRetryJobs:
    """Jobs created by create_job have no message id on their row, only the jobId in the message."""

    @pytest.mark.asyncio
    async def test_retry_job_reaches_completed(self, dispatcher, queue, ledger):
        job_id = await ledger.create_job(JobCreate(repository_name="octo/demo", user_id="user-1"))

        result = await dispatcher.dispatch_once()

        assert result.outcome is DispatchOutcome.DISPATCHED
        assert ledger.rows[job_id]["status"] == "completed"
        assert queue.visible == []

    @pytest.mark.asyncio
    async def test_retry_job_late_failure_is_recorded(self, dispatcher, ledger, worker_client):
        worker_client.auto_ack = False
        job_id = await ledger.create_job(JobCreate(repository_name="octo/demo", user_id="user-1"))

        await dispatcher.dispatch_once()
        worker_client.handoffs[0].set_exception(WorkerRejectedError(500, "analysis crashed"))
        await dispatcher.drain(timeout=1)

        assert ledger.rows[job_id]["status"] == "failed"
        assert ledger.rows[job_id]["result"] is None
