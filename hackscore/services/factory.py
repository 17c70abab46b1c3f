"""
Dispatch Service Factory

Wires the queue and ledger adapters, the remote worker client and the
services built on them. One set per process: the dispatcher's single-flight
gate only holds if every trigger shares the same instance.
"""

from dataclasses import dataclass
from typing import Optional

import httpx
from supabase import AsyncClient

from hackscore.core.config import Settings, settings as default_settings
from hackscore.services.dispatch import Dispatcher
from hackscore.services.enqueue import EnqueueService
from hackscore.services.job_status import JobStatusLedger, SupabaseJobStatusLedger
from hackscore.services.queue import PgmqQueueClient, QueueClient
from hackscore.services.retry import RetryService
from hackscore.services.worker_client import RemoteWorkerClient
from hackscore.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class DispatchServices:
    queue: QueueClient
    ledger: JobStatusLedger
    worker_client: RemoteWorkerClient
    dispatcher: Dispatcher
    retry_service: RetryService
    enqueue_service: EnqueueService

    async def shutdown(self, drain_timeout: Optional[float] = None) -> None:
        """Wait for in-flight hand-offs, then close the worker HTTP client."""
        try:
            await self.dispatcher.drain(drain_timeout)
        finally:
            await self.worker_client.aclose()
            logger.info("Remote worker client closed")


class ServiceFactory:
    """
    Factory for the dispatch subsystem.
    """

    @classmethod
    def create(
        cls,
        supabase: AsyncClient,
        settings: Settings = default_settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> DispatchServices:
        queue = PgmqQueueClient(supabase)
        ledger = SupabaseJobStatusLedger(supabase, table=settings.JOB_STATUS_TABLE)
        return cls.from_parts(queue, ledger, RemoteWorkerClient.from_settings(settings, transport=transport), settings)

    @classmethod
    def from_parts(
        cls,
        queue: QueueClient,
        ledger: JobStatusLedger,
        worker_client: RemoteWorkerClient,
        settings: Settings = default_settings,
    ) -> DispatchServices:
        dispatcher = Dispatcher(
            queue,
            ledger,
            worker_client,
            queue_name=settings.QUEUE_NAME,
            visibility_timeout=settings.QUEUE_VISIBILITY_TIMEOUT,
        )
        logger.info(
            f"Dispatch services ready (queue={settings.QUEUE_NAME}, "
            f"visibility_timeout={settings.QUEUE_VISIBILITY_TIMEOUT}s, worker={worker_client.base_url})"
        )
        return DispatchServices(
            queue=queue,
            ledger=ledger,
            worker_client=worker_client,
            dispatcher=dispatcher,
            retry_service=RetryService(ledger, worker_client),
            enqueue_service=EnqueueService(queue, ledger, queue_name=settings.QUEUE_NAME),
        )
