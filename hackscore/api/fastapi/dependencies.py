"""Accessors for the per-process services created in the application lifespan."""
from fastapi import Request

from hackscore.services.dispatch import Dispatcher
from hackscore.services.enqueue import EnqueueService
from hackscore.services.factory import DispatchServices
from hackscore.services.job_status import JobStatusLedger
from hackscore.services.queue import QueueClient
from hackscore.services.retry import RetryService
from hackscore.utils.exception import ServiceUnavailableException


def get_services(request: Request) -> DispatchServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise ServiceUnavailableException("Dispatch services are not initialised")
    return services


def get_dispatcher(request: Request) -> Dispatcher:
    return get_services(request).dispatcher


def get_retry_service(request: Request) -> RetryService:
    return get_services(request).retry_service


def get_enqueue_service(request: Request) -> EnqueueService:
    return get_services(request).enqueue_service


def get_ledger(request: Request) -> JobStatusLedger:
    return get_services(request).ledger


def get_queue(request: Request) -> QueueClient:
    return get_services(request).queue
