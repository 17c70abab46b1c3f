from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from hackscore.api.fastapi.dependencies import get_dispatcher
from hackscore.services.dispatch import Dispatcher, DispatchOutcome
from hackscore.utils.response import DispatcherStatusResponse

router = APIRouter(
    prefix="/repo_worker",
    tags=["Repo Worker"],
)

_STATUS_CODES = {
    DispatchOutcome.ALREADY_IN_PROGRESS: status.HTTP_429_TOO_MANY_REQUESTS,
    DispatchOutcome.IDLE: status.HTTP_200_OK,
    DispatchOutcome.DISPATCHED: status.HTTP_200_OK,
    DispatchOutcome.QUEUE_READ_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    DispatchOutcome.DISPATCH_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@router.get("", response_model=DispatcherStatusResponse)
async def repo_worker_status(dispatcher: Dispatcher = Depends(get_dispatcher)):
    """Liveness and busy flag of this instance's dispatcher"""
    return dispatcher.status_snapshot()


@router.post("")
async def trigger_dispatch(dispatcher: Dispatcher = Depends(get_dispatcher)):
    """Hand at most one queued job to the remote worker"""
    result = await dispatcher.dispatch_once()
    return JSONResponse(status_code=_STATUS_CODES[result.outcome], content=result.to_payload())
