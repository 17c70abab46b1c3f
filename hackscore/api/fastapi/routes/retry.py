from fastapi import APIRouter, Depends

from hackscore.api.fastapi.dependencies import get_retry_service
from hackscore.api.fastapi.middlewares.auth import get_current_user
from hackscore.models.schemas.users import AuthenticatedUser
from hackscore.services.retry import RetryService
from hackscore.utils.requests import RetryRequest
from hackscore.utils.response import RetryResponse

router = APIRouter(
    prefix="/retry",
    tags=["Retry"],
)


@router.post("", response_model=RetryResponse)
async def retry_repository(
    body: RetryRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    retry_service: RetryService = Depends(get_retry_service),
):
    """Create a new analysis job for a repository that failed before"""
    job_id = await retry_service.retry(body.repositoryName, current_user.id, body.evaluationId)
    return RetryResponse(jobId=job_id)
