from fastapi import APIRouter, Depends, status

from hackscore.api.fastapi.dependencies import get_enqueue_service
from hackscore.api.fastapi.middlewares.auth import get_current_user
from hackscore.models.schemas.users import AuthenticatedUser
from hackscore.services.enqueue import EnqueueService
from hackscore.utils.requests import EnqueueRequest
from hackscore.utils.response import EnqueueResponse

router = APIRouter(
    prefix="/enqueue",
    tags=["Enqueue"],
)


@router.post("", response_model=EnqueueResponse, status_code=status.HTTP_202_ACCEPTED)
async def enqueue_repository(
    body: EnqueueRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    enqueue_service: EnqueueService = Depends(get_enqueue_service),
):
    job_id, msg_id = await enqueue_service.enqueue(
        body.repository,
        current_user.id,
        evaluation_criteria=body.evaluationCriteria,
        hackathon_id=body.hackathonId,
    )
    return EnqueueResponse(jobId=job_id, messageId=msg_id)
