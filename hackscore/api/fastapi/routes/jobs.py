from fastapi import APIRouter, Depends

from hackscore.api.fastapi.dependencies import get_ledger
from hackscore.api.fastapi.middlewares.auth import get_current_user
from hackscore.models.schemas.users import AuthenticatedUser
from hackscore.services.job_status import JobStatusLedger
from hackscore.utils.exception import NotFoundException
from hackscore.utils.response import JobStatusResponse

router = APIRouter(
    prefix="/jobs",
    tags=["Jobs"],
)


@router.get("/{job_id}", response_model=JobStatusResponse)
async def get_job_status(
    job_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    ledger: JobStatusLedger = Depends(get_ledger),
):
    """Current status of one of the caller's jobs"""
    record = await ledger.get_job(job_id)
    # Someone else's job is reported exactly like a missing one.
    if record is None or record.owner_id != current_user.id:
        raise NotFoundException(f"Job {job_id} not found")

    return JobStatusResponse(
        id=record.id,
        status=record.status.value,
        result=record.result,
        error=record.error,
        createdAt=record.created_at.isoformat() if record.created_at else None,
        updatedAt=record.updated_at.isoformat() if record.updated_at else None,
    )
