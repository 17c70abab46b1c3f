from fastapi import APIRouter, Depends

from hackscore.api.fastapi.dependencies import get_queue
from hackscore.core.config import settings
from hackscore.models.schemas.queue_message import QueueMetrics
from hackscore.services.queue import QueueClient

router = APIRouter(
    prefix="/queue",
    tags=["Queue"],
)


@router.get("/metrics", response_model=QueueMetrics)
async def queue_metrics(queue: QueueClient = Depends(get_queue)):
    return await queue.metrics(settings.QUEUE_NAME)
