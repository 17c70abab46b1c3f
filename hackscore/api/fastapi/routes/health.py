from fastapi import APIRouter

from hackscore.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check():
    logger.debug("Health check endpoint hit")
    return {"status": "ok"}


@router.get("/ping")
def ping():
    logger.debug("Ping endpoint hit")
    return {"status": "pong"}
