from typing import Any, Dict, Optional, Union

from pydantic import BaseModel


class RetryRequest(BaseModel):
    """Body of ``POST /api/retry``. The repository check happens in the service."""

    repositoryName: Optional[str] = None
    evaluationId: Optional[str] = None


class EnqueueRequest(BaseModel):
    """Request model for queueing a repository analysis."""

    repository: str
    evaluationCriteria: Optional[Dict[str, Any]] = None
    hackathonId: Optional[Union[str, int]] = None
