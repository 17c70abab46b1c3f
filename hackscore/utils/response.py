from typing import Any, Dict, Optional, Union

from pydantic import BaseModel


class BaseResponse(BaseModel):
    """Base response model for all API responses"""

    success: bool


class ErrorResponse(BaseModel):
    """Error response model for 400 and 5xx responses"""

    success: bool = False
    errorMessage: str


class RetryResponse(BaseResponse):
    """A fresh job was created for a repository that previously failed."""

    success: bool = True
    jobId: str


class EnqueueResponse(BaseResponse):
    success: bool = True
    jobId: str
    messageId: Union[int, str]


class JobStatusResponse(BaseModel):
    id: str
    status: str
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class DispatcherStatusResponse(BaseModel):
    status: str
    service: str
    isProcessing: bool
    lastProcessTime: Optional[str] = None
    inFlightHandoffs: int
    timestamp: str
