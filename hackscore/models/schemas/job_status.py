from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


# Statuses a row may be in for a write of the key status to apply.
# completed -> failed is the single correction allowed out of a terminal state.
ALLOWED_PREDECESSORS: Dict[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.QUEUED: frozenset(),
    JobStatus.PROCESSING: frozenset({JobStatus.QUEUED}),
    JobStatus.COMPLETED: frozenset({JobStatus.QUEUED, JobStatus.PROCESSING}),
    JobStatus.FAILED: frozenset({JobStatus.QUEUED, JobStatus.PROCESSING, JobStatus.COMPLETED}),
}

# Rows created by the legacy submission flow start out as "pending".
LEGACY_STATUS_ALIASES: Dict[str, JobStatus] = {"pending": JobStatus.QUEUED}


def normalize_status(value: str) -> JobStatus:
    if value in LEGACY_STATUS_ALIASES:
        return LEGACY_STATUS_ALIASES[value]
    return JobStatus(value)


def can_transition(current: JobStatus, target: JobStatus) -> bool:
    return current in ALLOWED_PREDECESSORS[target]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatusUpdate(BaseModel):
    """A single status write against the row owned by a queue message."""

    status: JobStatus
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    updated_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def processing(cls) -> "JobStatusUpdate":
        return cls(status=JobStatus.PROCESSING)

    @classmethod
    def completed(cls, result: Dict[str, Any]) -> "JobStatusUpdate":
        return cls(status=JobStatus.COMPLETED, result=result)

    @classmethod
    def failed(cls, error: str) -> "JobStatusUpdate":
        return cls(status=JobStatus.FAILED, error=error)

    def to_row(self) -> Dict[str, Any]:
        row: Dict[str, Any] = {
            "status": self.status.value,
            "updated_at": self.updated_at.isoformat(),
        }
        if self.result is not None:
            row["result"] = self.result
        if self.error is not None:
            row["error"] = self.error
        # A terminal row carries a result or an error, never both.
        if self.status is JobStatus.COMPLETED:
            row["error"] = None
        elif self.status is JobStatus.FAILED:
            row["result"] = None
        return row


class JobCreate(BaseModel):
    """Input for a brand-new job created outside the dispatch path (retries)."""

    repository_name: str
    user_id: str
    evaluation_id: Optional[str] = None


class JobStatusRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    queue_message_id: Optional[Union[int, str]] = None
    status: JobStatus
    payload: Dict[str, Any] = Field(default_factory=dict)
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "JobStatusRecord":
        data = dict(row)
        data["id"] = str(data["id"])
        data["status"] = normalize_status(data.get("status") or JobStatus.QUEUED.value)
        data["payload"] = data.get("payload") or {}
        return cls.model_validate(data)

    @property
    def owner_id(self) -> Optional[str]:
        owner = self.payload.get("userId")
        return str(owner) if owner is not None else None
