from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field

MessageId = Union[int, str]


class QueueMessage(BaseModel):
    """A message as returned by ``pgmq_read``. Borrowed until deleted or archived."""

    msg_id: MessageId
    message: Dict[str, Any] = Field(default_factory=dict)
    read_ct: int = 0
    enqueued_at: Optional[datetime] = None
    vt: Optional[datetime] = None

    @property
    def delivery_count(self) -> int:
        return self.read_ct


class QueueMetrics(BaseModel):
    queue_name: str
    queue_length: int = 0
    newest_msg_age_sec: Optional[int] = None
    oldest_msg_age_sec: Optional[int] = None
    total_messages: int = 0
