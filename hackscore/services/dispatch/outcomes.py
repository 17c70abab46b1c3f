from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from hackscore.models.schemas.queue_message import MessageId


class DispatchOutcome(str, Enum):
    DISPATCHED = "dispatched"
    IDLE = "idle"
    ALREADY_IN_PROGRESS = "already_in_progress"
    QUEUE_READ_ERROR = "queue_read_error"
    DISPATCH_ERROR = "dispatch_error"


@dataclass
class DispatchResult:
    outcome: DispatchOutcome
    message_id: Optional[MessageId] = None
    result: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome in (DispatchOutcome.DISPATCHED, DispatchOutcome.IDLE)

    def to_payload(self) -> Dict[str, Any]:
        """Body returned by the trigger endpoint for this outcome."""
        if self.outcome is DispatchOutcome.ALREADY_IN_PROGRESS:
            return {"message": "Worker is already processing", "isProcessing": True}
        if self.outcome is DispatchOutcome.IDLE:
            return {"message": "No messages in queue", "processed": 0}
        if self.outcome is DispatchOutcome.DISPATCHED:
            return {"success": True, "messageId": self.message_id, "result": self.result}
        if self.outcome is DispatchOutcome.QUEUE_READ_ERROR:
            return {"error": "Failed to read from queue", "details": self.error}
        return {"error": "Processing failed", "messageId": self.message_id, "details": self.error}
