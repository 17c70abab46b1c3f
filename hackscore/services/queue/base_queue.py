"""Interface of the message queue the dispatcher consumes."""
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from hackscore.models.schemas.queue_message import MessageId, QueueMessage, QueueMetrics


class QueueClient(ABC):
    """Visibility-timeout queue. Implementations raise ``QueueOperationError``."""

    @abstractmethod
    async def read(self, queue_name: str, visibility_timeout: int, max_count: int = 1) -> List[QueueMessage]:
        """
        Claim up to ``max_count`` visible messages, hiding them from other
        readers for ``visibility_timeout`` seconds.
        """

    @abstractmethod
    async def delete(self, queue_name: str, msg_id: MessageId) -> bool:
        """Remove a message for good. Returns False if it was already gone."""

    @abstractmethod
    async def archive(self, queue_name: str, msg_id: MessageId) -> bool:
        """Move a message out of the live queue, keeping it for inspection."""

    @abstractmethod
    async def send(self, queue_name: str, message: Dict[str, Any]) -> MessageId:
        """Enqueue a message and return its id."""

    @abstractmethod
    async def metrics(self, queue_name: str) -> QueueMetrics:
        """Depth and age statistics for a queue."""
