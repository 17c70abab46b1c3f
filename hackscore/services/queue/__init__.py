from .base_queue import QueueClient
from .pgmq_queue import PgmqQueueClient

__all__ = ["QueueClient", "PgmqQueueClient"]
