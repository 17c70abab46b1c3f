from .enqueue_service import EnqueueService

__all__ = ["EnqueueService"]
