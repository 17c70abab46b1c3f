from .retry_service import RetryService

__all__ = ["RetryService"]
