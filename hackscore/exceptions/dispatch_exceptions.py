"""
Dispatch Subsystem Exception Hierarchy

Errors raised by the queue and ledger adapters and by the remote worker
client. The dispatcher converts all of them into a ``DispatchResult``; only
``InvalidRequestError`` is meant to reach an HTTP caller directly.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from hackscore.utils.exception import BadRequestException


class DispatchSubsystemError(Exception):
    """Base exception for all dispatch subsystem errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        return f"{self.error_code}: {self.message}"


# ============================================================================
# COLLABORATOR ERRORS
# ============================================================================

class QueueOperationError(DispatchSubsystemError):
    """Raised when a queue RPC fails or returns something unusable."""

    def __init__(self, operation: str, queue_name: str, reason: str, cause: Optional[BaseException] = None):
        super().__init__(
            message=f"Queue {operation} on '{queue_name}' failed: {reason}",
            error_code="QUEUE_READ_ERROR" if operation == "read" else "QUEUE_OPERATION_ERROR",
            details={"operation": operation, "queue_name": queue_name},
            cause=cause,
        )
        self.operation = operation
        self.queue_name = queue_name


class LedgerError(DispatchSubsystemError):
    """Raised when the job status ledger cannot be read or written."""

    def __init__(self, operation: str, reason: str, cause: Optional[BaseException] = None):
        super().__init__(
            message=f"Job status {operation} failed: {reason}",
            error_code="LEDGER_ERROR",
            details={"operation": operation},
            cause=cause,
        )
        self.operation = operation


# ============================================================================
# REMOTE WORKER ERRORS
# ============================================================================

class WorkerClientError(DispatchSubsystemError):
    """Base class for failures talking to the remote worker."""


class WorkerConfigurationError(WorkerClientError):
    """Raised before any request is sent when the worker endpoint is unusable."""

    def __init__(self, reason: str):
        super().__init__(
            message=f"Remote worker is not configured: {reason}",
            error_code="WORKER_CONFIGURATION_ERROR",
        )


class WorkerRejectedError(WorkerClientError):
    """The remote worker answered, but not with a 2xx status."""

    def __init__(self, status_code: int, detail: str = "", path: str = "/process"):
        reason = f"{status_code} {detail}".strip()
        super().__init__(
            message=f"Remote worker rejected {path}: {reason}",
            error_code="WORKER_REJECTED",
            details={"status_code": status_code, "detail": detail, "path": path},
        )
        self.status_code = status_code
        self.detail = detail


class WorkerUnreachableError(WorkerClientError):
    """The request never got an HTTP answer (DNS, refused connection, timeout)."""

    def __init__(self, reason: str, path: str = "/process", cause: Optional[BaseException] = None):
        super().__init__(
            message=f"Remote worker unreachable on {path}: {reason}",
            error_code="WORKER_UNREACHABLE",
            details={"path": path, "transport_error": type(cause).__name__ if cause else None},
            cause=cause,
        )


# ============================================================================
# REQUEST ERRORS
# ============================================================================

class InvalidRequestError(BadRequestException):
    """A caller omitted a field the operation cannot run without."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message=message)
        self.field = field


def describe_error(error: BaseException) -> str:
    """Human readable error text stored on failed ledger rows."""
    if isinstance(error, DispatchSubsystemError):
        return str(error)
    text = str(error)
    return f"{type(error).__name__}: {text}" if text else type(error).__name__
