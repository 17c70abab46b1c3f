from logging import Logger
import traceback

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from hackscore.utils.response import ErrorResponse


class AppException(Exception):
    """Error that carries the HTTP status it should be reported with."""

    def __init__(self, status_code: int = 500, message: str = "An unexpected error occurred"):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class BadRequestException(AppException):
    def __init__(self, message: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, message=message)


class UnauthorizedException(AppException):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, message=message)


class NotFoundException(AppException):
    def __init__(self, message: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, message=message)


class ServiceUnavailableException(AppException):
    def __init__(self, message: str = "Service unavailable"):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, message=message)


class ExceptionHandler:
    def __init__(self, logger: Logger):
        self.logger = logger

    def handle_exception(self, e: Exception, request_id: str) -> JSONResponse:
        if isinstance(e, AppException):
            log = self.logger.warning if e.status_code < 500 else self.logger.error
            log(f"{type(e).__name__} ({e.status_code}): {e.message}", extra={"request_id": request_id})
            return JSONResponse(
                status_code=e.status_code,
                content=ErrorResponse(success=False, errorMessage=e.message).model_dump(),
            )
        if isinstance(e, ValueError):
            self.logger.error(f"Value error: {str(e)}", extra={"request_id": request_id})
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content=ErrorResponse(
                    success=False, errorMessage=f"validation error: {e}"
                ).model_dump(),
            )

        tb_str = "".join(traceback.format_exception(type(e), e, e.__traceback__))
        self.logger.error(
            f"Internal error - Type: {type(e).__name__}, Message: {str(e)}\nTraceback:\n{tb_str}",
            extra={"request_id": request_id},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                success=False, errorMessage="an internal error just occurred"
            ).model_dump(),
        )


def add_exception_handlers(app: FastAPI, logger: Logger) -> None:
    handler = ExceptionHandler(logger)

    async def _handle(request: Request, exc: Exception) -> JSONResponse:
        request_id = getattr(request.state, "id", "unknown")
        return handler.handle_exception(exc, request_id)

    app.add_exception_handler(AppException, _handle)
    app.add_exception_handler(ValueError, _handle)
    app.add_exception_handler(Exception, _handle)
