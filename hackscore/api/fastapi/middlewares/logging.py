import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from hackscore.utils.logging import Logger

LOGGER = Logger("api.requests")

# Polled by load balancers and the scheduler; not worth a log line each.
_QUIET_PATHS = {"/", "/api/health", "/api/ping"}


class LogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.id = request_id

        if request.url.path in _QUIET_PATHS:
            return await call_next(request)

        request_logger = LOGGER.bind(
            request_id=request_id,
            method=request.method,
            url=str(request.url),
            client=request.headers.get("x-hackscore-client", "unknown"),
            ip=request.client.host if request.client else None,
        )
        request_logger.info("Incoming Request")

        try:
            response = await call_next(request)
        except Exception as e:
            request_logger.error("Error in request processing", extra={"error": str(e)})
            raise

        request_logger.info("Response", extra={"status_code": response.status_code})
        response.headers["x-request-id"] = request_id
        return response
