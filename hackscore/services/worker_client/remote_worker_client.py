"""
Remote Worker Client

Hands jobs to the remote analysis worker over HTTP. ``forward`` builds the
request inline and returns a running task for its transmission, so callers
learn immediately whether the hand-off could even be attempted without
waiting for the worker to finish the analysis.
"""

import asyncio
from typing import Any, Dict, Optional

import httpx

from hackscore.core.config import Settings
from hackscore.exceptions.dispatch_exceptions import (
    WorkerConfigurationError,
    WorkerRejectedError,
    WorkerUnreachableError,
)
from hackscore.models.schemas.dispatch_payload import DispatchPayload, WorkerAck
from hackscore.utils.logging import get_logger

logger = get_logger(__name__)

PROCESS_PATH = "/process"
POLL_PATH = "/poll"
_MAX_DETAIL_CHARS = 500


class RemoteWorkerClient:
    """
    Authenticated client for the remote worker's ``/process`` and ``/poll`` endpoints.

    The bearer token comes from process configuration only. Payloads carry
    the user's identity, never their secrets.
    """

    def __init__(
        self,
        base_url: str,
        auth_token: str,
        timeout: float = 3600.0,
        connect_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self._auth_token = auth_token or ""
        if not self._auth_token:
            logger.warning("Remote worker auth token is empty; requests will likely be rejected")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout, connect=connect_timeout),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "RemoteWorkerClient":
        return cls(
            base_url=settings.REMOTE_WORKER_URL,
            auth_token=settings.REMOTE_WORKER_AUTH_TOKEN,
            timeout=settings.REMOTE_WORKER_TIMEOUT_SECONDS,
            connect_timeout=settings.REMOTE_WORKER_CONNECT_TIMEOUT_SECONDS,
            transport=transport,
        )

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._auth_token}",
        }

    def _build_request(self, path: str, body: Optional[Dict[str, Any]] = None) -> httpx.Request:
        if not self.base_url:
            raise WorkerConfigurationError("REMOTE_WORKER_URL is empty")
        if self._client.is_closed:
            raise WorkerConfigurationError("HTTP client is closed")
        return self._client.build_request("POST", path, json=body, headers=self._headers())

    async def _send(self, request: httpx.Request) -> WorkerAck:
        path = request.url.path
        try:
            response = await self._client.send(request)
        except httpx.TransportError as e:
            logger.error(f"Remote worker unreachable at {request.url}: {type(e).__name__}: {e}")
            raise WorkerUnreachableError(f"{type(e).__name__}: {e}", path=path, cause=e) from e

        if not response.is_success:
            detail = (response.text or response.reason_phrase or "")[:_MAX_DETAIL_CHARS]
            logger.error(f"Remote worker rejected {path}: {response.status_code} {detail}")
            raise WorkerRejectedError(response.status_code, detail, path=path)

        try:
            body = response.json() if response.content else None
        except ValueError:
            body = response.text
        return WorkerAck(status_code=response.status_code, body=body)

    def forward(self, payload: DispatchPayload) -> "asyncio.Task[WorkerAck]":
        """
        Start handing ``payload`` to the worker.

        Raises synchronously when the request cannot be built (missing URL,
        closed client, unserializable payload). Otherwise returns a task that
        resolves with the worker's acknowledgement, or fails with
        ``WorkerRejectedError`` / ``WorkerUnreachableError``.
        """
        body = payload.to_wire()
        request = self._build_request(PROCESS_PATH, body)
        logger.info(f"Forwarding job {payload.job_id or '<unknown>'} to remote worker at {self.base_url}")
        return asyncio.get_running_loop().create_task(
            self._send(request), name=f"handoff-{payload.job_id or 'job'}"
        )

    async def poll(self) -> WorkerAck:
        """Ask the worker to look for work now. The request body is ignored."""
        request = self._build_request(POLL_PATH)
        return await self._send(request)

    async def aclose(self) -> None:
        await self._client.aclose()
