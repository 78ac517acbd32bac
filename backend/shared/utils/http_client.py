"""
Async HTTP client wrapper for YouTube page, feed and thumbnail requests.
Includes retry logic, timeout management, and metrics collection.
"""
from __future__ import annotations

import asyncio
import time
from typing import Optional

import httpx

from shared.config import get_settings
from shared.errors import CheckTimeoutError, TransportError
from shared.utils.logging import get_logger
from shared.utils.metrics import HTTP_LATENCY, HTTP_REQUESTS

logger = get_logger(__name__)


class CrawlerHTTPClient:
    """
    Async HTTP client used by every network-bound tracker operation.

    Responses are returned with their body fully read, whatever the status
    code; interpreting the status is the caller's job. Timeouts and transport
    failures are retried, as are 5xx responses, before giving up.
    """

    def __init__(
        self,
        name: str = "youtube",
        headers: dict[str, str] | None = None,
        timeout_s: float | None = None,
        max_retries: int | None = None,
        retry_delay_s: float = 1.0,
    ) -> None:
        settings = get_settings()
        self._name = name
        self._timeout = timeout_s or settings.http_request_timeout_s
        self._connect_timeout = min(settings.http_connect_timeout_s, self._timeout)
        self._max_retries = max(1, max_retries if max_retries is not None else settings.http_max_retries)
        self._retry_delay = retry_delay_s
        self._default_headers = {"User-Agent": settings.http_user_agent, **(headers or {})}
        self._client: Optional[httpx.AsyncClient] = None

    async def start(self) -> None:
        """Initialize the underlying httpx client."""
        self._client = httpx.AsyncClient(
            headers=self._default_headers,
            timeout=httpx.Timeout(self._timeout, connect=self._connect_timeout),
            follow_redirects=True,
            limits=httpx.Limits(max_connections=50, max_keepalive_connections=20),
        )

    async def close(self) -> None:
        """Close the underlying httpx client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "CrawlerHTTPClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def request(
        self,
        method: str,
        url: str,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
        operation: str = "request",
        follow_redirects: bool = True,
    ) -> httpx.Response:
        """
        Perform a request with retry, metrics, and structured logging.

        Args:
            method: HTTP method.
            url: Absolute request URL.
            content: Optional request body.
            headers: Request-specific headers.
            operation: Operation label for logs, metrics and errors.
            follow_redirects: Whether 3xx responses are followed.

        Returns:
            httpx.Response with the body read.

        Raises:
            CheckTimeoutError: If every attempt timed out.
            TransportError: If every attempt failed at the transport level.
        """
        if not self._client:
            raise RuntimeError("CrawlerHTTPClient not started. Call start() first.")

        last_exc: Optional[Exception] = None
        resp: Optional[httpx.Response] = None

        for attempt in range(1, self._max_retries + 1):
            start_time = time.perf_counter()
            status = "unknown"
            try:
                resp = await self._client.request(
                    method,
                    url,
                    content=content,
                    headers=headers,
                    follow_redirects=follow_redirects,
                )
                status = str(resp.status_code)

                if resp.status_code >= 500 and attempt < self._max_retries:
                    logger.warning(
                        "http_server_error",
                        client=self._name,
                        operation=operation,
                        status=resp.status_code,
                        attempt=attempt,
                    )
                    await asyncio.sleep(self._retry_delay * attempt)
                    continue

                logger.debug(
                    "http_request_done",
                    client=self._name,
                    operation=operation,
                    status=resp.status_code,
                    latency_ms=round((time.perf_counter() - start_time) * 1000, 2),
                )
                return resp

            except httpx.TimeoutException as exc:
                status = "timeout"
                last_exc = exc
                resp = None
                logger.warning(
                    "http_timeout",
                    client=self._name,
                    operation=operation,
                    attempt=attempt,
                )

            except httpx.TransportError as exc:
                status = "error"
                last_exc = exc
                resp = None
                logger.warning(
                    "http_transport_error",
                    client=self._name,
                    operation=operation,
                    error=str(exc),
                    attempt=attempt,
                )

            finally:
                HTTP_REQUESTS.labels(client=self._name, operation=operation, status=status).inc()
                HTTP_LATENCY.labels(client=self._name).observe(time.perf_counter() - start_time)

            if attempt < self._max_retries:
                await asyncio.sleep(self._retry_delay * attempt)

        if resp is not None:
            return resp
        if isinstance(last_exc, httpx.TimeoutException):
            raise CheckTimeoutError(
                f"request timed out after {self._max_retries} attempts", operation=operation
            ) from last_exc
        raise TransportError(
            f"request failed after {self._max_retries} attempts: {last_exc}", operation=operation
        ) from last_exc
