"""
HTTP transport for the remote analytics service and vector store.

Wraps ``httpx.AsyncClient`` with bearer auth, per-request timeouts and
retry/backoff for transient failures. Every failure leaves this module as a
``RemoteServiceError``.

Usage:
    from embedding_clustering.config import config
    from embedding_clustering.providers.http_client import AnalyticsHttpClient

    async with AnalyticsHttpClient(config.analytics) as client:
        body = await client.request("GET", "/v1/vector/list", params={"namespace": "docs"})
"""

from typing import Any, Mapping, Optional

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception,
)

from ..config import AnalyticsServiceConfig
from ..exceptions import RemoteServiceError
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}


class AnalyticsHttpClient:
    """
    Async JSON client for the analytics service.

    Retries on:
    - Timeouts and connection errors
    - HTTP 408, 425, 429 and 5xx responses

    Does NOT retry on other 4xx responses (bad request, auth, not found).
    """

    def __init__(
        self,
        config: Optional[AnalyticsServiceConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Args:
            config: Endpoint, credentials, timeout and retry settings.
                    Defaults to ``AnalyticsServiceConfig()`` (local instance).
            transport: Optional httpx transport, e.g. ``httpx.MockTransport``
                       in tests.
        """
        self.config = config or AnalyticsServiceConfig()
        headers = {"Content-Type": "application/json"}
        if not self.config.local_mode:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            headers=headers,
            timeout=self.config.timeout,
            transport=transport,
        )
        logger.info(
            "Initialized AnalyticsHttpClient (base_url=%s, local_mode=%s)",
            self.config.base_url,
            self.config.local_mode,
        )

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Args:
            method: HTTP method
            path: Path relative to the base URL
            json: Optional JSON body
            params: Optional query parameters
            timeout: Per-request timeout override in seconds

        Returns:
            Decoded JSON response

        Raises:
            RemoteServiceError: On HTTP errors, timeouts, connection failures
                or undecodable bodies, after retries are exhausted
        """
        delay = self.config.retry_delay
        retry_decorator = retry(
            stop=stop_after_attempt(self.config.retry_attempts),
            wait=wait_exponential(multiplier=delay, min=delay, max=delay * 8),
            retry=retry_if_exception(self._should_retry_exception),
            reraise=True,
        )

        @retry_decorator
        async def _make_call():
            return await self._send(method, path, json=json, params=params, timeout=timeout)

        return await _make_call()

    async def _send(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        kwargs: dict = {}
        if json is not None:
            kwargs["json"] = json
        if params:
            kwargs["params"] = dict(params)
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("%s %s timed out", method, path)
            raise RemoteServiceError(f"Request timeout: {method} {path}", details=e) from e
        except httpx.TransportError as e:
            logger.warning("%s %s connection failed: %s", method, path, e)
            raise RemoteServiceError(f"Connection failed: {method} {path}: {e}", details=e) from e

        if response.is_error:
            raise RemoteServiceError(
                self._error_message(response),
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise RemoteServiceError(
                f"Invalid JSON from {method} {path}",
                status_code=response.status_code,
                details=e,
            ) from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Prefer the server's ``message`` field, else ``HTTP <code>: <reason>``."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"HTTP {response.status_code}: {response.reason_phrase}"

    @staticmethod
    def _should_retry_exception(exception: BaseException) -> bool:
        """
        Determine if an exception should trigger a retry.

        Transport failures carry no status code and are always retried.
        """
        if not isinstance(exception, RemoteServiceError):
            return False
        if exception.status_code is None:
            return isinstance(exception.details, httpx.TransportError)
        return exception.status_code in RETRYABLE_STATUS_CODES

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "AnalyticsHttpClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
