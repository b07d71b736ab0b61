"""Retrying HTTP client used by the stdio bridge."""

import asyncio
import logging
from typing import Any, Awaitable, Callable

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from companies_house_mcp.mcp.errors import TransportError
from companies_house_mcp.tools.companies_house.client import describe_http_error
from companies_house_mcp.utils.http import create_http_client

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class BridgeState:
    """Per-process retry bookkeeping, reported by ``bridge/status``."""

    def __init__(self, max_retry_attempts: int = 3, base_delay: int = 2000):
        self.retry_count = 0
        self.max_retry_attempts = max_retry_attempts
        self.base_delay = base_delay  # milliseconds


class RetryingHttpClient:
    """
    HTTP client that retries failed calls with exponential backoff.

    Network errors, timeouts and non-2xx responses all count as failures. A
    call is retried up to ``max_retry_attempts`` times, waiting
    ``base_delay * 2**k`` milliseconds before retry ``k``. Each call keeps its
    own attempt count, so one request's retries never hold up another's.
    """

    def __init__(
        self,
        base_url: str,
        state: BridgeState,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.base_url = base_url
        self.state = state
        self._sleep = sleep
        self._client = create_http_client(
            timeout=timeout, base_url=base_url, transport=transport
        )

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        self.state.retry_count += 1
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay_ms = retry_state.next_action.sleep * 1000 if retry_state.next_action else 0
        logger.warning(
            f"HTTP request attempt {retry_state.attempt_number} failed: "
            f"{describe_http_error(error) if error else 'unknown error'}; "
            f"retrying in {delay_ms:.0f}ms"
        )

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.state.max_retry_attempts + 1),
            wait=wait_exponential(
                multiplier=self.state.base_delay / 1000, exp_base=2, min=0
            ),
            retry=retry_if_exception_type(httpx.HTTPError),
            before_sleep=self._before_sleep,
            sleep=self._sleep,
        )

    async def request(
        self, method: str, url: str, payload: Any = None
    ) -> httpx.Response:
        """
        Send a request, retrying on failure.

        Raises:
            TransportError: Every attempt failed. The message states how many
                attempts were made.
        """
        try:
            async for attempt in self._retrying():
                with attempt:
                    if payload is None:
                        response = await self._client.request(method, url)
                    else:
                        response = await self._client.request(method, url, json=payload)
                    response.raise_for_status()
        except RetryError as e:
            attempts = e.last_attempt.attempt_number
            cause = e.last_attempt.exception()
            raise TransportError(
                f"Request failed after {attempts} attempts: {describe_http_error(cause)}",
                attempts=attempts,
            ) from cause

        self.state.retry_count = 0
        return response

    async def get(self, url: str) -> httpx.Response:
        return await self.request("GET", url)

    async def post(self, url: str, payload: Any) -> httpx.Response:
        return await self.request("POST", url, payload)

    async def check_health(self) -> bool:
        """Single unretried probe of ``GET /health``."""
        try:
            response = await self._client.get("/health")
        except httpx.HTTPError:
            return False
        return response.status_code == 200

    async def aclose(self) -> None:
        await self._client.aclose()
