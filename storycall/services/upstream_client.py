"""
Resilient HTTP client for calls to the OpenAI API.

Every outbound request from the relay goes through ResilientUpstreamClient,
which applies a per-attempt timeout and retries gateway failures with a short
linear backoff. The total wait is bounded (0.8s + 1.6s between three attempts)
so a failed negotiation still reports back within a live call's patience.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

import httpx

from storycall.config.constants import (
    LOGGER_NAME,
    TRANSIENT_STATUS_CODES,
    UPSTREAM_BASE_DELAY,
    UPSTREAM_MAX_ATTEMPTS,
    UPSTREAM_TIMEOUT,
)
from storycall.errors import RetriesExhausted, UpstreamError, UpstreamTransient

logger = logging.getLogger(LOGGER_NAME)


class ResilientUpstreamClient:
    """
    Sends requests upstream with bounded retry, linear backoff and a timeout.

    Only transient failures are retried: gateway statuses (502, 503, 504),
    network errors and timeouts. Any other response, successful or not, is
    returned to the caller on the first attempt since a retry cannot fix bad
    input or bad credentials.
    """

    def __init__(
        self,
        max_attempts: int = UPSTREAM_MAX_ATTEMPTS,
        base_delay: float = UPSTREAM_BASE_DELAY,
        timeout: float = UPSTREAM_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.timeout = timeout
        self._transport = transport
        self._sleep = sleep

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def call(self, method: str, url: str, **request: Any) -> httpx.Response:
        """
        Send a request, retrying transient failures.

        Args:
            method: HTTP method
            url: Absolute upstream URL
            **request: Keyword arguments for ``httpx.AsyncClient.request``
                (headers, json, data, files, content)

        Returns:
            httpx.Response: The first non-transient response (body already read)

        Raises:
            UpstreamTransient: The last transient failure once attempts run out
        """
        last_error: Optional[UpstreamError] = None
        started = time.monotonic()

        async with self._client() as client:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    response = await asyncio.wait_for(
                        client.request(method, url, **request), timeout=self.timeout
                    )
                except asyncio.TimeoutError as e:
                    last_error = UpstreamTransient(
                        f"Upstream timed out after {self.timeout}s"
                    )
                    last_error.__cause__ = e
                except httpx.TransportError as e:
                    last_error = UpstreamTransient(f"Upstream connection failed: {e}")
                    last_error.__cause__ = e
                else:
                    if response.status_code not in TRANSIENT_STATUS_CODES:
                        logger.debug(
                            f"{method} {url} -> {response.status_code} "
                            f"(attempt {attempt}/{self.max_attempts})"
                        )
                        return response
                    last_error = UpstreamTransient(
                        f"Upstream returned {response.status_code}",
                        status=response.status_code,
                        body=response.text,
                    )

                elapsed = time.monotonic() - started
                logger.warning(
                    f"{method} {url} attempt {attempt}/{self.max_attempts} failed "
                    f"after {elapsed:.2f}s: {last_error}"
                )

                if attempt < self.max_attempts:
                    delay = self.base_delay * attempt
                    logger.info(f"Retrying upstream call in {delay:.1f} seconds")
                    await self._sleep(delay)

        if last_error is not None:
            raise last_error
        raise RetriesExhausted("Upstream retries exhausted")
