"""
Server-sent event relay for the typed-text fallback channel.

A single streaming request is opened against the provider's Responses API and
every chunk it yields is re-framed as an SSE ``chunk`` event the moment it
arrives. The stream always ends with exactly one terminal event, ``done`` or
``error``; a client that sees the connection close without one should treat the
reply as cut off.
"""

import json
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

import httpx
from pydantic import BaseModel

from storycall.config.constants import (
    LOGGER_NAME,
    MAX_STREAM_MODE_CHARS,
    MAX_STREAM_TEXT_CHARS,
    RESPONSES_PATH,
    SSE_CHUNK,
    SSE_DONE,
    SSE_ERROR,
    UPSTREAM_TIMEOUT,
)
from storycall.config.prompts import STREAM_INSTRUCTIONS
from storycall.config.settings import Settings
from storycall.errors import BadRequest, truncate_body

logger = logging.getLogger(LOGGER_NAME)

# Headers that keep proxies from buffering or caching the stream
STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse(event: str, data: Dict[str, Any]) -> str:
    """Frame one server-sent event."""
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


class StreamRequest(BaseModel):
    """Validated and truncated input for one streaming reply."""

    text: str
    mode: str = "chat"


class StreamingRelay:
    """Republishes upstream streaming chunks to the caller as SSE."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = UPSTREAM_TIMEOUT,
    ):
        self.settings = settings
        self._transport = transport
        self.timeout = timeout

    def prepare(self, text: Any, mode: Any = None) -> StreamRequest:
        """
        Validate and bound the caller's input.

        Raises:
            BadRequest: If ``text`` is missing or blank
        """
        if not isinstance(text, str) or not text.strip():
            raise BadRequest("Missing text")
        mode_hint = mode.strip() if isinstance(mode, str) else ""
        return StreamRequest(
            text=text.strip()[:MAX_STREAM_TEXT_CHARS],
            mode=(mode_hint or "chat")[:MAX_STREAM_MODE_CHARS],
        )

    def _payload(self, request: StreamRequest) -> Dict[str, Any]:
        instructions = STREAM_INSTRUCTIONS.get(request.mode, STREAM_INSTRUCTIONS["chat"])
        return {
            "model": self.settings.text_model,
            "instructions": instructions,
            "input": request.text,
            "stream": True,
        }

    async def stream(
        self,
        request: StreamRequest,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> AsyncIterator[str]:
        """
        Yield framed SSE events for one reply.

        Args:
            request: Prepared input from ``prepare``
            is_disconnected: Optional check run before each forward; when it
                reports the caller gone the upstream read stops

        Yields:
            str: ``chunk`` events in arrival order, then one ``done`` or ``error``
        """
        if not self.settings.has_api_key:
            yield format_sse(SSE_ERROR, {"status": 500, "body": "OPENAI_API_KEY missing"})
            return

        url = self.settings.upstream_url(RESPONSES_PATH)
        headers = {
            "Authorization": f"Bearer {self.settings.openai_api_key}",
            "Accept": "text/event-stream",
        }
        chunk_count = 0

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                async with client.stream(
                    "POST", url, headers=headers, json=self._payload(request)
                ) as response:
                    if response.is_error:
                        body = (await response.aread()).decode("utf-8", errors="replace")
                        logger.error(
                            f"Streaming request rejected with status {response.status_code}"
                        )
                        yield format_sse(
                            SSE_ERROR,
                            {"status": response.status_code, "body": truncate_body(body)},
                        )
                        return

                    async for chunk in response.aiter_text():
                        if not chunk:
                            continue
                        if is_disconnected is not None and await is_disconnected():
                            logger.info(
                                f"Caller disconnected after {chunk_count} chunks, closing upstream"
                            )
                            return
                        chunk_count += 1
                        yield format_sse(SSE_CHUNK, {"chunk": chunk})
        except httpx.HTTPError as e:
            logger.error(f"Streaming relay failed after {chunk_count} chunks: {e}")
            yield format_sse(SSE_ERROR, {"status": 502, "body": truncate_body(str(e))})
            return

        logger.info(f"Streaming reply finished with {chunk_count} chunks")
        yield format_sse(SSE_DONE, {})
