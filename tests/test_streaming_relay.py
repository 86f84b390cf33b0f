"""
Unit tests for the server-sent event streaming relay.
"""

import json

import httpx
import pytest

from storycall.config.prompts import STREAM_INSTRUCTIONS
from storycall.errors import BadRequest
from storycall.services.streaming_relay import StreamingRelay, format_sse
from tests.fakes import RecordingTransport


def parse_sse(frames):
    """Turn framed SSE strings into (event, data) pairs."""
    events = []
    for frame in "".join(frames).split("\n\n"):
        if not frame.strip():
            continue
        lines = dict(line.split(": ", 1) for line in frame.split("\n"))
        events.append((lines["event"], json.loads(lines["data"])))
    return events


class ChunkSource:
    """Async byte source that counts how far the relay read."""

    def __init__(self, *chunks):
        self.chunks = chunks
        self.produced = 0

    async def __aiter__(self):
        for chunk in self.chunks:
            self.produced += 1
            yield chunk


async def collect(relay, request, **kwargs):
    return [frame async for frame in relay.stream(request, **kwargs)]


def test_format_sse_frames_event():
    assert format_sse("chunk", {"chunk": "hé"}) == 'event: chunk\ndata: {"chunk": "hé"}\n\n'


class TestPrepare:
    def test_blank_text_is_rejected(self, settings):
        relay = StreamingRelay(settings)
        for text in (None, "", "   ", 12):
            with pytest.raises(BadRequest):
                relay.prepare(text)

    def test_text_and_mode_are_bounded(self, settings):
        relay = StreamingRelay(settings)

        prepared = relay.prepare("a" * 5000, "m" * 50)

        assert len(prepared.text) == 2000
        assert len(prepared.mode) == 20

    def test_mode_defaults_to_chat(self, settings):
        relay = StreamingRelay(settings)

        assert relay.prepare("hello").mode == "chat"
        assert relay.prepare("hello", "  ").mode == "chat"
        assert relay.prepare("hello", 7).mode == "chat"
        assert relay.prepare(" hello ", "story").text == "hello"


@pytest.mark.asyncio
async def test_chunks_are_forwarded_in_order_then_done(settings):
    source = ChunkSource(b"a", b"b", b"c")
    transport = RecordingTransport(lambda request: httpx.Response(200, content=source))
    relay = StreamingRelay(settings, transport=transport.transport)

    events = parse_sse(await collect(relay, relay.prepare("Tell me more")))

    assert events == [
        ("chunk", {"chunk": "a"}),
        ("chunk", {"chunk": "b"}),
        ("chunk", {"chunk": "c"}),
        ("done", {}),
    ]


@pytest.mark.asyncio
async def test_upstream_request_uses_mode_instructions(settings):
    transport = RecordingTransport(httpx.Response(200, text="ok"))
    relay = StreamingRelay(settings, transport=transport.transport)

    await collect(relay, relay.prepare("Once upon a time", "story"))

    request = transport.requests[0]
    assert str(request.url) == "https://upstream.test/v1/responses"
    assert request.headers["Authorization"] == "Bearer sk-test-key"
    body = json.loads(request.content)
    assert body == {
        "model": "gpt-text-test",
        "instructions": STREAM_INSTRUCTIONS["story"],
        "input": "Once upon a time",
        "stream": True,
    }


@pytest.mark.asyncio
async def test_unknown_mode_falls_back_to_chat_instructions(settings):
    transport = RecordingTransport(httpx.Response(200, text="ok"))
    relay = StreamingRelay(settings, transport=transport.transport)

    await collect(relay, relay.prepare("hi", "dance"))

    body = json.loads(transport.requests[0].content)
    assert body["instructions"] == STREAM_INSTRUCTIONS["chat"]


@pytest.mark.asyncio
async def test_rejected_request_yields_single_error_event(settings):
    transport = RecordingTransport(httpx.Response(429, text="r" * 9000))
    relay = StreamingRelay(settings, transport=transport.transport)

    events = parse_sse(await collect(relay, relay.prepare("hi")))

    assert len(events) == 1
    event, data = events[0]
    assert event == "error"
    assert data["status"] == 429
    assert len(data["body"]) == 6000


@pytest.mark.asyncio
async def test_network_failure_yields_error_event(settings):
    transport = RecordingTransport(httpx.ConnectError("connection refused"))
    relay = StreamingRelay(settings, transport=transport.transport)

    events = parse_sse(await collect(relay, relay.prepare("hi")))

    assert [event for event, _ in events] == ["error"]
    assert events[0][1]["status"] == 502


@pytest.mark.asyncio
async def test_missing_key_yields_error_without_io(settings_without_key):
    transport = RecordingTransport(httpx.Response(200, text="ok"))
    relay = StreamingRelay(settings_without_key, transport=transport.transport)

    events = parse_sse(await collect(relay, relay.prepare("hi")))

    assert events == [("error", {"status": 500, "body": "OPENAI_API_KEY missing"})]
    assert transport.call_count == 0


@pytest.mark.asyncio
async def test_disconnected_caller_stops_upstream_reads(settings):
    source = ChunkSource(b"a", b"b", b"c", b"d", b"e")
    transport = RecordingTransport(lambda request: httpx.Response(200, content=source))
    relay = StreamingRelay(settings, transport=transport.transport)
    checks = iter([False, True])

    async def is_disconnected():
        return next(checks, True)

    events = parse_sse(
        await collect(relay, relay.prepare("hi"), is_disconnected=is_disconnected)
    )

    assert events == [("chunk", {"chunk": "a"})]
    assert source.produced < 5
