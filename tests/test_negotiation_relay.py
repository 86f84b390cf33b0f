"""
Unit tests for the SDP negotiation relay.
"""

import json

import httpx
import pytest

from storycall.errors import BadRequest, ConfigurationError, UpstreamRejected, UpstreamTransient
from storycall.models.session_config import SessionConfiguration
from storycall.services.negotiation_relay import NegotiationRelay
from storycall.services.upstream_client import ResilientUpstreamClient
from tests.fakes import RecordingTransport

OFFER = "v=0\r\no=- 4611731400430051336 2 IN IP4 127.0.0.1\r\ns=-\r\nt=0 0\r\n"
ANSWER = "v=0\r\no=- 1 2 IN IP4 203.0.113.5\r\ns=-\r\na=ice-ufrag:Xy9z\r\n\r\n"


def make_relay(settings, transport, fake_sleep):
    upstream = ResilientUpstreamClient(transport=transport.transport, sleep=fake_sleep)
    return NegotiationRelay(settings, upstream)


@pytest.mark.asyncio
@pytest.mark.parametrize("offer", ["", "   ", "\r\n\t", None, 42, b"v=0"])
async def test_missing_offer_is_rejected_before_upstream(offer, settings, fake_sleep):
    transport = RecordingTransport(httpx.Response(201, text=ANSWER))
    relay = make_relay(settings, transport, fake_sleep)

    with pytest.raises(BadRequest):
        await relay.negotiate(offer)

    assert transport.call_count == 0


@pytest.mark.asyncio
async def test_missing_key_fails_without_io(settings_without_key, fake_sleep):
    transport = RecordingTransport(httpx.Response(201, text=ANSWER))
    relay = make_relay(settings_without_key, transport, fake_sleep)

    with pytest.raises(ConfigurationError, match="OPENAI_API_KEY missing"):
        await relay.negotiate(OFFER)

    assert transport.call_count == 0


@pytest.mark.asyncio
async def test_answer_is_returned_byte_for_byte(settings, fake_sleep):
    transport = RecordingTransport(
        httpx.Response(201, text=ANSWER, headers={"Content-Type": "application/sdp"})
    )
    relay = make_relay(settings, transport, fake_sleep)

    answer = await relay.negotiate(OFFER)

    assert answer == ANSWER
    assert transport.call_count == 1


@pytest.mark.asyncio
async def test_offer_and_session_are_sent_as_multipart(settings, fake_sleep):
    transport = RecordingTransport(httpx.Response(201, text=ANSWER))
    relay = make_relay(settings, transport, fake_sleep)

    await relay.negotiate(OFFER)

    request = transport.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://upstream.test/v1/realtime/calls"
    assert request.headers["Authorization"] == "Bearer sk-test-key"
    assert request.headers["Content-Type"].startswith("multipart/form-data")

    body = request.content.decode("utf-8")
    assert 'name="sdp"' in body
    assert 'name="session"' in body
    assert OFFER in body
    expected_session = json.dumps(SessionConfiguration.from_settings(settings).to_upstream())
    assert expected_session in body


@pytest.mark.asyncio
async def test_custom_session_configuration_is_forwarded(settings, fake_sleep):
    transport = RecordingTransport(httpx.Response(201, text=ANSWER))
    upstream = ResilientUpstreamClient(transport=transport.transport, sleep=fake_sleep)
    config = SessionConfiguration(model="gpt-realtime-mini", voice="alloy", output_modalities=("audio",))
    relay = NegotiationRelay(settings, upstream, session_config=config)

    await relay.negotiate(OFFER)

    body = transport.requests[0].content.decode("utf-8")
    assert '"model": "gpt-realtime-mini"' in body
    assert '"voice": "alloy"' in body


@pytest.mark.asyncio
async def test_rejected_exchange_keeps_truncated_body(settings, fake_sleep):
    transport = RecordingTransport(httpx.Response(400, text="x" * 10000))
    relay = make_relay(settings, transport, fake_sleep)

    with pytest.raises(UpstreamRejected) as exc_info:
        await relay.negotiate(OFFER)

    assert exc_info.value.status == 400
    assert len(exc_info.value.body) == 6000
    assert transport.call_count == 1


@pytest.mark.asyncio
async def test_gateway_failures_are_retried_before_answering(settings, fake_sleep, recorded_sleeps):
    transport = RecordingTransport(
        httpx.Response(503, text="busy"),
        httpx.Response(201, text=ANSWER),
    )
    relay = make_relay(settings, transport, fake_sleep)

    answer = await relay.negotiate(OFFER)

    assert answer == ANSWER
    assert transport.call_count == 2
    assert recorded_sleeps == [pytest.approx(0.8)]


@pytest.mark.asyncio
async def test_unreachable_upstream_raises_transient(settings, fake_sleep):
    transport = RecordingTransport(httpx.ReadTimeout("read timed out"))
    relay = make_relay(settings, transport, fake_sleep)

    with pytest.raises(UpstreamTransient):
        await relay.negotiate(OFFER)

    assert transport.call_count == 3
