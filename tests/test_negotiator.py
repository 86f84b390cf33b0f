import httpx
import pytest

from storycall.client.negotiator import EphemeralTokenNegotiator, ServerNegotiator
from storycall.errors import UpstreamRejected, UpstreamTransient
from tests.fakes import RecordingTransport

OFFER = "v=0\r\no=- offer\r\n"
ANSWER = "v=0\r\no=- answer\r\n"


@pytest.mark.asyncio
class TestServerNegotiator:
    async def test_posts_offer_to_session_route(self):
        transport = RecordingTransport(httpx.Response(200, text=ANSWER))
        negotiator = ServerNegotiator("http://relay.test/", transport=transport.transport)

        answer = await negotiator.negotiate(OFFER)

        assert answer == ANSWER
        request = transport.requests[0]
        assert str(request.url) == "http://relay.test/session"
        assert request.headers["Content-Type"] == "application/sdp"
        assert request.content.decode("utf-8") == OFFER

    async def test_relay_error_is_rejected(self):
        transport = RecordingTransport(httpx.Response(500, text="OPENAI_API_KEY missing"))
        negotiator = ServerNegotiator("http://relay.test", transport=transport.transport)

        with pytest.raises(UpstreamRejected) as exc_info:
            await negotiator.negotiate(OFFER)

        assert exc_info.value.status == 500
        assert exc_info.value.body == "OPENAI_API_KEY missing"

    async def test_unreachable_relay(self):
        transport = RecordingTransport(httpx.ConnectError("refused"))
        negotiator = ServerNegotiator("http://relay.test", transport=transport.transport)

        with pytest.raises(UpstreamTransient):
            await negotiator.negotiate(OFFER)


@pytest.mark.asyncio
class TestEphemeralTokenNegotiator:
    async def test_fetches_token_then_posts_offer_to_provider(self):
        transport = RecordingTransport(
            httpx.Response(200, json={"client_secret": {"value": "ek_123"}}),
            httpx.Response(201, text=ANSWER),
        )
        negotiator = EphemeralTokenNegotiator(
            "http://relay.test", api_base="https://upstream.test/v1", transport=transport.transport
        )

        answer = await negotiator.negotiate(OFFER)

        assert answer == ANSWER
        token_request, sdp_request = transport.requests
        assert str(token_request.url) == "http://relay.test/token"
        assert str(sdp_request.url) == "https://upstream.test/v1/realtime/calls"
        assert sdp_request.headers["Authorization"] == "Bearer ek_123"
        assert sdp_request.content.decode("utf-8") == OFFER

    async def test_missing_token_stops_before_provider(self):
        transport = RecordingTransport(httpx.Response(200, json={"expires_at": 1}))
        negotiator = EphemeralTokenNegotiator("http://relay.test", transport=transport.transport)

        with pytest.raises(UpstreamRejected, match="No ephemeral key"):
            await negotiator.negotiate(OFFER)

        assert transport.call_count == 1

    async def test_token_error_status(self):
        transport = RecordingTransport(httpx.Response(500, json={"error": "OPENAI_API_KEY missing"}))
        negotiator = EphemeralTokenNegotiator("http://relay.test", transport=transport.transport)

        with pytest.raises(UpstreamRejected) as exc_info:
            await negotiator.negotiate(OFFER)

        assert exc_info.value.status == 500

    async def test_provider_rejects_offer(self):
        transport = RecordingTransport(
            httpx.Response(200, json={"value": "ek_1"}),
            httpx.Response(400, text="invalid sdp"),
        )
        negotiator = EphemeralTokenNegotiator("http://relay.test", transport=transport.transport)

        with pytest.raises(UpstreamRejected) as exc_info:
            await negotiator.negotiate(OFFER)

        assert exc_info.value.body == "invalid sdp"
