import json

import httpx
import pytest

from storycall.errors import ConfigurationError, UpstreamRejected
from storycall.services.credential_issuer import CredentialIssuer, extract_token
from storycall.services.upstream_client import ResilientUpstreamClient
from tests.fakes import RecordingTransport


def make_issuer(settings, transport, fake_sleep):
    upstream = ResilientUpstreamClient(transport=transport.transport, sleep=fake_sleep)
    return CredentialIssuer(settings, upstream)


@pytest.mark.parametrize(
    "payload,expected",
    [
        ({"client_secret": {"value": "ek_nested", "expires_at": 1}}, "ek_nested"),
        ({"value": "ek_flat", "expires_at": 1}, "ek_flat"),
        ({"client_secret": "ek_string"}, "ek_string"),
        ({"ephemeral_key": "ek_legacy"}, "ek_legacy"),
        ({"client_secret": {}}, None),
        ({}, None),
    ],
)
def test_extract_token_shapes(payload, expected):
    assert extract_token(payload) == expected


@pytest.mark.asyncio
async def test_missing_key_fails_before_upstream(settings_without_key, fake_sleep):
    transport = RecordingTransport(httpx.Response(200, json={"value": "ek_1"}))
    issuer = make_issuer(settings_without_key, transport, fake_sleep)

    with pytest.raises(ConfigurationError):
        await issuer.issue()

    assert transport.call_count == 0


@pytest.mark.asyncio
async def test_issue_returns_upstream_payload_unchanged(settings, fake_sleep):
    payload = {"value": "ek_123", "expires_at": 1760000000, "session": {"type": "realtime"}}
    transport = RecordingTransport(httpx.Response(200, json=payload))
    issuer = make_issuer(settings, transport, fake_sleep)

    credential = await issuer.issue()

    assert credential.payload == payload
    assert credential.value == "ek_123"


@pytest.mark.asyncio
async def test_issue_sends_session_configuration(settings, fake_sleep):
    transport = RecordingTransport(httpx.Response(200, json={"value": "ek_123"}))
    issuer = make_issuer(settings, transport, fake_sleep)

    await issuer.issue()

    request = transport.requests[0]
    assert str(request.url) == "https://upstream.test/v1/realtime/client_secrets"
    assert request.headers["Authorization"] == "Bearer sk-test-key"
    body = json.loads(request.content)
    assert body["session"]["model"] == "gpt-realtime-test"
    assert body["session"]["audio"]["output"]["voice"] == "verse"


@pytest.mark.asyncio
async def test_rejected_request_keeps_status_and_body(settings, fake_sleep):
    transport = RecordingTransport(
        httpx.Response(401, json={"error": {"message": "Incorrect API key provided"}})
    )
    issuer = make_issuer(settings, transport, fake_sleep)

    with pytest.raises(UpstreamRejected) as exc_info:
        await issuer.issue()

    assert exc_info.value.status == 401
    assert "Incorrect API key" in exc_info.value.body
    assert transport.call_count == 1


@pytest.mark.asyncio
async def test_non_json_success_yields_empty_payload(settings, fake_sleep):
    transport = RecordingTransport(httpx.Response(200, text="not json"))
    issuer = make_issuer(settings, transport, fake_sleep)

    credential = await issuer.issue()

    assert credential.payload == {}
    assert credential.value is None
