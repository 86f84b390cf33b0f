"""
Signaling clients that turn a local SDP offer into the provider's answer.

ServerNegotiator is the default: the offer goes to the StoryCall relay, which
holds the API key. EphemeralTokenNegotiator is the optional direct mode: the
client fetches a short-lived credential from the relay's /token route and
posts the offer straight to the provider with it.
"""

import logging
from typing import Optional

import httpx

from storycall.config.constants import (
    DEFAULT_API_BASE,
    LOGGER_NAME,
    REALTIME_CALLS_PATH,
    SDP_MEDIA_TYPE,
    UPSTREAM_TIMEOUT,
)
from storycall.errors import UpstreamRejected, UpstreamTransient
from storycall.services.credential_issuer import extract_token

logger = logging.getLogger(LOGGER_NAME)


class ServerNegotiator:
    """Exchanges the offer through the relay's POST /session route."""

    def __init__(
        self,
        server_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = UPSTREAM_TIMEOUT * 4,
    ):
        # The relay may spend up to three upstream attempts, so allow for them here
        self.server_url = server_url.rstrip("/")
        self._transport = transport
        self.timeout = timeout

    async def negotiate(self, offer_sdp: str) -> str:
        """
        Post the offer to the relay and return the answer SDP.

        Raises:
            UpstreamRejected: If the relay answered with a non-200 status
            UpstreamTransient: If the relay could not be reached
        """
        logger.info(f"Sending offer to {self.server_url}/session")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.server_url}/session",
                    content=offer_sdp.encode("utf-8"),
                    headers={"Content-Type": SDP_MEDIA_TYPE},
                )
        except httpx.HTTPError as e:
            raise UpstreamTransient(f"Relay unreachable: {e}") from e

        if response.status_code != 200:
            logger.error(f"Relay returned error: {response.status_code}")
            raise UpstreamRejected(
                f"Session negotiation failed ({response.status_code})",
                status=response.status_code,
                body=response.text,
            )
        return response.text


class EphemeralTokenNegotiator:
    """Fetches a client secret from /token and negotiates with the provider directly."""

    def __init__(
        self,
        server_url: str,
        api_base: str = DEFAULT_API_BASE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = UPSTREAM_TIMEOUT,
    ):
        self.server_url = server_url.rstrip("/")
        self.calls_url = api_base.rstrip("/") + REALTIME_CALLS_PATH
        self._transport = transport
        self.timeout = timeout

    async def fetch_token(self, client: httpx.AsyncClient) -> str:
        response = await client.get(f"{self.server_url}/token")
        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.status_code != 200:
            raise UpstreamRejected(
                f"Token error ({response.status_code})",
                status=response.status_code,
                body=response.text,
            )

        token = extract_token(payload) if isinstance(payload, dict) else None
        if not token:
            raise UpstreamRejected(
                "No ephemeral key in response", status=response.status_code, body=response.text
            )
        return token

    async def negotiate(self, offer_sdp: str) -> str:
        """
        Negotiate with the provider using an ephemeral credential.

        Raises:
            UpstreamRejected: If the token or SDP exchange was refused
            UpstreamTransient: If either endpoint could not be reached
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                token = await self.fetch_token(client)
                logger.info("Obtained ephemeral key, sending offer to provider")
                response = await client.post(
                    self.calls_url,
                    content=offer_sdp.encode("utf-8"),
                    headers={
                        "Authorization": f"Bearer {token}",
                        "Content-Type": SDP_MEDIA_TYPE,
                    },
                )
        except httpx.HTTPError as e:
            raise UpstreamTransient(f"Negotiation endpoint unreachable: {e}") from e

        if response.is_error:
            raise UpstreamRejected(
                f"Provider rejected the offer ({response.status_code})",
                status=response.status_code,
                body=response.text,
            )
        return response.text
