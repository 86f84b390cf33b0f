"""
SDP offer/answer relay between the client and the OpenAI Realtime API.

The relay keeps the API key on the server: the client posts its raw SDP offer,
the relay submits it together with the session configuration as one multipart
request, and the provider's SDP answer is handed back byte for byte.
"""

import json
import logging
from typing import Optional

from storycall.config.constants import LOGGER_NAME, REALTIME_CALLS_PATH
from storycall.config.settings import Settings
from storycall.errors import BadRequest, ConfigurationError, UpstreamRejected
from storycall.models.session_config import SessionConfiguration
from storycall.services.upstream_client import ResilientUpstreamClient

logger = logging.getLogger(LOGGER_NAME)


class NegotiationRelay:
    """Exchanges a local session description for the provider's answer."""

    def __init__(
        self,
        settings: Settings,
        upstream: ResilientUpstreamClient,
        session_config: Optional[SessionConfiguration] = None,
    ):
        self.settings = settings
        self.upstream = upstream
        self.session_config = session_config or SessionConfiguration.from_settings(settings)

    async def negotiate(self, local_description) -> str:
        """
        Forward an SDP offer upstream and return the SDP answer.

        Args:
            local_description: Raw SDP offer text from the client

        Returns:
            str: The remote description exactly as the provider returned it

        Raises:
            BadRequest: If the offer is missing, empty or not text
            ConfigurationError: If no API key is configured
            UpstreamRejected: If the provider refused the offer (body truncated)
            UpstreamTransient: If the provider stayed unreachable
        """
        if not isinstance(local_description, str) or not local_description.strip():
            raise BadRequest("Missing SDP offer")
        if not self.settings.has_api_key:
            raise ConfigurationError("OPENAI_API_KEY missing")

        files = {
            "sdp": (None, local_description),
            "session": (None, json.dumps(self.session_config.to_upstream())),
        }
        logger.info(f"Relaying SDP offer ({len(local_description)} chars) upstream")

        response = await self.upstream.call(
            "POST",
            self.settings.upstream_url(REALTIME_CALLS_PATH),
            headers={"Authorization": f"Bearer {self.settings.openai_api_key}"},
            files=files,
        )

        if response.is_error:
            logger.error(f"SDP exchange rejected with status {response.status_code}")
            raise UpstreamRejected(
                "SDP exchange rejected",
                status=response.status_code,
                body=response.text,
            )

        logger.info("Received SDP answer from upstream")
        return response.text
