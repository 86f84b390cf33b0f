"""
Ephemeral credential issuance for direct client-to-provider negotiation.

The issuer exchanges the server's API key for a short-lived client secret. Each
call produces a fresh credential; nothing is cached.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from storycall.config.constants import CLIENT_SECRETS_PATH, LOGGER_NAME
from storycall.config.settings import Settings
from storycall.errors import ConfigurationError, UpstreamRejected
from storycall.models.session_config import SessionConfiguration
from storycall.services.upstream_client import ResilientUpstreamClient

logger = logging.getLogger(LOGGER_NAME)


def extract_token(payload: Dict[str, Any]) -> Optional[str]:
    """Find the ephemeral token in the shapes the provider has used."""
    secret = payload.get("client_secret")
    if isinstance(secret, dict) and secret.get("value"):
        return secret["value"]
    for candidate in (payload.get("value"), secret, payload.get("ephemeral_key")):
        if isinstance(candidate, str) and candidate:
            return candidate
    return None


class IssuedCredential(BaseModel):
    """Upstream credential response, kept exactly as received."""

    payload: Dict[str, Any] = Field(default_factory=dict)

    @property
    def value(self) -> Optional[str]:
        return extract_token(self.payload)


class CredentialIssuer:
    """Obtains short-lived scoped credentials from the provider."""

    def __init__(self, settings: Settings, upstream: ResilientUpstreamClient):
        self.settings = settings
        self.upstream = upstream

    async def issue(self) -> IssuedCredential:
        """
        Request a fresh ephemeral credential.

        Returns:
            IssuedCredential: The upstream JSON body, unchanged

        Raises:
            ConfigurationError: If no API key is configured (checked before any I/O)
            UpstreamRejected: If the provider answers with a non-success status
            UpstreamTransient: If the provider stayed unreachable
        """
        if not self.settings.has_api_key:
            raise ConfigurationError("OPENAI_API_KEY missing")

        session = SessionConfiguration.from_settings(self.settings)
        response = await self.upstream.call(
            "POST",
            self.settings.upstream_url(CLIENT_SECRETS_PATH),
            headers={"Authorization": f"Bearer {self.settings.openai_api_key}"},
            json={"session": session.to_upstream()},
        )

        if response.is_error:
            logger.error(f"Credential request rejected with status {response.status_code}")
            raise UpstreamRejected(
                "Credential request rejected",
                status=response.status_code,
                body=response.text,
            )

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        logger.info("Issued ephemeral client credential")
        return IssuedCredential(payload=payload)
