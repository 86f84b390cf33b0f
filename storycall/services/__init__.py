"""
Services module for calls to the OpenAI API.

Key components:
- upstream_client: ResilientUpstreamClient, the retrying HTTP client shared by
  the relays.
- credential_issuer: CredentialIssuer, which mints ephemeral client secrets.
- negotiation_relay: NegotiationRelay, the SDP offer/answer proxy.
- streaming_relay: StreamingRelay, the SSE relay for typed text.

Usage examples:
```python
from storycall.config.settings import Settings
from storycall.services import NegotiationRelay, ResilientUpstreamClient

settings = Settings.from_env()
relay = NegotiationRelay(settings, ResilientUpstreamClient())
answer_sdp = await relay.negotiate(offer_sdp)
```
"""

from storycall.services.credential_issuer import CredentialIssuer, IssuedCredential
from storycall.services.negotiation_relay import NegotiationRelay
from storycall.services.streaming_relay import StreamingRelay, StreamRequest, format_sse
from storycall.services.upstream_client import ResilientUpstreamClient

__all__ = [
    "CredentialIssuer",
    "IssuedCredential",
    "NegotiationRelay",
    "ResilientUpstreamClient",
    "StreamingRelay",
    "StreamRequest",
    "format_sse",
]
