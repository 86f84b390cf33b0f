"""
FastAPI server for StoryCall.

This module builds the FastAPI application that relays call signaling between
clients and the OpenAI Realtime API. The provider's API key never leaves the
server: clients either post their SDP offer to /session and get the answer
back, or fetch a short-lived credential from /token. /api/stream relays a
streamed text reply as server-sent events for the typed fallback channel.

The server keeps no call state. Every request builds what it needs from the
read-only settings loaded at start-up.
"""

import json
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from fastapi.staticfiles import StaticFiles

from storycall.config.constants import (
    EVENT_STREAM_MEDIA_TYPE,
    MAX_SDP_BYTES,
    SDP_MEDIA_TYPE,
)
from storycall.config.logging_config import configure_logging
from storycall.config.settings import Settings
from storycall.errors import (
    BadRequest,
    ConfigurationError,
    UpstreamError,
    truncate_body,
)
from storycall.services.credential_issuer import CredentialIssuer
from storycall.services.negotiation_relay import NegotiationRelay
from storycall.services.streaming_relay import STREAM_HEADERS, StreamingRelay
from storycall.services.upstream_client import ResilientUpstreamClient

logger = configure_logging()


def create_app(
    settings: Optional[Settings] = None,
    upstream: Optional[ResilientUpstreamClient] = None,
    streaming_relay: Optional[StreamingRelay] = None,
) -> FastAPI:
    """
    Build the StoryCall application.

    Args:
        settings: Process settings; loaded from the environment when omitted
        upstream: Upstream client shared by the token and session routes
        streaming_relay: Relay used by /api/stream

    Returns:
        FastAPI: The configured application
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    upstream = upstream or ResilientUpstreamClient()

    credential_issuer = CredentialIssuer(settings, upstream)
    negotiation_relay = NegotiationRelay(settings, upstream)
    streaming_relay = streaming_relay or StreamingRelay(settings)

    application = FastAPI(
        title="StoryCall",
        description="Signaling relay for WebRTC voice calls with the OpenAI Realtime API",
        version="2.0.0",
    )
    application.state.settings = settings

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.get("/health")
    async def health_check():
        """Liveness check. Always answers 200, even without an API key."""
        return {"ok": True, "model": settings.model, "voice": settings.voice}

    @application.get("/token")
    async def issue_token():
        """Issue an ephemeral client credential for direct negotiation.

        The upstream JSON body is returned unchanged; upstream failures keep
        their status code.
        """
        try:
            credential = await credential_issuer.issue()
        except ConfigurationError as e:
            return JSONResponse({"error": str(e)}, status_code=500)
        except UpstreamError as e:
            logger.error(f"Token request failed: {e}")
            return JSONResponse(_upstream_json(e), status_code=e.http_status)
        except Exception as e:
            logger.error(f"Unexpected error issuing token: {e}", exc_info=True)
            return JSONResponse({"error": str(e)}, status_code=500)
        return JSONResponse(credential.payload)

    @application.post("/session")
    async def negotiate_session(request: Request):
        """Exchange a raw SDP offer for the provider's SDP answer."""
        try:
            body = await _read_bounded(request, MAX_SDP_BYTES)
            try:
                offer = body.decode("utf-8")
            except UnicodeDecodeError as e:
                raise BadRequest("SDP offer is not text") from e

            answer = await negotiation_relay.negotiate(offer)
        except BadRequest as e:
            return PlainTextResponse(str(e), status_code=400)
        except ConfigurationError as e:
            return PlainTextResponse(str(e), status_code=500)
        except UpstreamError as e:
            logger.error(f"SDP exchange failed: {e}")
            return PlainTextResponse(e.body or str(e), status_code=500)
        except Exception as e:
            logger.error(f"Unexpected error relaying SDP: {e}", exc_info=True)
            return PlainTextResponse(truncate_body(f"Session error: {e}"), status_code=500)

        return Response(content=answer, media_type=SDP_MEDIA_TYPE)

    @application.post("/api/stream")
    async def stream_reply(request: Request):
        """Stream a text reply as server-sent events: chunk*, then done or error."""
        try:
            payload = await request.json()
        except ValueError:
            return JSONResponse({"error": "Body must be JSON"}, status_code=400)
        if not isinstance(payload, dict):
            return JSONResponse({"error": "Body must be a JSON object"}, status_code=400)

        try:
            prepared = streaming_relay.prepare(payload.get("text"), payload.get("mode"))
        except BadRequest as e:
            return JSONResponse({"error": str(e)}, status_code=400)
        if not settings.has_api_key:
            return JSONResponse({"error": "OPENAI_API_KEY missing"}, status_code=500)

        return StreamingResponse(
            streaming_relay.stream(prepared, is_disconnected=request.is_disconnected),
            media_type=EVENT_STREAM_MEDIA_TYPE,
            headers=STREAM_HEADERS,
        )

    if settings.static_dir is not None and settings.static_dir.is_dir():
        application.mount(
            "/", StaticFiles(directory=settings.static_dir, html=True), name="static"
        )
        logger.info(f"Serving client assets from {settings.static_dir}")

    return application


async def _read_bounded(request: Request, limit: int) -> bytes:
    """Read a request body, refusing it as soon as it grows past ``limit`` bytes."""
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise BadRequest("SDP offer too large")

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise BadRequest("SDP offer too large")
    return bytes(body)


def _upstream_json(error: UpstreamError) -> dict:
    """Pass an upstream JSON error body through, or wrap plain text."""
    try:
        body = json.loads(error.body) if error.body else None
    except ValueError:
        body = None
    if isinstance(body, dict):
        return body
    return {"error": error.body or str(error)}


app = create_app()


if __name__ == "__main__":
    import uvicorn

    current = app.state.settings
    logger.info(f"StoryCall backend running on http://localhost:{current.port}")
    logger.info(f"- Health:   http://localhost:{current.port}/health")
    logger.info(f"- Token:    http://localhost:{current.port}/token")
    uvicorn.run(app, host=current.host, port=current.port, http="h11")
