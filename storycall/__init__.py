"""
StoryCall - WebRTC voice calls with an OpenAI Realtime agent

This application lets a client hold a live voice conversation with a remote AI agent
over WebRTC while the provider's API key stays on the server. The server only relays
signaling: it exchanges the client's SDP offer for the provider's answer, issues
short-lived client credentials, and relays a text-streaming fallback as server-sent
events. Audio then flows directly between the client and the provider.

Architecture Overview:
- FastAPI server exposing the signaling, token, streaming and health routes
- Resilient upstream HTTP client with bounded retry and linear backoff
- aiortc client that owns the peer connection, local media and data channel
- Event dispatcher that turns data-channel events into transcript and status updates

Key Components:
- config: Settings loaded from the environment, constants, prompts and logging setup
- services: Credential issuer, negotiation relay and streaming relay
- models: Session configuration, data-channel event schemas and call state
- handlers: Dispatch table for inbound data-channel events
- client: Peer connection lifecycle manager, negotiators, audio devices and push-to-talk

Getting Started:
1. Set up environment variables:
   - OPENAI_API_KEY: Your OpenAI API key
   - PORT: Port to run the server on (default 8792)
   - OPENAI_REALTIME_MODEL / OPENAI_REALTIME_VOICE: Session defaults
   - LOG_LEVEL: Logging level (default INFO)

2. Start the server:
   ```bash
   python run.py
   ```

3. Place a call from a terminal:
   ```bash
   python -m storycall.client --server http://localhost:8792
   ```
"""
