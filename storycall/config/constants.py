"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for configuration values and making it easier to
maintain consistent naming throughout the codebase.
"""

# Logger name used throughout the application
LOGGER_NAME = "storycall"

# Default OpenAI settings
DEFAULT_API_BASE = "https://api.openai.com/v1"
DEFAULT_REALTIME_MODEL = "gpt-realtime"
DEFAULT_REALTIME_VOICE = "marin"
DEFAULT_TEXT_MODEL = "gpt-4o-mini"
DEFAULT_OUTPUT_MODALITIES = ("audio", "text")
DEFAULT_PORT = 8792

# Upstream endpoint paths (relative to the API base)
CLIENT_SECRETS_PATH = "/realtime/client_secrets"
REALTIME_CALLS_PATH = "/realtime/calls"
RESPONSES_PATH = "/responses"

# Upstream retry policy
UPSTREAM_TIMEOUT = 30.0  # seconds per attempt
UPSTREAM_MAX_ATTEMPTS = 3
UPSTREAM_BASE_DELAY = 0.8  # seconds, multiplied by the attempt number
TRANSIENT_STATUS_CODES = frozenset({502, 503, 504})

# Payload bounds
MAX_ERROR_BODY_CHARS = 6000
MAX_SDP_BYTES = 2 * 1024 * 1024  # 2MB
MAX_STREAM_TEXT_CHARS = 2000
MAX_STREAM_MODE_CHARS = 20

# Media types
SDP_MEDIA_TYPE = "application/sdp"
EVENT_STREAM_MEDIA_TYPE = "text/event-stream"

# Data channel
DATA_CHANNEL_LABEL = "oai-events"

# Inbound data-channel event kinds
EVENT_OUTPUT_TEXT_DELTA = "response.output_text.delta"
EVENT_OUTPUT_TRANSCRIPT_DELTA = "response.output_audio_transcript.delta"
EVENT_OUTPUT_TEXT_DONE = "response.output_text.done"
EVENT_RESPONSE_DONE = "response.done"
EVENT_RESPONSE_COMPLETED = "response.completed"
EVENT_OUTPUT_AUDIO_STARTED = "response.output_audio.started"
EVENT_OUTPUT_AUDIO_ENDED = "response.output_audio.ended"
EVENT_OUTPUT_BUFFER_STARTED = "output_audio_buffer.started"
EVENT_OUTPUT_BUFFER_STOPPED = "output_audio_buffer.stopped"
EVENT_SPEECH_STARTED = "input_audio_buffer.speech_started"
EVENT_SPEECH_STOPPED = "input_audio_buffer.speech_stopped"
EVENT_ERROR = "error"

# Turn detection modes used by push-to-talk
TURN_DETECTION_VAD = "semantic_vad"
TURN_DETECTION_NONE = "none"

# Server-sent event kinds for the streaming relay
SSE_CHUNK = "chunk"
SSE_ERROR = "error"
SSE_DONE = "done"
