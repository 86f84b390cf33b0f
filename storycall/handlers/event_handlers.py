"""
Handlers for inbound data-channel events from the OpenAI Realtime API.

Each handler is a small reducer that updates the CallView for one event kind.
SessionEventDispatcher routes a decoded event to its handler by the event's
"type" field. Kinds without a handler and payloads that fail to decode are
logged and dropped, so newer protocol events never break an older client.

Handlers never close the connection. An ``error`` event only marks the call
unhealthy; tearing the call down is left to the peer connection manager's
channel-close callback.
"""

import logging
from typing import Any, Callable, Dict, Optional, Union

from storycall.config.constants import (
    EVENT_ERROR,
    EVENT_OUTPUT_AUDIO_ENDED,
    EVENT_OUTPUT_AUDIO_STARTED,
    EVENT_OUTPUT_BUFFER_STARTED,
    EVENT_OUTPUT_BUFFER_STOPPED,
    EVENT_OUTPUT_TEXT_DELTA,
    EVENT_OUTPUT_TEXT_DONE,
    EVENT_OUTPUT_TRANSCRIPT_DELTA,
    EVENT_RESPONSE_COMPLETED,
    EVENT_RESPONSE_DONE,
    EVENT_SPEECH_STARTED,
    EVENT_SPEECH_STOPPED,
    LOGGER_NAME,
)
from storycall.errors import ProtocolError
from storycall.models.call_state import CallView, SpeakerRole
from storycall.models.realtime_events import ProviderError, parse_event

logger = logging.getLogger(LOGGER_NAME)

EventHandler = Callable[[Dict[str, Any], CallView], None]


def handle_text_delta(event: Dict[str, Any], view: CallView) -> None:
    """Append a text delta to the open assistant bubble, opening one if needed."""
    delta = event.get("delta")
    if not isinstance(delta, str) or not delta:
        return
    bubble = view.open_bubble
    if bubble is None:
        bubble = view.add_bubble(SpeakerRole.ASSISTANT)
    bubble.text += delta


def handle_response_completed(event: Dict[str, Any], view: CallView) -> None:
    """Seal the open bubble so the next delta starts a new one."""
    view.seal_open_bubble()


def handle_audio_started(event: Dict[str, Any], view: CallView) -> None:
    view.speaking = True


def handle_audio_ended(event: Dict[str, Any], view: CallView) -> None:
    view.speaking = False


def handle_speech_started(event: Dict[str, Any], view: CallView) -> None:
    view.status = "Listening (PTT)..." if view.push_to_talk else "Listening..."


def handle_speech_stopped(event: Dict[str, Any], view: CallView) -> None:
    view.status = "Connected"


def handle_error(event: Dict[str, Any], view: CallView) -> None:
    """Surface a provider error without closing the call."""
    raw_error = event.get("error")
    error = ProviderError(**raw_error) if isinstance(raw_error, dict) else ProviderError()
    logger.error(f"Provider error event: {error.message} (code={error.code})")
    view.status = f"Error: {error.message}"
    view.last_error = error.message
    view.healthy = False


class SessionEventDispatcher:
    """Routes inbound data-channel events to their handlers.

    Events are processed one at a time, in the order they are passed in.
    """

    def __init__(self, view: Optional[CallView] = None):
        self.view = view if view is not None else CallView()

        self.handlers: Dict[str, EventHandler] = {
            EVENT_OUTPUT_TEXT_DELTA: handle_text_delta,
            EVENT_OUTPUT_TRANSCRIPT_DELTA: handle_text_delta,
            EVENT_OUTPUT_TEXT_DONE: handle_response_completed,
            EVENT_RESPONSE_DONE: handle_response_completed,
            EVENT_RESPONSE_COMPLETED: handle_response_completed,
            EVENT_OUTPUT_AUDIO_STARTED: handle_audio_started,
            EVENT_OUTPUT_BUFFER_STARTED: handle_audio_started,
            EVENT_OUTPUT_AUDIO_ENDED: handle_audio_ended,
            EVENT_OUTPUT_BUFFER_STOPPED: handle_audio_ended,
            EVENT_SPEECH_STARTED: handle_speech_started,
            EVENT_SPEECH_STOPPED: handle_speech_stopped,
            EVENT_ERROR: handle_error,
        }

    def dispatch(self, raw: Union[str, bytes]) -> Optional[str]:
        """
        Decode one message and apply it to the view.

        Args:
            raw: The data-channel message

        Returns:
            The event type if a handler ran, None if the event was dropped
        """
        try:
            event = parse_event(raw)
        except ProtocolError as e:
            logger.warning(f"Dropping malformed data-channel message: {e}")
            return None

        event_type = event["type"]
        handler = self.handlers.get(event_type)
        if handler is None:
            logger.debug(f"Ignoring unhandled event type: {event_type}")
            return None

        try:
            handler(event, self.view)
        except (TypeError, ValueError) as e:
            logger.warning(f"Dropping {event_type} event with unexpected payload: {e}")
            return None
        return event_type
