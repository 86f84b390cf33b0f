"""
Pydantic models for data-channel events exchanged with the OpenAI Realtime API.

Outbound events (client to provider) are built from typed models so their shape
is validated before they reach the channel. Inbound events are decoded into
plain dictionaries by ``parse_event``; the dispatcher only relies on the
``type`` field and the few keys each handler reads, so unknown fields from
newer protocol revisions pass through untouched.
"""

import json
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from storycall.errors import ProtocolError


class InputText(BaseModel):
    """Text content part of a conversation message."""

    type: Literal["input_text"] = "input_text"
    text: str


class MessageItem(BaseModel):
    """Conversation item carrying a user message."""

    type: Literal["message"] = "message"
    role: Literal["user", "assistant", "system"] = "user"
    content: List[InputText]


class ConversationItemCreateEvent(BaseModel):
    """Model for conversation.item.create."""

    type: Literal["conversation.item.create"] = "conversation.item.create"
    item: MessageItem


class ResponseOptions(BaseModel):
    """Optional per-response overrides for response.create."""

    instructions: Optional[str] = None
    output_modalities: Optional[List[str]] = None


class ResponseCreateEvent(BaseModel):
    """Model for response.create."""

    type: Literal["response.create"] = "response.create"
    response: Optional[ResponseOptions] = None


class TurnDetection(BaseModel):
    type: Literal["semantic_vad", "server_vad", "none"]


class AudioInput(BaseModel):
    turn_detection: TurnDetection


class SessionAudio(BaseModel):
    input: AudioInput


class SessionPatch(BaseModel):
    """Partial session object carried by session.update."""

    audio: SessionAudio


class SessionUpdateEvent(BaseModel):
    """Model for session.update."""

    type: Literal["session.update"] = "session.update"
    session: SessionPatch


class ConversationClearEvent(BaseModel):
    """Model for conversation.clear."""

    type: Literal["conversation.clear"] = "conversation.clear"


OutgoingEvent = Union[
    ConversationItemCreateEvent,
    ResponseCreateEvent,
    SessionUpdateEvent,
    ConversationClearEvent,
]


class ProviderError(BaseModel):
    """Error payload inside an inbound ``error`` event."""

    message: str = Field(default="Unknown error")
    code: Optional[str] = None
    type: Optional[str] = None

    @field_validator("message", mode="before")
    def coerce_message(cls, v):
        return "Unknown error" if v is None else str(v)

    @field_validator("code", "type", mode="before")
    def coerce_optional_text(cls, v):
        """Providers send numeric codes too; keep them as text."""
        return None if v is None else str(v)


def user_message(text: str) -> ConversationItemCreateEvent:
    """Build a conversation.item.create event for a user text message."""
    return ConversationItemCreateEvent(
        item=MessageItem(role="user", content=[InputText(text=text)])
    )


def response_create(
    instructions: Optional[str] = None, output_modalities: Optional[List[str]] = None
) -> ResponseCreateEvent:
    """Build a response.create event, with overrides only when given."""
    if instructions is None and output_modalities is None:
        return ResponseCreateEvent()
    return ResponseCreateEvent(
        response=ResponseOptions(
            instructions=instructions, output_modalities=output_modalities
        )
    )


def turn_detection_update(mode: str) -> SessionUpdateEvent:
    """Build a session.update that switches the turn detection mode."""
    return SessionUpdateEvent(
        session=SessionPatch(
            audio=SessionAudio(input=AudioInput(turn_detection=TurnDetection(type=mode)))
        )
    )


def encode_event(event: OutgoingEvent) -> str:
    """Serialize an outbound event for the data channel."""
    return event.model_dump_json(exclude_none=True)


def parse_event(raw: Union[str, bytes]) -> Dict[str, Any]:
    """
    Decode one inbound data-channel message.

    Args:
        raw: The message as received from the channel

    Returns:
        The decoded event object

    Raises:
        ProtocolError: If the payload is not a JSON object with a string ``type``
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolError(f"Binary message is not UTF-8: {e}") from e

    try:
        event = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as e:
        raise ProtocolError(f"Invalid JSON: {e}") from e

    if not isinstance(event, dict):
        raise ProtocolError(f"Expected a JSON object, got {type(event).__name__}")
    if not isinstance(event.get("type"), str):
        raise ProtocolError("Event has no type")
    return event
