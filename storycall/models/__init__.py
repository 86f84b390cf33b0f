"""
Models module for data structures and state in StoryCall.

Key components:
- session_config: The immutable realtime session configuration sent upstream.
- realtime_events: Pydantic models for outbound data-channel events and the
  decoder for inbound ones.
- call_state: Call lifecycle states, transcript bubbles and the call view
  rendered by a user interface.

Usage examples:
```python
from storycall.models import SessionConfiguration, user_message, encode_event

config = SessionConfiguration(model="gpt-realtime", voice="marin")
payload = config.to_upstream()

channel.send(encode_event(user_message("Tell me a story")))
```
"""

from storycall.models.call_state import (
    CallState,
    CallView,
    SpeakerRole,
    TranscriptBubble,
)
from storycall.models.realtime_events import (
    ConversationClearEvent,
    ConversationItemCreateEvent,
    OutgoingEvent,
    ResponseCreateEvent,
    SessionUpdateEvent,
    encode_event,
    parse_event,
    response_create,
    turn_detection_update,
    user_message,
)
from storycall.models.session_config import SessionConfiguration
