"""
Call state and the observable view of a call.

CallView is what a user interface renders: the status line, the connection
label, the speaking indicator and the transcript. It is owned by the client
side; the server never sees it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class CallState(str, Enum):
    """Lifecycle states of a call."""

    IDLE = "idle"
    CONNECTING = "connecting"
    NEGOTIATING = "negotiating"
    CONNECTED = "connected"
    CLOSING = "closing"


class SpeakerRole(str, Enum):
    ASSISTANT = "assistant"
    USER = "user"


CONNECTION_LABELS = {
    CallState.IDLE: "WebRTC: Idle",
    CallState.CONNECTING: "WebRTC: Connecting",
    CallState.NEGOTIATING: "WebRTC: Negotiating",
    CallState.CONNECTED: "WebRTC: Connected",
    CallState.CLOSING: "WebRTC: Closing",
}


@dataclass
class TranscriptBubble:
    """One speaker turn in the transcript."""

    role: SpeakerRole
    text: str = ""
    sealed: bool = False


@dataclass
class CallView:
    """Observable state of a call for the UI layer."""

    status: str = "Not connected"
    connection_label: str = CONNECTION_LABELS[CallState.IDLE]
    speaking: bool = False
    healthy: bool = True
    awaiting_gesture: bool = False
    push_to_talk: bool = False
    last_error: Optional[str] = None
    transcript: List[TranscriptBubble] = field(default_factory=list)

    @property
    def open_bubble(self) -> Optional[TranscriptBubble]:
        """The unsealed assistant bubble, if one is being streamed."""
        if self.transcript:
            last = self.transcript[-1]
            if last.role is SpeakerRole.ASSISTANT and not last.sealed:
                return last
        return None

    def add_bubble(self, role: SpeakerRole, text: str = "", sealed: bool = False) -> TranscriptBubble:
        bubble = TranscriptBubble(role=role, text=text, sealed=sealed)
        self.transcript.append(bubble)
        return bubble

    def seal_open_bubble(self) -> None:
        bubble = self.open_bubble
        if bubble is not None:
            bubble.sealed = True

    def clear_transcript(self) -> None:
        self.transcript.clear()

    def show_state(self, state: CallState) -> None:
        self.connection_label = CONNECTION_LABELS[state]
