"""
Push-to-talk mode.

With push-to-talk on, voice activity detection is switched off upstream and a
reply is requested explicitly when the talk button is released. Audio keeps
flowing over WebRTC the whole time; only turn-taking changes.
"""

import logging
from typing import Callable

from storycall.config.constants import (
    LOGGER_NAME,
    TURN_DETECTION_NONE,
    TURN_DETECTION_VAD,
)
from storycall.models.call_state import CallView
from storycall.models.realtime_events import (
    OutgoingEvent,
    SessionUpdateEvent,
    response_create,
    turn_detection_update,
)

logger = logging.getLogger(LOGGER_NAME)


class PushToTalk:
    def __init__(
        self,
        view: CallView,
        send: Callable[[OutgoingEvent], bool],
        is_connected: Callable[[], bool],
    ):
        self.view = view
        self._send = send
        self._is_connected = is_connected
        self.holding = False

    @property
    def enabled(self) -> bool:
        return self.view.push_to_talk

    def session_update(self) -> SessionUpdateEvent:
        """The session.update that matches the current mode."""
        mode = TURN_DETECTION_NONE if self.enabled else TURN_DETECTION_VAD
        return turn_detection_update(mode)

    def toggle(self) -> bool:
        """Flip push-to-talk and tell the provider when a call is up."""
        self.view.push_to_talk = not self.view.push_to_talk
        self.holding = False
        logger.info(f"Push-to-talk {'on' if self.enabled else 'off'}")
        if self._is_connected():
            self._send(self.session_update())
        return self.enabled

    def press(self) -> bool:
        if not self.enabled or not self._is_connected() or self.holding:
            return False
        self.holding = True
        self.view.status = "Talk now (release to send)"
        return True

    def release(self) -> bool:
        if not self.enabled or not self._is_connected() or not self.holding:
            return False
        self.holding = False
        self.view.status = "Sending..."
        return self._send(response_create())

    def reset(self) -> None:
        self.holding = False
