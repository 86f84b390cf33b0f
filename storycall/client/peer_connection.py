"""
Peer connection lifecycle for a StoryCall client.

PeerConnectionManager owns everything a call needs on the client side: the
aiortc RTCPeerConnection, the local microphone track, the optional local-only
camera preview, the signaling data channel and the remote audio sink. It moves
through CallState as the call is set up:

    IDLE --start--> CONNECTING --offer ready--> NEGOTIATING
         --answer applied--> CONNECTED --hangup--> IDLE

Any failure on the way tears everything down and returns to IDLE. A generation
counter is bumped on every hangup so results of awaits that finish after the
call was hung up are discarded instead of being applied to a dead connection.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional, Protocol

from aiortc import RTCPeerConnection, RTCSessionDescription

from storycall.client.audio_sink import AudioSink
from storycall.client.push_to_talk import PushToTalk
from storycall.config.constants import DATA_CHANNEL_LABEL, LOGGER_NAME
from storycall.config.prompts import (
    GREETING_INSTRUCTIONS,
    GREETING_TEXT,
    RESTART_INSTRUCTIONS,
)
from storycall.errors import MediaPermissionError, PlaybackBlocked
from storycall.handlers.event_handlers import SessionEventDispatcher
from storycall.models.call_state import CallState, CallView, SpeakerRole
from storycall.models.realtime_events import (
    ConversationClearEvent,
    OutgoingEvent,
    encode_event,
    response_create,
    user_message,
)

logger = logging.getLogger(LOGGER_NAME)


class Negotiator(Protocol):
    async def negotiate(self, offer_sdp: str) -> str: ...


class PeerConnectionManager:
    """Drives one call at a time from IDLE to CONNECTED and back."""

    def __init__(
        self,
        negotiator: Negotiator,
        open_microphone: Callable[[], Any],
        open_camera: Optional[Callable[[], Any]] = None,
        sink: Optional[AudioSink] = None,
        dispatcher: Optional[SessionEventDispatcher] = None,
        peer_connection_factory: Callable[[], Any] = RTCPeerConnection,
        greet: bool = True,
    ):
        self.negotiator = negotiator
        self.dispatcher = dispatcher or SessionEventDispatcher()
        self.view: CallView = self.dispatcher.view
        self.sink = sink or AudioSink()
        self.push_to_talk = PushToTalk(self.view, self.send_event, self.is_connected)
        self.state = CallState.IDLE
        self.greet = greet

        self._open_microphone = open_microphone
        self._open_camera = open_camera
        self._pc_factory = peer_connection_factory
        self._pc = None
        self._microphone = None
        self._preview = None
        self._channel = None
        self._candidates: List[Any] = []
        self._generation = 0

    # -- observable resources -------------------------------------------------

    @property
    def peer_connection(self):
        return self._pc

    @property
    def channel(self):
        """The bound data channel, once one has opened."""
        return self._channel

    @property
    def local_track_count(self) -> int:
        return sum(1 for track in (self._microphone, self._preview) if track is not None)

    def is_connected(self) -> bool:
        return self.state is CallState.CONNECTED

    def _set_state(self, state: CallState) -> None:
        if state is not self.state:
            logger.info(f"Call state: {self.state.value} -> {state.value}")
        self.state = state
        self.view.show_state(state)

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation

    # -- lifecycle --------------------------------------------------------------

    async def start(self) -> None:
        """
        Place a call.

        Does nothing unless the manager is IDLE. Local audio is opened before the
        peer connection is created so a denied microphone fails without any
        network traffic.

        Raises:
            MediaPermissionError: If the microphone could not be opened
            StoryCallError: If negotiation failed; the call is back in IDLE
        """
        if self.state is not CallState.IDLE:
            logger.info(f"Ignoring start while {self.state.value}")
            return

        self._generation += 1
        generation = self._generation
        self.view.healthy = True
        self.view.last_error = None
        self.view.status = "Connecting..."
        self._set_state(CallState.CONNECTING)

        try:
            self._microphone = self._acquire(self._open_microphone, "microphone")

            pc = self._pc_factory()
            self._pc = pc
            self._wire_peer_connection(pc)
            pc.addTrack(self._microphone)
            self._offer_channel(pc.createDataChannel(DATA_CHANNEL_LABEL))

            offer = await pc.createOffer()
            await pc.setLocalDescription(offer)
            if self._is_stale(generation):
                return
            self._set_state(CallState.NEGOTIATING)

            answer_sdp = await self.negotiator.negotiate(pc.localDescription.sdp)
            if self._is_stale(generation):
                logger.info("Discarding SDP answer for a call that was hung up")
                return

            await pc.setRemoteDescription(RTCSessionDescription(sdp=answer_sdp, type="answer"))
            if self._is_stale(generation):
                return

            self._set_state(CallState.CONNECTED)
            if not self.view.awaiting_gesture:
                self.view.status = "Connected"
            logger.info("Call connected")
        except Exception as e:
            if self._is_stale(generation):
                logger.info(f"Call setup ended after hangup: {e}")
                return
            logger.error(f"Call setup failed: {e}")
            await self._teardown(f"Call failed: {e}")
            self.view.last_error = str(e)
            self.view.healthy = False
            raise

    async def hangup(self, status: str = "Not connected") -> None:
        """Release every call resource. Safe to call in any state, any number of times."""
        self._generation += 1
        await self._teardown(status)

    async def _teardown(self, status: str) -> None:
        if self.state is not CallState.IDLE:
            self._set_state(CallState.CLOSING)

        channels, self._candidates = self._candidates, []
        self._channel = None
        for channel in channels:
            try:
                channel.close()
            except Exception as e:
                logger.warning(f"Error closing data channel: {e}")

        pc, self._pc = self._pc, None
        if pc is not None:
            try:
                await pc.close()
            except Exception as e:
                logger.warning(f"Error closing peer connection: {e}")

        for track in (self._microphone, self._preview):
            if track is None:
                continue
            try:
                track.stop()
            except Exception as e:
                logger.warning(f"Error stopping local {track.kind} track: {e}")
        self._microphone = None
        self._preview = None

        try:
            await self.sink.stop()
        except Exception as e:
            logger.warning(f"Error stopping audio sink: {e}")

        self.push_to_talk.reset()
        self.view.speaking = False
        self.view.awaiting_gesture = False
        self.view.status = status
        self._set_state(CallState.IDLE)

    def _acquire(self, opener: Callable[[], Any], device: str):
        try:
            return opener()
        except MediaPermissionError:
            raise
        except Exception as e:
            raise MediaPermissionError(f"Could not open {device}: {e}") from e

    # -- peer connection events -------------------------------------------------

    def _wire_peer_connection(self, pc) -> None:
        @pc.on("track")
        def on_track(track):
            logger.info(f"Received remote {track.kind} track")
            if track.kind == "audio" and pc is self._pc:
                asyncio.ensure_future(self._play_remote(track))

        @pc.on("datachannel")
        def on_datachannel(channel):
            logger.info(f"Remote side offered data channel '{channel.label}'")
            if pc is self._pc:
                self._offer_channel(channel)

        @pc.on("connectionstatechange")
        async def on_connectionstatechange():
            logger.info(f"Connection state changed to: {pc.connectionState}")
            if pc.connectionState == "failed" and pc is self._pc:
                await self.hangup("Connection failed")

    async def _play_remote(self, track) -> None:
        generation = self._generation
        try:
            self.sink.attach(track)
            await self.sink.play()
        except PlaybackBlocked:
            if self._is_stale(generation):
                return
            logger.info("Remote audio blocked until the next user gesture")
            self.view.awaiting_gesture = True
            self.view.status = "Tap to enable audio"
        except Exception as e:
            if self._is_stale(generation):
                return
            self._report_playback_failure(e)

    def _report_playback_failure(self, error: Exception) -> None:
        # The call stays up; only the agent's audio is lost
        logger.error(f"Remote audio playback failed: {error}", exc_info=True)
        self.view.status = f"Audio playback failed: {error}"
        self.view.last_error = str(error)
        self.view.healthy = False

    async def on_user_gesture(self) -> bool:
        """Retry blocked playback after a user interaction."""
        self.sink.unlock()
        if not self.view.awaiting_gesture:
            return False
        try:
            await self.sink.play()
        except PlaybackBlocked as e:
            logger.warning(f"Playback still blocked: {e}")
            return False
        except Exception as e:
            self.view.awaiting_gesture = False
            self._report_playback_failure(e)
            return False
        self.view.awaiting_gesture = False
        if self.is_connected():
            self.view.status = "Connected"
        return True

    # -- data channel -----------------------------------------------------------

    def _offer_channel(self, channel) -> None:
        """Track a locally created or remotely offered channel; the first to open is bound."""
        if self._channel is not None and self._channel.label == channel.label:
            logger.info(f"Ignoring duplicate data channel '{channel.label}'")
            return
        self._candidates.append(channel)

        @channel.on("open")
        def on_open():
            self._bind_channel(channel)

        @channel.on("message")
        def on_message(message):
            if channel is self._channel:
                self.dispatcher.dispatch(message)

        @channel.on("close")
        def on_close():
            self._on_channel_close(channel)

        if channel.readyState == "open":
            self._bind_channel(channel)

    def _bind_channel(self, channel) -> None:
        if self._channel is not None:
            if self._channel is not channel:
                logger.info(f"Ignoring duplicate data channel '{channel.label}'")
            return
        if channel not in self._candidates:
            return
        self._channel = channel
        logger.info(f"Data channel '{channel.label}' open")

        if self.push_to_talk.enabled:
            self.send_event(self.push_to_talk.session_update())
        if self.greet:
            self.send_event(user_message(GREETING_TEXT))
            self.send_event(response_create(instructions=GREETING_INSTRUCTIONS))

    def _on_channel_close(self, channel) -> None:
        if channel is not self._channel:
            return
        logger.info("Data channel closed")
        if self.state in (CallState.NEGOTIATING, CallState.CONNECTED):
            asyncio.ensure_future(self.hangup("Disconnected"))

    def send_event(self, event: OutgoingEvent) -> bool:
        """Send an event if the data channel is open; drop it otherwise."""
        channel = self._channel
        if channel is None or channel.readyState != "open":
            logger.debug(f"Data channel not open, dropping {event.type}")
            return False
        channel.send(encode_event(event))
        return True

    # -- conversation controls ------------------------------------------------------

    def send_text(self, text: str) -> bool:
        """Send a typed message and ask for a reply."""
        text = (text or "").strip()
        if not text:
            return False
        self.view.add_bubble(SpeakerRole.USER, text, sealed=True)
        sent = self.send_event(user_message(text))
        return self.send_event(response_create()) and sent

    def choose_mode(self, mode: str) -> bool:
        """Pick the story or game mode by telling the agent."""
        self.view.add_bubble(SpeakerRole.USER, mode.upper(), sealed=True)
        sent = self.send_event(user_message(f"I choose {mode}."))
        return self.send_event(response_create()) and sent

    def reset_conversation(self) -> None:
        """Clear the transcript and, during a call, restart the conversation."""
        self.view.clear_transcript()
        self.view.speaking = False
        if self.is_connected():
            self.send_event(ConversationClearEvent())
            self.send_event(response_create(instructions=RESTART_INSTRUCTIONS))

    def toggle_camera(self) -> bool:
        """
        Open or close the local camera preview. The preview is never sent.

        Returns:
            True if the preview is now on
        """
        if self._preview is not None:
            self._preview.stop()
            self._preview = None
            logger.info("Camera preview off")
            return False
        if self._open_camera is None:
            raise MediaPermissionError("No camera available")
        self._preview = self._acquire(self._open_camera, "camera")
        logger.info("Camera preview on")
        return True

    @property
    def preview_track(self):
        return self._preview
