"""
Playback sink for the remote audio track.

The sink wraps any aiortc-style media consumer (an object with ``addTrack``,
``start`` and ``stop``, such as MediaRecorder, MediaBlackhole or the pyaudio
SpeakerPlayer). Hosts that only allow audio after a user gesture construct the
sink with ``autoplay=False``; ``play`` then raises PlaybackBlocked until
``unlock`` is called from a user interaction.
"""

import logging
from typing import Any, Callable, Optional

from aiortc.contrib.media import MediaBlackhole

from storycall.config.constants import LOGGER_NAME
from storycall.errors import PlaybackBlocked

logger = logging.getLogger(LOGGER_NAME)


class AudioSink:
    """Attaches the remote track to a player and gates playback on a gesture."""

    def __init__(self, player_factory: Callable[[], Any] = MediaBlackhole, autoplay: bool = True):
        self._player_factory = player_factory
        self._player: Optional[Any] = None
        self._unlocked = autoplay
        self.playing = False

    @property
    def attached(self) -> bool:
        return self._player is not None

    def attach(self, track) -> None:
        """Route a remote track into a fresh player, replacing any previous one."""
        if self._player is not None:
            logger.warning("Audio sink already attached, replacing the previous track")
        self._player = self._player_factory()
        self._player.addTrack(track)
        self.playing = False
        logger.debug(f"Audio sink attached to {track.kind} track")

    def unlock(self) -> None:
        """Record that a user gesture happened, allowing playback."""
        self._unlocked = True

    async def play(self) -> None:
        """
        Start playback of the attached track.

        Raises:
            PlaybackBlocked: If playback still needs a user gesture
        """
        if self._player is None or self.playing:
            return
        if not self._unlocked:
            raise PlaybackBlocked("Audio playback needs a user gesture")
        await self._player.start()
        self.playing = True
        logger.info("Remote audio playback started")

    async def stop(self) -> None:
        """Stop playback and detach the player."""
        player, self._player = self._player, None
        was_playing, self.playing = self.playing, False
        if player is not None and was_playing:
            await player.stop()
            logger.debug("Audio sink stopped")
