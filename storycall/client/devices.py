"""
Local audio and video devices for the terminal client.

MicrophoneStreamTrack captures PCM from the default input device with pyaudio
and hands it to aiortc as av.AudioFrame objects. SpeakerPlayer consumes the
remote track and writes it to the default output device. Blocking pyaudio
reads and writes run in the default executor so the event loop keeps serving
the data channel while audio is flowing.
"""

import asyncio
import fractions
import logging
import sys
from typing import Optional

import av
import numpy as np
import pyaudio
from aiortc import MediaStreamTrack
from aiortc.contrib.media import MediaPlayer
from aiortc.mediastreams import MediaStreamError

from storycall.config.constants import LOGGER_NAME
from storycall.errors import MediaPermissionError

logger = logging.getLogger(LOGGER_NAME)

# Audio parameters
SAMPLE_RATE = 48000
CHANNELS = 1
FORMAT = pyaudio.paInt16
CHUNK = 960  # 20ms at 48kHz


class MicrophoneStreamTrack(MediaStreamTrack):
    """MediaStreamTrack that captures audio from the microphone."""

    kind = "audio"

    def __init__(self):
        super().__init__()
        self.p = pyaudio.PyAudio()
        try:
            self.stream = self.p.open(
                format=FORMAT,
                channels=CHANNELS,
                rate=SAMPLE_RATE,
                input=True,
                frames_per_buffer=CHUNK,
            )
        except OSError as e:
            self.p.terminate()
            raise MediaPermissionError(f"Microphone unavailable: {e}") from e
        self.timestamp = 0
        logger.info(f"Microphone initialized: {SAMPLE_RATE}Hz, {CHANNELS} channel(s)")

    async def recv(self):
        if self.readyState != "live":
            raise MediaStreamError

        loop = asyncio.get_running_loop()
        data = await loop.run_in_executor(None, self.stream.read, CHUNK, False)

        frame = av.AudioFrame.from_ndarray(
            np.frombuffer(data, np.int16).reshape(1, -1),
            format="s16",
            layout="mono" if CHANNELS == 1 else "stereo",
        )
        frame.sample_rate = SAMPLE_RATE
        frame.pts = self.timestamp
        frame.time_base = fractions.Fraction(1, SAMPLE_RATE)
        self.timestamp += CHUNK
        return frame

    def stop(self):
        """Stop the microphone stream."""
        super().stop()
        if self.stream:
            self.stream.stop_stream()
            self.stream.close()
            self.stream = None
        if self.p:
            self.p.terminate()
            self.p = None
        logger.info("Microphone stopped")


class SpeakerPlayer:
    """Plays a remote audio track on the default output device.

    Follows the MediaRecorder interface (addTrack/start/stop) so it can be
    used as an AudioSink player.
    """

    def __init__(self):
        self._track: Optional[MediaStreamTrack] = None
        self._task: Optional[asyncio.Task] = None
        self._p: Optional[pyaudio.PyAudio] = None
        self._stream = None
        self._resampler = av.AudioResampler(format="s16", layout="mono", rate=SAMPLE_RATE)

    def addTrack(self, track: MediaStreamTrack) -> None:
        self._track = track

    async def start(self) -> None:
        if self._track is None or self._task is not None:
            return
        self._p = pyaudio.PyAudio()
        self._stream = self._p.open(
            format=FORMAT,
            channels=CHANNELS,
            rate=SAMPLE_RATE,
            output=True,
            frames_per_buffer=CHUNK,
        )
        self._task = asyncio.ensure_future(self._run())

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            try:
                frame = await self._track.recv()
            except MediaStreamError:
                logger.info("Remote audio track ended")
                return
            for resampled in self._resampler.resample(frame):
                data = resampled.to_ndarray().tobytes()
                await loop.run_in_executor(None, self._stream.write, data)

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                logger.debug("Speaker task cancelled")
            self._task = None
        if self._stream is not None:
            self._stream.stop_stream()
            self._stream.close()
            self._stream = None
        if self._p is not None:
            self._p.terminate()
            self._p = None


def open_microphone() -> MicrophoneStreamTrack:
    return MicrophoneStreamTrack()


def open_camera() -> MediaStreamTrack:
    """Open the default camera for a local-only preview."""
    if sys.platform == "darwin":
        player = MediaPlayer("default:none", format="avfoundation", options={"video_size": "640x480"})
    elif sys.platform.startswith("win"):
        player = MediaPlayer("video=Integrated Camera", format="dshow", options={"video_size": "640x480"})
    else:
        player = MediaPlayer("/dev/video0", format="v4l2", options={"video_size": "640x480"})

    if player.video is None:
        raise MediaPermissionError("Camera produced no video track")
    return player.video
