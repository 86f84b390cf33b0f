"""
Client module for placing StoryCall calls with aiortc.

Key components:
- peer_connection: PeerConnectionManager, the call state machine that owns the
  peer connection, local media, data channel and remote audio sink.
- negotiator: ServerNegotiator (via the relay's /session route) and
  EphemeralTokenNegotiator (direct to the provider with a /token credential).
- audio_sink: AudioSink, which plays the remote track and handles hosts that
  require a user gesture before audio may start.
- push_to_talk: PushToTalk, hold-to-talk turn taking.
- devices: pyaudio microphone and speaker, and the camera preview (needs the
  ``audio`` extra).

Usage examples:
```python
from storycall.client import PeerConnectionManager, ServerNegotiator
from storycall.client.devices import open_microphone

manager = PeerConnectionManager(ServerNegotiator("http://localhost:8792"), open_microphone)
await manager.start()
manager.send_text("Tell me a story about a dragon")
await manager.hangup()
```
"""

from storycall.client.audio_sink import AudioSink
from storycall.client.negotiator import EphemeralTokenNegotiator, ServerNegotiator
from storycall.client.peer_connection import PeerConnectionManager
from storycall.client.push_to_talk import PushToTalk

__all__ = [
    "AudioSink",
    "EphemeralTokenNegotiator",
    "PeerConnectionManager",
    "PushToTalk",
    "ServerNegotiator",
]
