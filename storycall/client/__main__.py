"""
Terminal client for StoryCall.

Places a call through a running StoryCall server using the local microphone
and speakers, prints the transcript as it streams in, and reads commands from
stdin.

Usage:
    python -m storycall.client [--server URL] [--direct] [--record FILE]

Commands:
    /hangup  /story  /game  /ptt  /talk  /send  /reset  /camera  /audio  /quit
    anything else is sent as a typed message
"""

import argparse
import asyncio
import os
import sys

from aiortc.contrib.media import MediaRecorder

from storycall.client.audio_sink import AudioSink
from storycall.client.devices import SpeakerPlayer, open_camera, open_microphone
from storycall.client.negotiator import EphemeralTokenNegotiator, ServerNegotiator
from storycall.client.peer_connection import PeerConnectionManager
from storycall.config.constants import DEFAULT_API_BASE, DEFAULT_PORT
from storycall.config.logging_config import configure_logging
from storycall.errors import StoryCallError
from storycall.models.call_state import CallView

logger = configure_logging()


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Place a StoryCall voice call")
    parser.add_argument(
        "--server",
        default=os.getenv("STORYCALL_SERVER", f"http://localhost:{DEFAULT_PORT}"),
        help="StoryCall server URL",
    )
    parser.add_argument(
        "--direct",
        action="store_true",
        help="Negotiate directly with the provider using an ephemeral /token credential",
    )
    parser.add_argument(
        "--api-base",
        default=os.getenv("OPENAI_API_BASE", DEFAULT_API_BASE),
        help="Provider API base for --direct mode",
    )
    parser.add_argument(
        "--record",
        help="Record the agent's audio to this file instead of playing it",
    )
    return parser.parse_args()


class TranscriptPrinter:
    """Prints status changes and transcript growth from a CallView."""

    def __init__(self, view: CallView):
        self.view = view
        self._status = None
        self._printed = []

    def refresh(self) -> None:
        if self.view.status != self._status:
            self._status = self.view.status
            print(f"[{self.view.connection_label}] {self._status}")

        if len(self.view.transcript) < len(self._printed):
            self._printed = []
        for index, bubble in enumerate(self.view.transcript):
            if index == len(self._printed):
                self._printed.append(0)
                label = "Agent" if bubble.role.value == "assistant" else "You"
                print(f"\n{label}: ", end="")
            new_text = bubble.text[self._printed[index]:]
            if new_text:
                print(new_text, end="", flush=True)
                self._printed[index] = len(bubble.text)


async def read_commands(manager: PeerConnectionManager) -> None:
    loop = asyncio.get_running_loop()
    while True:
        line = await loop.run_in_executor(None, sys.stdin.readline)
        if not line:
            break
        command = line.strip()
        if not command:
            continue
        await manager.on_user_gesture()

        if command == "/quit":
            break
        elif command == "/hangup":
            await manager.hangup()
        elif command == "/call":
            try:
                await manager.start()
            except StoryCallError as e:
                print(f"Call failed: {e}")
        elif command in ("/story", "/game"):
            manager.choose_mode(command[1:])
        elif command == "/ptt":
            manager.push_to_talk.toggle()
        elif command == "/talk":
            manager.push_to_talk.press()
        elif command == "/send":
            manager.push_to_talk.release()
        elif command == "/reset":
            manager.reset_conversation()
        elif command == "/camera":
            try:
                manager.toggle_camera()
            except StoryCallError as e:
                print(f"Camera unavailable: {e}")
        elif command == "/audio":
            pass
        else:
            manager.send_text(command)


async def run_client(args) -> None:
    if args.direct:
        negotiator = EphemeralTokenNegotiator(args.server, api_base=args.api_base)
    else:
        negotiator = ServerNegotiator(args.server)

    if args.record:
        sink = AudioSink(player_factory=lambda: MediaRecorder(args.record))
    else:
        sink = AudioSink(player_factory=SpeakerPlayer)

    manager = PeerConnectionManager(
        negotiator, open_microphone, open_camera=open_camera, sink=sink
    )
    printer = TranscriptPrinter(manager.view)

    async def render():
        while True:
            printer.refresh()
            await asyncio.sleep(0.1)

    render_task = asyncio.ensure_future(render())
    try:
        try:
            await manager.start()
        except StoryCallError as e:
            print(f"Call failed: {e}")
        await read_commands(manager)
    finally:
        await manager.hangup()
        render_task.cancel()
        printer.refresh()
        print()


def main():
    args = parse_args()
    logger.info(f"Calling through {args.server} ({'direct' if args.direct else 'relay'} mode)")
    try:
        asyncio.run(run_client(args))
    except KeyboardInterrupt:
        logger.info("Client stopped by user")


if __name__ == "__main__":
    main()
