from unittest.mock import MagicMock

import pytest

from storycall.client.push_to_talk import PushToTalk
from storycall.models.call_state import CallView


@pytest.fixture
def send():
    return MagicMock(return_value=True)


def make_ptt(send, connected=True, enabled=False):
    return PushToTalk(CallView(push_to_talk=enabled), send, lambda: connected)


def test_toggle_sends_session_update_when_connected(send):
    ptt = make_ptt(send)

    assert ptt.toggle() is True

    event = send.call_args[0][0]
    assert event.type == "session.update"
    assert event.session.audio.input.turn_detection.type == "none"

    ptt.toggle()
    assert send.call_args[0][0].session.audio.input.turn_detection.type == "semantic_vad"


def test_toggle_without_call_only_flips_flag(send):
    ptt = make_ptt(send, connected=False)

    ptt.toggle()

    assert ptt.enabled is True
    send.assert_not_called()


def test_press_and_release_requests_reply(send):
    ptt = make_ptt(send, enabled=True)

    assert ptt.press() is True
    assert ptt.view.status == "Talk now (release to send)"
    assert ptt.release() is True

    assert ptt.view.status == "Sending..."
    assert send.call_args[0][0].type == "response.create"


def test_release_without_press_does_nothing(send):
    ptt = make_ptt(send, enabled=True)

    assert ptt.release() is False
    send.assert_not_called()


def test_press_ignored_when_disabled_or_disconnected(send):
    assert make_ptt(send, enabled=False).press() is False
    assert make_ptt(send, connected=False, enabled=True).press() is False


def test_reset_drops_hold(send):
    ptt = make_ptt(send, enabled=True)
    ptt.press()

    ptt.reset()

    assert ptt.release() is False
