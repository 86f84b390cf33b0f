import logging

import pytest

from storycall.config.settings import Settings
from tests.fakes import FakePeerConnection


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


@pytest.fixture
def settings():
    return Settings(
        openai_api_key="sk-test-key",
        model="gpt-realtime-test",
        voice="verse",
        text_model="gpt-text-test",
        api_base="https://upstream.test/v1",
        static_dir=None,
    )


@pytest.fixture
def settings_without_key(settings):
    return settings.model_copy(update={"openai_api_key": None})


@pytest.fixture
def recorded_sleeps():
    return []


@pytest.fixture
def fake_sleep(recorded_sleeps):
    async def _sleep(delay):
        recorded_sleeps.append(delay)

    return _sleep


@pytest.fixture
def peer_connections():
    return []


@pytest.fixture
def pc_factory(peer_connections):
    def _factory():
        pc = FakePeerConnection()
        peer_connections.append(pc)
        return pc

    return _factory
