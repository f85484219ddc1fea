"""
Shared pytest fixtures for the support desk tests.

Engine tests run on a ManualScheduler (virtual millisecond clock) and an
in-memory state store, so a 60 second follow-up timeout takes no time.
"""

import random
from unittest.mock import AsyncMock

import fakeredis
import pytest

from chat_engine import ManualScheduler, ResponseResolver, SessionArchiver, SessionController
from services.activity_log import clear_activity, setup_activity_log
from services.completion_client import CompletionClient
from services.redis_client import RedisManager, set_redis
from services.settings_store import SettingsStore, set_settings_store
from services.state_store import MemoryStateStore, set_state_store


# Short, distinct timings so tests can reason about exact instants (ms)
FAST_TIMING = {
    "queueAssignTime": 1000,
    "typingStartDelay": 500,
    "replyTimePerWord": 100,
    "followUpTimeout": 5000,
    "endChatTimeout": 3000,
}


@pytest.fixture
def scheduler():
    """Virtual clock starting at t=0."""
    return ManualScheduler()


@pytest.fixture
def state_store():
    return MemoryStateStore()


@pytest.fixture
def settings(state_store):
    """Settings with fast timing, chat enabled, no API key."""
    store = SettingsStore(state_store).load()
    store.update(**FAST_TIMING)
    store.set_enabled(True)
    return store


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def fake_client():
    """CompletionClient whose network calls are AsyncMocks."""
    client = CompletionClient(base_url="http://completion.test/api")
    client.chat = AsyncMock(return_value="Remote reply from the agent")
    client.validate = AsyncMock(return_value={"valid": True, "message": "API key is valid"})
    return client


@pytest.fixture
def resolver(settings, fake_client, rng):
    return ResponseResolver(settings, client=fake_client, rng=rng)


@pytest.fixture
def archiver(state_store):
    return SessionArchiver(state_store, limit=100)


@pytest.fixture
def events():
    """List that collects every ChatEvent a controller emits."""
    return []


@pytest.fixture
def controller(settings, resolver, archiver, scheduler, rng, events):
    return SessionController(
        settings,
        resolver,
        archiver,
        scheduler=scheduler,
        rng=rng,
        listener=events.append,
        label="test-widget",
    )


@pytest.fixture
def activity_log():
    """Activity capture attached to the root logger, emptied around the test."""
    setup_activity_log()
    clear_activity()
    yield
    clear_activity()


@pytest.fixture
def fake_redis():
    """In-memory Redis server private to one test."""
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture(autouse=True)
def _reset_singletons(fake_redis):
    """No test sees another test's singletons or rate-limit counters."""
    set_redis(RedisManager.from_client(fake_redis))
    yield
    from routers.chat_widget import set_widget_hub

    set_widget_hub(None)
    set_settings_store(None)
    set_state_store(None)
    set_redis(None)
