"""
Shared fixtures for alarm engine tests
"""

import pytest

from alarm_engine.config import AlarmEngineConfig
from alarm_engine.firing import FiringCoordinator
from alarm_engine.session import AlarmSession
from alarm_engine.store import AlarmStore, MemoryKeyValueStore

from fakes import FixedClock, RecordingExecutor, RecordingNotifier, WEDNESDAY_0730


@pytest.fixture
def config():
    return AlarmEngineConfig(storage_backend="memory", notifier_backend="log")


@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
def store(kv):
    return AlarmStore(kv)


@pytest.fixture
def executor():
    return RecordingExecutor()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def clock():
    return FixedClock(WEDNESDAY_0730)


@pytest.fixture
def coordinator(executor, notifier, config, store, clock):
    return FiringCoordinator(executor, notifier, config, store=store, clock=clock)


@pytest.fixture
def session(config, store, coordinator, clock):
    session = AlarmSession(config, store, coordinator, clock=clock)
    yield session
    session.stop()
