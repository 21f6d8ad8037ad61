# founders_zoo/conftest.py
import pytest

from founders_zoo.core.identity import SessionKeyStore
from founders_zoo.core.metrics import METRICS
from founders_zoo.features.presence.aggregator import PresenceAggregator
from founders_zoo.features.presence.manager import PresenceChannelManager
from founders_zoo.tests.fakes import FakeChannelClient


@pytest.fixture(autouse=True)
def reset_metrics():
    """Metrics are process-global; start every test from zero."""
    METRICS.reset()
    yield
    METRICS.reset()


@pytest.fixture
def fake_client():
    return FakeChannelClient()


@pytest.fixture
def make_manager(fake_client):
    """Build a manager over the fake client with deterministic keys and clock."""

    def _make(**overrides):
        options = {
            "aggregator": PresenceAggregator("none"),
            "session_keys": SessionKeyStore(key_factory=lambda: "sess-1"),
            "global_room": "__global__",
            "room_label": "__any__",
            "refcount_teardown": False,
            "clock": lambda: 1234,
        }
        options.update(overrides)
        return PresenceChannelManager(fake_client, **options)

    return _make
