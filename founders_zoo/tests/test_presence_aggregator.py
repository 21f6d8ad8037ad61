import pytest

from founders_zoo.core.errors import ValidationError
from founders_zoo.features.presence.aggregator import DedupePolicy, PresenceAggregator, aggregate
from founders_zoo.models.presence import EMPTY_SNAPSHOT, PresenceSnapshot

STATE = {
    "a": [{"user_id": "u1"}],
    "b": [{"user_id": "u1"}],
    "c": [{"user_id": "u2"}],
}


def test_no_dedupe_counts_every_connection():
    snapshot = aggregate(STATE, connected=True, dedupe=DedupePolicy.NONE)
    assert snapshot == PresenceSnapshot(tabs=3, unique=3, connected=True)


def test_user_id_dedupe_counts_distinct_users():
    snapshot = aggregate(STATE, connected=True, dedupe=DedupePolicy.USER_ID)
    assert snapshot == PresenceSnapshot(tabs=3, unique=2, connected=True)


def test_multiple_entries_under_one_key_all_count():
    state = {"k": [{"user_id": "u1"}, {"user_id": "u1"}, {"user_id": None}]}
    assert aggregate(state, connected=True, dedupe=DedupePolicy.NONE).tabs == 3
    snapshot = aggregate(state, connected=True, dedupe=DedupePolicy.USER_ID)
    assert snapshot.tabs == 3
    assert snapshot.unique == 1


def test_anonymous_entries_do_not_count_as_users():
    state = {"a": [{"user_id": None}], "b": [{"room": "__any__"}]}
    snapshot = aggregate(state, connected=False, dedupe=DedupePolicy.USER_ID)
    assert snapshot == PresenceSnapshot(tabs=2, unique=0, connected=False)


def test_missing_entry_lists_are_empty():
    assert aggregate({"a": None, "b": []}, connected=True).tabs == 0


def test_aggregator_parses_policy_names():
    aggregator = PresenceAggregator("user_id")
    assert aggregator.dedupe is DedupePolicy.USER_ID
    assert aggregator.reduce(STATE, connected=True).unique == 2
    assert aggregator.reset() == EMPTY_SNAPSHOT


def test_aggregator_rejects_unknown_policy():
    with pytest.raises(ValidationError):
        PresenceAggregator("by_ip")
