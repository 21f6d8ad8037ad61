import random

from founders_zoo.core.identity import SessionKeyStore, new_presence_key


def _broken_uuid():
    raise OSError("no entropy")


def test_presence_keys_are_unique():
    assert new_presence_key() != new_presence_key()


def test_falls_back_to_random_token():
    key = new_presence_key(uuid_factory=_broken_uuid)
    assert key
    assert key.isalnum()


def test_falls_back_to_counter(monkeypatch):
    def broken_bits(k):
        raise OSError("no entropy")

    monkeypatch.setattr(random, "getrandbits", broken_bits)
    first = new_presence_key(uuid_factory=_broken_uuid)
    second = new_presence_key(uuid_factory=_broken_uuid)
    assert first.startswith("anon-")
    assert first != second


def test_session_key_is_created_once():
    keys = iter(["one", "two"])
    store = SessionKeyStore(key_factory=lambda: next(keys))
    assert store.get() == "one"
    assert store.get() == "one"


def test_session_key_shared_through_storage():
    storage = {}
    first = SessionKeyStore(storage, name="presence_session_id")
    second = SessionKeyStore(storage, name="presence_session_id")
    assert first.get() == second.get()
    assert storage["presence_session_id"] == first.get()
