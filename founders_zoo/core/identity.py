"""
Presence keys and the per-process session id.

A presence key identifies one tracked session inside a channel. Key
generation never raises: when the uuid source is unavailable it degrades to
a random base-36 token, and past that to a process-local counter.
"""

from __future__ import annotations

import itertools
import logging
import random
from typing import Callable, MutableMapping, Optional
from uuid import uuid4

from founders_zoo.core.config import settings

logger = logging.getLogger("founders_zoo")

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
_fallback_counter = itertools.count(1)


def _base36(number: int) -> str:
    if number <= 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def new_presence_key(uuid_factory: Callable[[], object] = uuid4) -> str:
    """Return a fresh presence key, degrading instead of failing."""
    try:
        return str(uuid_factory())
    except Exception as e:
        logger.warning(f"[identity] uuid source unavailable, using random token: {e}")
    try:
        return _base36(random.getrandbits(64))
    except Exception as e:
        logger.warning(f"[identity] random source unavailable, using counter: {e}")
    return f"anon-{next(_fallback_counter)}"


class SessionKeyStore:
    """
    Holds the session id reused for every channel this process opens.

    The storage mapping plays the role of browser session storage; pass a
    shared dict to keep the id across manager instances in one process.
    """

    def __init__(
        self,
        storage: Optional[MutableMapping[str, str]] = None,
        name: Optional[str] = None,
        key_factory: Callable[[], str] = new_presence_key,
    ):
        self._storage = storage if storage is not None else {}
        self._name = name or settings.PRESENCE_SESSION_KEY
        self._key_factory = key_factory

    def get(self) -> str:
        session_id = self._storage.get(self._name)
        if not session_id:
            session_id = self._key_factory()
            self._storage[self._name] = session_id
        return session_id
