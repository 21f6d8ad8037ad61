"""
Reduce a channel's raw presence state into a PresenceSnapshot.

``tabs`` counts every tracked entry. ``unique`` depends on the dedupe policy:
with ``none`` every physical connection counts, so it equals ``tabs``; with
``user_id`` it is the number of distinct non-null user ids.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Set

from founders_zoo.core.errors import ValidationError
from founders_zoo.features.presence.channel import PresenceState
from founders_zoo.models.presence import EMPTY_SNAPSHOT, PresenceSnapshot


class DedupePolicy(str, Enum):
    NONE = "none"
    USER_ID = "user_id"

    @classmethod
    def parse(cls, value: "str | DedupePolicy") -> "DedupePolicy":
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(f"Unknown presence dedupe policy: {value}")


def _user_id(meta: Any) -> Optional[str]:
    if isinstance(meta, dict):
        return meta.get("user_id")
    return getattr(meta, "user_id", None)


def aggregate(
    state: PresenceState,
    *,
    connected: bool,
    dedupe: DedupePolicy = DedupePolicy.NONE,
) -> PresenceSnapshot:
    tabs = 0
    users: Set[str] = set()
    for metas in state.values():
        metas = metas or []
        tabs += len(metas)
        if dedupe is DedupePolicy.USER_ID:
            for meta in metas:
                user_id = _user_id(meta)
                if user_id is not None:
                    users.add(user_id)

    unique = tabs if dedupe is DedupePolicy.NONE else len(users)
    return PresenceSnapshot(tabs=tabs, unique=unique, connected=connected)


class PresenceAggregator:
    def __init__(self, dedupe: "str | DedupePolicy" = DedupePolicy.NONE):
        self.dedupe = DedupePolicy.parse(dedupe)

    def reduce(self, state: PresenceState, *, connected: bool) -> PresenceSnapshot:
        return aggregate(state, connected=connected, dedupe=self.dedupe)

    def reset(self) -> PresenceSnapshot:
        return EMPTY_SNAPSHOT
