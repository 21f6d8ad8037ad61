"""
Presence domain model.

Channel statuses follow the realtime transport's vocabulary. Snapshots are
immutable reductions of a channel's presence state at one moment.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Literal, Optional

PlayerStatus = Literal["online", "away", "offline"]


class ChannelStatus(str, Enum):
    UNSUBSCRIBED = "UNSUBSCRIBED"
    SUBSCRIBING = "SUBSCRIBING"
    SUBSCRIBED = "SUBSCRIBED"
    CLOSED = "CLOSED"
    CHANNEL_ERROR = "CHANNEL_ERROR"
    TIMED_OUT = "TIMED_OUT"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({ChannelStatus.CLOSED, ChannelStatus.CHANNEL_ERROR, ChannelStatus.TIMED_OUT})


@dataclass(frozen=True)
class PresenceSnapshot:
    tabs: int = 0
    unique: int = 0
    connected: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


EMPTY_SNAPSHOT = PresenceSnapshot()


@dataclass(frozen=True)
class PresenceMeta:
    """Payload one session tracks on the global presence channel."""

    user_id: Optional[str]
    room: str
    ts: int  # epoch milliseconds

    def to_payload(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PlayerPresenceMeta:
    """Payload a player's own tabs track on their per-player channel."""

    user_id: str
    active: bool
    updated_at: int  # epoch milliseconds

    def to_payload(self) -> dict:
        return asdict(self)
