"""
The pub/sub channel capability presence is built on.

Any realtime transport can sit behind these protocols. Status callbacks may
return an awaitable; channels must await it before delivering the next
status so transitions are observed in order.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Protocol, Union

PresenceState = Mapping[str, Optional[List[Dict[str, Any]]]]
SyncCallback = Callable[[], None]
StatusCallback = Callable[[str], Union[None, Awaitable[None]]]

PRESENCE_EVENT = "presence"
SYNC_FILTER = {"event": "sync"}


class Channel(Protocol):
    name: str

    def on(self, event_type: str, event_filter: Mapping[str, str], callback: SyncCallback) -> "Channel": ...

    def subscribe(self, callback: Optional[StatusCallback] = None) -> "Channel": ...

    async def track(self, payload: Dict[str, Any]) -> None: ...

    async def untrack(self) -> None: ...

    async def unsubscribe(self) -> None: ...

    def presence_state(self) -> PresenceState: ...


class ChannelClient(Protocol):
    def channel(self, name: str, *, presence_key: str) -> Channel: ...
