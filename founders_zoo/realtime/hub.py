"""
founders_zoo/realtime/hub.py
In-memory pub/sub hub implementing the presence channel capability.

Maps topic -> set of joined channels. Every channel tracks at most one
payload under its presence key; the presence state of a topic groups the
tracked payloads of all joined channels by key. Any change broadcasts a
sync to every joined channel on that topic.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Dict, List, Mapping, Optional, Set

from founders_zoo.core.errors import ChannelError
from founders_zoo.core.metrics import presence_joined_channels
from founders_zoo.features.presence.channel import PRESENCE_EVENT, StatusCallback, SyncCallback
from founders_zoo.models.presence import ChannelStatus

logger = logging.getLogger(__name__)


class InMemoryChannel:
    def __init__(self, hub: "InMemoryChannelClient", name: str, presence_key: str):
        self.name = name
        self.presence_key = presence_key
        self.status = ChannelStatus.UNSUBSCRIBED
        self.payload: Optional[Dict[str, Any]] = None
        self._hub = hub
        self._sync_listeners: List[SyncCallback] = []
        self._status_callback: Optional[StatusCallback] = None

    def on(self, event_type: str, event_filter: Mapping[str, str], callback: SyncCallback) -> "InMemoryChannel":
        if event_type == PRESENCE_EVENT and event_filter.get("event") == "sync":
            self._sync_listeners.append(callback)
        return self

    def subscribe(self, callback: Optional[StatusCallback] = None) -> "InMemoryChannel":
        self._status_callback = callback
        self.status = ChannelStatus.SUBSCRIBING
        self._hub._spawn(self._hub._join(self))
        return self

    async def track(self, payload: Dict[str, Any]) -> None:
        if self.status is not ChannelStatus.SUBSCRIBED:
            raise ChannelError(f"Cannot track on {self.name}: channel is {self.status.value}")
        self.payload = dict(payload)
        await self._hub.broadcast_sync(self.name)

    async def untrack(self) -> None:
        if self.payload is None:
            return
        self.payload = None
        await self._hub.broadcast_sync(self.name)

    async def unsubscribe(self) -> None:
        if self.status in (ChannelStatus.UNSUBSCRIBED, ChannelStatus.CLOSED):
            return
        await self._hub._leave(self, ChannelStatus.CLOSED)

    def presence_state(self) -> Dict[str, List[Dict[str, Any]]]:
        return self._hub.presence_state(self.name)

    async def _emit_status(self, status: ChannelStatus) -> None:
        self.status = status
        if self._status_callback is None:
            return
        result = self._status_callback(status.value)
        if inspect.isawaitable(result):
            await result

    def _emit_sync(self) -> None:
        for listener in list(self._sync_listeners):
            try:
                listener()
            except Exception as e:
                logger.debug(f"[HUB] sync listener failed on {self.name}: {e}")


class InMemoryChannelClient:
    """
    In-process channel client.

    Joins complete on the event loop after ``subscribe()`` returns, the way a
    network transport acknowledges asynchronously. ``disconnect()`` drops
    every channel on a topic with a terminal status.
    """

    def __init__(self):
        # topic -> joined channels
        self._rooms: Dict[str, Set[InMemoryChannel]] = {}
        self._tasks: Set[asyncio.Task] = set()

    def channel(self, name: str, *, presence_key: str) -> InMemoryChannel:
        return InMemoryChannel(self, name, presence_key)

    def presence_state(self, name: str) -> Dict[str, List[Dict[str, Any]]]:
        state: Dict[str, List[Dict[str, Any]]] = {}
        for channel in self._rooms.get(name, set()):
            if channel.payload is not None:
                state.setdefault(channel.presence_key, []).append(dict(channel.payload))
        return state

    def room_size(self, name: str) -> int:
        return len(self._rooms.get(name, set()))

    def joined_count(self) -> int:
        return sum(len(room) for room in self._rooms.values())

    async def broadcast_sync(self, name: str) -> None:
        for channel in list(self._rooms.get(name, set())):
            channel._emit_sync()

    async def disconnect(self, name: str, status: ChannelStatus = ChannelStatus.CHANNEL_ERROR) -> None:
        for channel in list(self._rooms.get(name, set())):
            await self._leave(channel, status)

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _join(self, channel: InMemoryChannel) -> None:
        if channel.status is not ChannelStatus.SUBSCRIBING:
            return  # unsubscribed before the join completed
        self._rooms.setdefault(channel.name, set()).add(channel)
        self._update_gauge()
        logger.debug(f"[HUB] Joined {channel.name}. Total: {self.room_size(channel.name)}")
        await channel._emit_status(ChannelStatus.SUBSCRIBED)
        await self.broadcast_sync(channel.name)

    async def _leave(self, channel: InMemoryChannel, status: ChannelStatus) -> None:
        room = self._rooms.get(channel.name)
        had_payload = channel.payload is not None
        channel.payload = None
        if room is not None:
            room.discard(channel)
            if not room:
                del self._rooms[channel.name]
                logger.debug(f"[HUB] Cleaned up empty topic {channel.name}")
        self._update_gauge()
        await channel._emit_status(status)
        if had_payload:
            await self.broadcast_sync(channel.name)

    def _update_gauge(self) -> None:
        presence_joined_channels.set(self.joined_count())

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
