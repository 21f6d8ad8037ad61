"""
Per-player presence: online, away or offline.

Each player has a channel ``presence:player:{user_id}``. The player's own
tabs track ``{user_id, active, updated_at}`` through PlayerPresenceTracker,
with ``active`` following tab visibility. Anyone can watch the reduced
status through TriStatePresenceWatcher.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine, Optional, Set

from founders_zoo.core.identity import new_presence_key
from founders_zoo.core.logging import log_event
from founders_zoo.core.metrics import presence_track_failures_total
from founders_zoo.features.presence.channel import PRESENCE_EVENT, SYNC_FILTER, ChannelClient, PresenceState
from founders_zoo.features.presence.store import Readable
from founders_zoo.features.streaks.dates import epoch_ms
from founders_zoo.models.presence import ChannelStatus, PlayerPresenceMeta, PlayerStatus

logger = logging.getLogger("founders_zoo")


def player_channel_name(user_id: str) -> str:
    return f"presence:player:{user_id}"


def _is_active(meta: Any) -> bool:
    if isinstance(meta, dict):
        return bool(meta.get("active"))
    return bool(getattr(meta, "active", False))


def reduce_player_status(state: PresenceState) -> PlayerStatus:
    metas = [meta for entries in state.values() for meta in (entries or [])]
    if not metas:
        return "offline"
    if any(_is_active(meta) for meta in metas):
        return "online"
    return "away"


class TriStatePresenceWatcher:
    """Opens one watching channel per observed store; closes it with the last observer."""

    def __init__(self, client: ChannelClient, key_factory: Callable[[], str] = new_presence_key):
        self._client = client
        self._key_factory = key_factory
        self._tasks: Set[asyncio.Task] = set()

    def watch(self, user_id: Optional[str]) -> Readable[PlayerStatus]:
        def start(set_status: Callable[[PlayerStatus], None]):
            if not user_id:
                set_status("offline")
                return None
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                set_status("offline")
                return None

            channel = self._client.channel(player_channel_name(user_id), presence_key=self._key_factory())
            closed = False

            def handle_sync() -> None:
                if not closed:
                    set_status(reduce_player_status(channel.presence_state()))

            def handle_status(raw_status: str) -> None:
                if raw_status == ChannelStatus.SUBSCRIBED.value:
                    handle_sync()
                elif raw_status in (ChannelStatus.CHANNEL_ERROR.value, ChannelStatus.TIMED_OUT.value):
                    if not closed:
                        set_status("offline")

            channel.on(PRESENCE_EVENT, SYNC_FILTER, handle_sync)
            channel.subscribe(handle_status)

            def stop() -> None:
                nonlocal closed
                closed = True
                self._spawn(channel.unsubscribe())
                set_status("offline")

            return stop

        return Readable("offline", start)

    async def close(self) -> None:
        pending = list(self._tasks)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


class PlayerPresenceTracker:
    """
    Broadcasts this tab's activity on the player's own channel.

    Call ``set_visibility`` on visibility changes and ``on_focus``/``on_blur``
    on focus changes; each re-broadcasts while subscribed. ``close`` runs on
    unload and is safe to call more than once.
    """

    def __init__(
        self,
        client: ChannelClient,
        user_id: Optional[str],
        *,
        visible: bool = True,
        key_factory: Callable[[], str] = new_presence_key,
        clock: Callable[[], int] = epoch_ms,
    ):
        self.user_id = user_id
        self.visible = visible
        self.subscribed = False
        self._closed = False
        self._clock = clock
        self._channel = None
        if user_id:
            self._channel = client.channel(player_channel_name(user_id), presence_key=key_factory())

    def start(self) -> "PlayerPresenceTracker":
        if self._channel is not None and not self._closed:
            self._channel.subscribe(self._handle_status)
        return self

    async def _handle_status(self, raw_status: str) -> None:
        if raw_status == ChannelStatus.SUBSCRIBED.value and not self._closed:
            self.subscribed = True
            await self.broadcast()

    async def broadcast(self) -> None:
        if not self.subscribed or self._channel is None:
            return
        payload = PlayerPresenceMeta(user_id=self.user_id, active=self.visible, updated_at=self._clock())
        try:
            await self._channel.track(payload.to_payload())
        except Exception as e:
            presence_track_failures_total.inc(labels={"op": "track"})
            log_event(
                "warning",
                "presence.player_track_failed",
                request_id=None,
                user_id=self.user_id,
                event_type="presence.track_failed",
                extra={"error": e},
            )

    async def set_visibility(self, visible: bool) -> None:
        self.visible = visible
        await self.broadcast()

    async def on_focus(self) -> None:
        await self.broadcast()

    async def on_blur(self) -> None:
        await self.broadcast()

    async def close(self) -> None:
        if self._closed or self._channel is None:
            self._closed = True
            return
        self._closed = True
        if self.subscribed:
            self.subscribed = False
            try:
                await self._channel.untrack()
            except Exception as e:
                presence_track_failures_total.inc(labels={"op": "untrack"})
                logger.warning(f"[presence] player untrack failed for {self.user_id}: {e}")
        await self._channel.unsubscribe()
