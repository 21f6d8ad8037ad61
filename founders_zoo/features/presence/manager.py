"""
founders_zoo/features/presence/manager.py
Presence channel manager: one shared channel handle per room.

Every observer in the process that watches a room shares the same handle.
The handle subscribes once, tracks this session's payload when the channel
reaches SUBSCRIBED, and pushes a fresh snapshot to its observers on every
sync. Terminal statuses reset the snapshot to zero.

All access happens on one event loop, so there is no locking.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Coroutine, Dict, List, Optional, Set

from founders_zoo.core.config import settings
from founders_zoo.core.identity import SessionKeyStore
from founders_zoo.core.logging import log_event
from founders_zoo.core.metrics import (
    presence_active_handles,
    presence_status_total,
    presence_syncs_total,
    presence_track_failures_total,
)
from founders_zoo.features.presence.aggregator import PresenceAggregator
from founders_zoo.features.presence.channel import PRESENCE_EVENT, SYNC_FILTER, Channel, ChannelClient
from founders_zoo.features.presence.store import Readable
from founders_zoo.features.streaks.dates import epoch_ms
from founders_zoo.models.presence import EMPTY_SNAPSHOT, ChannelStatus, PresenceMeta, PresenceSnapshot

logger = logging.getLogger("founders_zoo")

Observer = Callable[[PresenceSnapshot], None]


def channel_name(room: str) -> str:
    return f"presence:{room}"


@dataclass
class ChannelHandle:
    """Live subscription state for one room."""

    room: str
    channel: Channel
    room_label: str
    user_id: Optional[str] = None
    status: ChannelStatus = ChannelStatus.UNSUBSCRIBED
    connected: bool = False
    tracked_user_id: Optional[str] = None
    tracked_payload: Optional[Dict[str, Any]] = None
    snapshot: PresenceSnapshot = EMPTY_SNAPSHOT
    refcount: int = 0
    observers: List[Observer] = field(default_factory=list)
    closed: bool = False


class PresenceChannelManager:
    """
    Owns the room -> ChannelHandle mapping for one process.

    Construct once and pass it to every consumer. ``close()`` is the unload
    signal: it untracks and unsubscribes every handle.

    Args:
        client: Channel client used to open channels.
        aggregator: Reduces raw presence state into snapshots.
        session_keys: Source of the per-process presence key.
        global_room: Room every observer is pooled into.
        room_label: ``room`` value placed in tracked payloads.
        refcount_teardown: Tear a handle down when its last observer leaves.
            Off by default; handles then live until ``close()``.
    """

    def __init__(
        self,
        client: ChannelClient,
        *,
        aggregator: Optional[PresenceAggregator] = None,
        session_keys: Optional[SessionKeyStore] = None,
        global_room: Optional[str] = None,
        room_label: Optional[str] = None,
        refcount_teardown: Optional[bool] = None,
        clock: Callable[[], int] = epoch_ms,
    ):
        self._client = client
        self._aggregator = aggregator or PresenceAggregator(settings.PRESENCE_DEDUPE)
        self._session_keys = session_keys or SessionKeyStore()
        self.global_room = global_room or settings.PRESENCE_GLOBAL_ROOM
        self.room_label = room_label or settings.PRESENCE_ROOM_LABEL
        self.refcount_teardown = (
            settings.PRESENCE_REFCOUNT_TEARDOWN if refcount_teardown is None else refcount_teardown
        )
        self._clock = clock
        self._handles: Dict[str, ChannelHandle] = {}
        self._tasks: Set[asyncio.Task] = set()

    # Public API -------------------------------------------------------
    def use_global_presence(self, user_id: Optional[str]) -> Readable[PresenceSnapshot]:
        """Observable snapshot of the global pool (one channel per process)."""
        room = self.global_room

        def start(set_value: Callable[[PresenceSnapshot], None]):
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                # No event loop to drive the channel; stay disconnected
                set_value(EMPTY_SNAPSHOT)
                return None

            started = self._ensure_started(room, user_id, self.room_label)
            started.observers.append(set_value)
            started.refcount += 1
            set_value(started.snapshot)

            def stop() -> None:
                # The handle may have been replaced by resubscribe()
                handle = self._handles.get(room)
                if handle is None or set_value not in handle.observers:
                    handle = started
                if set_value not in handle.observers:
                    return
                handle.observers.remove(set_value)
                handle.refcount = max(0, handle.refcount - 1)
                if self.refcount_teardown and handle.refcount == 0 and not handle.closed:
                    # Detach now so a new observer opens a fresh handle
                    self._detach(handle)
                    self._spawn(self._finish_teardown(handle))

            return stop

        current = self._handles.get(room)
        return Readable(current.snapshot if current else EMPTY_SNAPSHOT, start)

    def use_presence(self, room: str, user_id: Optional[str]) -> Readable[PresenceSnapshot]:
        """Per-page presence; counts are kept on the global pool."""
        logger.debug(f"[presence] room {room} delegated to global pool")
        return self.use_global_presence(user_id)

    @property
    def handle_count(self) -> int:
        return len(self._handles)

    def handle(self, room: Optional[str] = None) -> Optional[ChannelHandle]:
        return self._handles.get(room or self.global_room)

    def snapshot(self, room: Optional[str] = None) -> PresenceSnapshot:
        handle = self.handle(room)
        return handle.snapshot if handle else EMPTY_SNAPSHOT

    async def resubscribe(self, room: Optional[str] = None) -> Optional[ChannelHandle]:
        """
        Replace a handle that reached a terminal status with a fresh channel.

        Observers and refcount carry over. No-op for healthy handles.
        """
        room = room or self.global_room
        handle = self._handles.get(room)
        if handle is None or not handle.status.is_terminal:
            return handle

        handle.closed = True
        await self._release_channel(handle)
        fresh = self._open_handle(room, handle.user_id, handle.room_label)
        fresh.observers = handle.observers
        fresh.refcount = handle.refcount
        handle.observers = []
        return fresh

    async def teardown(self, room: Optional[str] = None) -> None:
        handle = self._handles.get(room or self.global_room)
        if handle is not None:
            await self._teardown_handle(handle)

    async def close(self) -> None:
        """Untrack and unsubscribe every handle, then cancel pending work."""
        for handle in list(self._handles.values()):
            await self._teardown_handle(handle)
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def drain(self) -> None:
        """Wait for scheduled track/teardown work to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # Internal helpers -------------------------------------------------
    def _ensure_started(self, room: str, user_id: Optional[str], room_label: str) -> ChannelHandle:
        handle = self._handles.get(room)
        if handle is None:
            return self._open_handle(room, user_id, room_label)

        # Identity may change (e.g. login); re-track the new payload in place
        handle.user_id = user_id
        if handle.status is ChannelStatus.SUBSCRIBED and handle.tracked_user_id != user_id:
            self._spawn(self._track(handle))
        return handle

    def _open_handle(self, room: str, user_id: Optional[str], room_label: str) -> ChannelHandle:
        presence_key = self._session_keys.get()
        channel = self._client.channel(channel_name(room), presence_key=presence_key)
        handle = ChannelHandle(room=room, channel=channel, room_label=room_label, user_id=user_id)
        self._handles[room] = handle
        presence_active_handles.set(len(self._handles))

        channel.on(PRESENCE_EVENT, SYNC_FILTER, lambda: self._handle_sync(handle))
        handle.status = ChannelStatus.SUBSCRIBING
        channel.subscribe(lambda status: self._handle_status(handle, status))

        log_event(
            "info",
            "presence.subscribe",
            request_id=None,
            user_id=user_id,
            room=room,
            event_type="presence.subscribe",
        )
        return handle

    async def _handle_status(self, handle: ChannelHandle, raw_status: str) -> None:
        if handle.closed:
            return
        try:
            status = ChannelStatus(raw_status)
        except ValueError:
            logger.warning(f"[presence] ignoring unknown channel status {raw_status!r}")
            return

        presence_status_total.inc(labels={"status": status.value})
        log_event(
            "info",
            "presence.status",
            request_id=None,
            user_id=handle.user_id,
            room=handle.room,
            event_type="presence.status",
            extra={"status": status.value},
        )
        handle.status = status

        if status is ChannelStatus.SUBSCRIBED:
            handle.connected = True
            await self._track(handle)
            self._handle_sync(handle)
        elif status.is_terminal:
            handle.connected = False
            handle.snapshot = self._aggregator.reset()
            self._notify(handle)

    def _handle_sync(self, handle: ChannelHandle) -> None:
        if handle.closed:
            return
        handle.snapshot = self._aggregator.reduce(handle.channel.presence_state(), connected=handle.connected)
        presence_syncs_total.inc(labels={"room": handle.room})
        self._notify(handle)

    def _notify(self, handle: ChannelHandle) -> None:
        for observer in list(handle.observers):
            observer(handle.snapshot)

    async def _track(self, handle: ChannelHandle) -> None:
        payload = PresenceMeta(user_id=handle.user_id, room=handle.room_label, ts=self._clock()).to_payload()
        handle.tracked_user_id = handle.user_id
        try:
            await handle.channel.track(payload)
        except Exception as e:
            presence_track_failures_total.inc(labels={"op": "track"})
            log_event(
                "warning",
                "presence.track_failed",
                request_id=None,
                user_id=handle.user_id,
                room=handle.room,
                event_type="presence.track_failed",
                extra={"error": e},
            )
            return
        handle.tracked_payload = payload

    async def _release_channel(self, handle: ChannelHandle) -> None:
        if handle.tracked_payload is not None:
            try:
                await handle.channel.untrack()
            except Exception as e:
                presence_track_failures_total.inc(labels={"op": "untrack"})
                log_event(
                    "warning",
                    "presence.untrack_failed",
                    request_id=None,
                    user_id=handle.user_id,
                    room=handle.room,
                    event_type="presence.track_failed",
                    extra={"error": e},
                )
            handle.tracked_payload = None
        try:
            await handle.channel.unsubscribe()
        except Exception as e:
            log_event(
                "warning",
                "presence.unsubscribe_failed",
                request_id=None,
                user_id=handle.user_id,
                room=handle.room,
                event_type="presence.teardown",
                extra={"error": e},
            )

    def _detach(self, handle: ChannelHandle) -> None:
        handle.closed = True
        if self._handles.get(handle.room) is handle:
            del self._handles[handle.room]
        presence_active_handles.set(len(self._handles))

    async def _teardown_handle(self, handle: ChannelHandle) -> None:
        if handle.closed:
            return
        self._detach(handle)
        await self._finish_teardown(handle)

    async def _finish_teardown(self, handle: ChannelHandle) -> None:
        await self._release_channel(handle)
        handle.status = ChannelStatus.CLOSED
        handle.connected = False
        handle.snapshot = EMPTY_SNAPSHOT
        self._notify(handle)
        log_event(
            "info",
            "presence.teardown",
            request_id=None,
            user_id=handle.user_id,
            room=handle.room,
            event_type="presence.teardown",
        )

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
