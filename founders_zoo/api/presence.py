"""
founders_zoo/api/presence.py
Presence snapshot endpoints.

GET returns the current global snapshot. The websocket endpoints push every
snapshot (or player status) while the socket stays open; clients may send
{"type": "ping"} to keep alive.
"""

import asyncio
import json
from typing import Any, Callable, Optional
from uuid import uuid4

from fastapi import APIRouter, Query, Request, WebSocket, WebSocketDisconnect

from founders_zoo.core.logging import log_event
from founders_zoo.features.presence.player import PlayerPresenceTracker
from founders_zoo.features.presence.store import Readable
from founders_zoo.features.streaks.dates import format_local_timestamp

router = APIRouter()


@router.get("/v1/presence/global")
async def get_global_presence(request: Request, user_id: Optional[str] = Query(None)):
    """Current global snapshot; registers this caller's identity on first use."""
    manager = request.app.state.presence
    values = []
    unsubscribe = manager.use_global_presence(user_id).subscribe(values.append)
    unsubscribe()
    snapshot = values[-1]
    return {**snapshot.to_dict(), "observed_at": format_local_timestamp()}


@router.websocket("/v1/ws/presence")
async def presence_stream(websocket: WebSocket, user_id: Optional[str] = Query(None)):
    manager = websocket.app.state.presence
    await _stream(
        websocket,
        manager.use_global_presence(user_id),
        lambda snapshot: {"type": "presence.snapshot", **snapshot.to_dict()},
        user_id=user_id,
    )


@router.websocket("/v1/ws/players/{player_id}")
async def player_status_stream(websocket: WebSocket, player_id: str):
    watcher = websocket.app.state.player_watcher
    await _stream(
        websocket,
        watcher.watch(player_id),
        lambda status: {"type": "player.status", "user_id": player_id, "status": status},
        user_id=player_id,
    )


@router.websocket("/v1/ws/players/{player_id}/track")
async def player_track_stream(websocket: WebSocket, player_id: str, visible: bool = Query(True)):
    """
    Publish one tab's activity for a player while the socket stays open.

    Accepts {"type": "visibility", "visible": bool}, {"type": "focus"} and
    {"type": "blur"}; each is acknowledged with the tracked activity.
    """
    await websocket.accept()
    request_id = websocket.headers.get("X-Request-Id") or str(uuid4())
    tracker = PlayerPresenceTracker(websocket.app.state.channel_client, player_id, visible=visible).start()
    log_event("info", "ws.tracking", request_id=request_id, user_id=player_id, event_type="ws.connected")
    try:
        while True:
            raw_message = await websocket.receive_text()
            try:
                data = json.loads(raw_message)
            except ValueError:
                continue
            if not isinstance(data, dict):
                continue

            message_type = data.get("type")
            if message_type == "ping":
                await websocket.send_json({"type": "pong", "request_id": request_id})
                continue
            if message_type == "visibility":
                await tracker.set_visibility(bool(data.get("visible")))
            elif message_type == "focus":
                await tracker.on_focus()
            elif message_type == "blur":
                await tracker.on_blur()
            else:
                continue
            await websocket.send_json({"type": "player.tracked", "user_id": player_id, "active": tracker.visible})
    except WebSocketDisconnect:
        pass
    finally:
        await tracker.close()
        log_event("info", "ws.disconnected", request_id=request_id, user_id=player_id, event_type="ws.disconnected")


async def _stream(
    websocket: WebSocket,
    store: Readable,
    render: Callable[[Any], dict],
    *,
    user_id: Optional[str],
) -> None:
    await websocket.accept()
    request_id = websocket.headers.get("X-Request-Id") or str(uuid4())
    queue: asyncio.Queue = asyncio.Queue()
    unsubscribe = store.subscribe(queue.put_nowait)
    log_event("info", "ws.connected", request_id=request_id, user_id=user_id, event_type="ws.connected")

    async def send_loop() -> None:
        while True:
            value = await queue.get()
            await websocket.send_json(render(value))

    async def receive_loop() -> None:
        while True:
            raw_message = await websocket.receive_text()
            try:
                data = json.loads(raw_message)
            except ValueError:
                continue
            if isinstance(data, dict) and data.get("type") == "ping":
                await websocket.send_json({"type": "pong", "request_id": request_id})

    sender = asyncio.ensure_future(send_loop())
    receiver = asyncio.ensure_future(receive_loop())
    try:
        done, _ = await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                log_event(
                    "error",
                    "ws.loop_error",
                    request_id=request_id,
                    user_id=user_id,
                    event_type="ws.loop_error",
                    extra={"error": exc},
                )
    finally:
        for task in (sender, receiver):
            task.cancel()
        await asyncio.gather(sender, receiver, return_exceptions=True)
        unsubscribe()
        log_event("info", "ws.disconnected", request_id=request_id, user_id=user_id, event_type="ws.disconnected")
