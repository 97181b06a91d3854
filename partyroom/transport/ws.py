# partyroom/transport/ws.py
from __future__ import annotations

import ipaddress
import json
import uuid
from typing import Any, Optional
from urllib.parse import urlparse

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from partyroom.store.registry import RoomCodeExhaustedError, RoomHandle
from partyroom.transport.dispatcher import dispatch_message, error_event, state_event
from partyroom.transport.protocols import InReconnect, OutHello, OutRoomCreated

logger = structlog.get_logger(__name__)

router = APIRouter()

ROOM_NOT_FOUND_CLOSE = 4004


def _is_private_ip(host: str) -> bool:
    """Return True if host is a private IP (192.168.x.x, 10.x.x.x, 172.16-31.x.x)."""
    try:
        ip = ipaddress.ip_address(host)
        return ip.is_private
    except ValueError:
        return False


async def _check_origin_or_close(websocket: WebSocket) -> bool:
    settings = websocket.app.state.settings
    allowed = {o.strip() for o in settings.WS_ALLOWED_ORIGINS.split(",") if o.strip()}

    origin = websocket.headers.get("origin")
    if origin is None or origin in allowed:
        return True
    if settings.WS_ALLOW_LAN_ORIGINS:
        o = urlparse(origin)
        if _is_private_ip(o.hostname or "") and o.port == 5173:
            return True
    logger.warning("origin rejected", origin=origin)
    await websocket.close(code=1008)
    return False


def _new_pid() -> str:
    return uuid.uuid4().hex[:10]


async def _read(websocket: WebSocket) -> Optional[Any]:
    """Next JSON message, or None after replying BAD_MESSAGE to unparseable text."""
    text = await websocket.receive_text()
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        await websocket.send_json(error_event("BAD_MESSAGE", "Message is not valid JSON"))
        return None


async def _attach(
    websocket: WebSocket,
    handle: RoomHandle,
    conn_id: str,
    pid: str,
    created: bool = False,
) -> bool:
    """
    Subscribe the socket and send hello (+ room.created for the host) + the current snapshot.
    Runs under the room lock so no broadcast can slip in ahead of the first snapshot.
    """
    registry = websocket.app.state.registry
    wsman = websocket.app.state.wsman
    async with handle.lock:
        if registry.get(handle.code) is not handle:
            return False
        registry.attach(handle.code, conn_id)
        await wsman.add(handle.code, conn_id, pid, websocket)
        await websocket.send_json(OutHello(client_id=pid, room_code=handle.code).to_wire())
        if created:
            await websocket.send_json(OutRoomCreated(code=handle.code).to_wire())
        await websocket.send_json(state_event(handle.state))
    return True


async def _serve(websocket: WebSocket, handle: RoomHandle, conn_id: str, pid: str) -> None:
    wsman = websocket.app.state.wsman
    registry = websocket.app.state.registry
    code = handle.code
    structlog.contextvars.bind_contextvars(room=code, conn=conn_id)

    try:
        while True:
            raw = await _read(websocket)
            if raw is None:
                continue

            # Reconnect: take over a previously issued client id
            if isinstance(raw, dict) and raw.get("type") == "reconnect":
                try:
                    msg = InReconnect.model_validate(raw)
                except ValidationError as e:
                    await websocket.send_json(error_event("BAD_MESSAGE", str(e)))
                    continue
                pid = msg.client_id
                await wsman.set_pid(code, conn_id, pid)
                await websocket.send_json(OutHello(client_id=pid, room_code=code).to_wire())
                continue

            to_sender = await dispatch_message(
                app=websocket.app,
                room_code=code,
                pid=pid,
                raw=raw,
            )
            for e in to_sender:
                await websocket.send_json(e)

    except WebSocketDisconnect:
        logger.debug("socket disconnected", pid=pid)
    finally:
        await wsman.remove(code, conn_id)
        registry.detach(code, conn_id)
        structlog.contextvars.clear_contextvars()


@router.websocket("/ws-create")
async def ws_create(websocket: WebSocket):
    if not await _check_origin_or_close(websocket):
        return

    await websocket.accept()
    registry = websocket.app.state.registry

    try:
        raw = await _read(websocket)
    except WebSocketDisconnect:
        return

    if not isinstance(raw, dict) or raw.get("type") != "host.create":
        await websocket.send_json(error_event("ONLY_HOST_CREATE", "ws-create only accepts host.create"))
        await websocket.close()
        return

    pid = _new_pid()
    try:
        handle = registry.create(pid)
    except RoomCodeExhaustedError as e:
        logger.warning("room create failed", error=str(e))
        await websocket.send_json(error_event("ROOM_CREATE_FAILED", str(e)))
        await websocket.close()
        return

    conn_id = uuid.uuid4().hex
    if not await _attach(websocket, handle, conn_id, pid, created=True):
        await websocket.send_json(error_event("ROOM_NOT_FOUND", f"Room {handle.code} not found"))
        await websocket.close(code=ROOM_NOT_FOUND_CLOSE)
        return
    await _serve(websocket, handle, conn_id, pid)


@router.websocket("/ws/{room_code}")
async def ws_room(websocket: WebSocket, room_code: str):
    if not await _check_origin_or_close(websocket):
        return

    await websocket.accept()
    registry = websocket.app.state.registry

    handle = registry.get(room_code)
    conn_id = uuid.uuid4().hex
    pid = _new_pid()
    if handle is None or not await _attach(websocket, handle, conn_id, pid):
        await websocket.send_json(error_event("ROOM_NOT_FOUND", f"Room {room_code} not found"))
        await websocket.close(code=ROOM_NOT_FOUND_CLOSE)
        return
    await _serve(websocket, handle, conn_id, pid)
