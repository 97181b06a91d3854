# partyroom/transport/dispatcher.py
from __future__ import annotations

from typing import Any, Dict, List

import structlog

from partyroom.store.models import Room, dump_room
from partyroom.store.registry import RoomNotFoundError
from partyroom.transport.protocols import (
    HOST_ACTIONS,
    PLAYER_ACTIONS,
    InHostCreate,
    InReconnect,
    InWatch,
    OutError,
    OutStateUpdate,
    parse_incoming,
)

logger = structlog.get_logger(__name__)

DispatchResult = List[Dict[str, Any]]
# events for the sender only; room-wide snapshots go out through the registry's publish hook


def error_event(code: str, message: str) -> Dict[str, Any]:
    return OutError(code=code, message=message).to_wire()


def state_event(room: Room) -> Dict[str, Any]:
    return OutStateUpdate(state=dump_room(room)).to_wire()


async def dispatch_message(
    *,
    app,
    room_code: str,
    pid: str,
    raw: Any,
) -> DispatchResult:
    """
    Transport layer calls this for every message on a room socket.
    - Parses + validates raw JSON
    - Enforces host-only and player-identity rules
    - Hands accepted actions to the registry, which reduces and broadcasts

    Illegal-but-well-formed actions produce nothing at all.
    """
    try:
        msg = parse_incoming(raw)
    except ValueError as e:
        # pydantic.ValidationError is a ValueError
        logger.warning("bad message", room=room_code, pid=pid, error=str(e))
        return [error_event("BAD_MESSAGE", str(e))]

    registry = app.state.registry
    handle = registry.get(room_code)
    if handle is None:
        return [error_event("ROOM_NOT_FOUND", f"Room {room_code} not found")]

    if isinstance(msg, InHostCreate):
        return [error_event("BAD_MESSAGE", "host.create is only accepted on /ws-create")]
    if isinstance(msg, InReconnect):
        # the socket loop owns reconnect; reaching here means it was not handled
        return [error_event("BAD_MESSAGE", "reconnect must be handled by the connection")]
    if isinstance(msg, InWatch):
        return [state_event(handle.state)]

    if isinstance(msg, HOST_ACTIONS) and pid != handle.host_id:
        return [error_event("NOT_HOST", "Only the host can do that")]
    if isinstance(msg, PLAYER_ACTIONS) and msg.player_id != pid:
        return [error_event("PID_MISMATCH", "playerId does not match this connection")]

    wsman = app.state.wsman

    async def publish(room: Room) -> None:
        await wsman.broadcast(handle.code, state_event(room))

    try:
        await registry.submit(handle.code, msg, publish)
    except RoomNotFoundError:
        return [error_event("ROOM_NOT_FOUND", f"Room {room_code} not found")]
    return []
