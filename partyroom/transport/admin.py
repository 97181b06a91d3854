from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/rooms")
async def list_rooms(request: Request):
    """
    List all live rooms (debug/admin).
    """
    registry = request.app.state.registry
    wsman = request.app.state.wsman

    rooms = []
    for handle in registry.rooms():
        rooms.append(
            {
                "room_code": handle.code,
                "phase": handle.state.phase,
                "host": handle.host_id,
                "players": len(handle.state.players),
                "connected": await wsman.room_size(handle.code),
                "last_activity": handle.last_activity,
                "created_at": handle.created_at,
            }
        )

    return {"rooms": rooms}


@router.post("/rooms/{room_code}/close")
async def close_room(room_code: str, request: Request):
    """
    Force close a room (debug/admin). Closes its websockets and forgets the room.
    """
    registry = request.app.state.registry
    wsman = request.app.state.wsman

    handle = registry.get(room_code)
    if handle is None:
        raise HTTPException(status_code=404, detail="Room not found")

    registry.evict(handle.code)
    closed = await wsman.close_room(handle.code, code=4000)

    return {"ok": True, "room_code": handle.code, "closed": closed}
