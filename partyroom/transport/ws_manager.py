# partyroom/transport/ws_manager.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional

import structlog
from fastapi import WebSocket

logger = structlog.get_logger(__name__)


@dataclass
class Conn:
    conn_id: str
    pid: str
    ws: WebSocket


class WSManager:
    """
    In-memory socket table.
    - room_code -> conn_id -> Conn
    Transport-only: no room state, no game rules.
    """
    def __init__(self) -> None:
        self._rooms: Dict[str, Dict[str, Conn]] = {}
        self._lock = asyncio.Lock()

    async def add(self, room_code: str, conn_id: str, pid: str, ws: WebSocket) -> None:
        async with self._lock:
            self._rooms.setdefault(room_code, {})[conn_id] = Conn(conn_id=conn_id, pid=pid, ws=ws)

    async def set_pid(self, room_code: str, conn_id: str, pid: str) -> None:
        async with self._lock:
            conn = self._rooms.get(room_code, {}).get(conn_id)
            if conn is not None:
                conn.pid = pid

    async def remove(self, room_code: str, conn_id: str) -> int:
        """Returns how many sockets are left in the room."""
        async with self._lock:
            room = self._rooms.get(room_code)
            if not room:
                return 0
            room.pop(conn_id, None)
            if not room:
                self._rooms.pop(room_code, None)
                return 0
            return len(room)

    async def broadcast(self, room_code: str, event: Dict[str, Any], exclude: Optional[str] = None) -> None:
        # copy conns under lock, send outside lock
        async with self._lock:
            conns = list(self._rooms.get(room_code, {}).values())

        for c in conns:
            if exclude and c.conn_id == exclude:
                continue
            try:
                await c.ws.send_json(event)
            except Exception as e:
                # dead socket; ws.py cleans up when its receive loop ends
                logger.warning("broadcast failed", room=room_code, conn=c.conn_id, error=str(e))

    async def close_room(self, room_code: str, code: int = 4000) -> int:
        async with self._lock:
            conns = list(self._rooms.pop(room_code, {}).values())

        for c in conns:
            try:
                await c.ws.close(code=code)
            except Exception as e:
                logger.warning("close failed", room=room_code, conn=c.conn_id, error=str(e))
        return len(conns)

    async def close_all(self, code: int = 1001) -> None:
        async with self._lock:
            codes = list(self._rooms.keys())
        for room_code in codes:
            await self.close_room(room_code, code=code)

    async def room_size(self, room_code: str) -> int:
        async with self._lock:
            return len(self._rooms.get(room_code, {}))

