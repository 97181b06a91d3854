# partyroom/store/registry.py
from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Set

import structlog

from partyroom.domain.room.machine import RoomStateMachine
from partyroom.store.models import Room, same_state
from partyroom.transport.protocols import Action
from partyroom.util.timeutil import now_ts

logger = structlog.get_logger(__name__)

ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_CODE_LENGTH = 4

Publish = Callable[[Room], Awaitable[None]]


def generate_room_code(rng: random.Random, length: int = ROOM_CODE_LENGTH) -> str:
    return "".join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(length))


def normalize_code(code: str) -> str:
    return code.strip().upper()


def is_valid_room_code(code: str) -> bool:
    """Exactly ROOM_CODE_LENGTH characters, all from ROOM_CODE_ALPHABET (already normalized)."""
    return len(code) == ROOM_CODE_LENGTH and all(c in ROOM_CODE_ALPHABET for c in code)


class RoomNotFoundError(LookupError):
    pass


class RoomCodeExhaustedError(RuntimeError):
    pass


@dataclass
class RoomHandle:
    code: str
    state: Room
    host_id: str
    created_at: int
    last_activity: int
    # connection ids, not player ids: one player may hold several sockets
    subscribers: Set[str] = field(default_factory=set)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class RoomRegistry:
    """
    In-process room table for the central server.
    Each room has its own lock; submit() holds it across reduce + publish,
    so every subscriber sees a room's snapshots in the order they were produced.
    """

    def __init__(
        self,
        machine: RoomStateMachine,
        *,
        rng: Optional[random.Random] = None,
        max_attempts: int = 50,
    ) -> None:
        self.machine = machine
        self.rng = rng or random.Random()
        self.max_attempts = max_attempts
        self._rooms: Dict[str, RoomHandle] = {}

    def create(self, host_id: str) -> RoomHandle:
        for _ in range(self.max_attempts):
            code = generate_room_code(self.rng)
            if code in self._rooms:
                continue
            ts = now_ts()
            handle = RoomHandle(
                code=code,
                state=self.machine.create_room(code),
                host_id=host_id,
                created_at=ts,
                last_activity=ts,
            )
            self._rooms[code] = handle
            logger.info("room created", room=code, host=host_id)
            return handle
        raise RoomCodeExhaustedError(f"no free room code after {self.max_attempts} attempts")

    def get(self, code: str) -> Optional[RoomHandle]:
        return self._rooms.get(normalize_code(code))

    def rooms(self) -> List[RoomHandle]:
        return [self._rooms[c] for c in sorted(self._rooms)]

    def evict(self, code: str) -> bool:
        handle = self._rooms.pop(normalize_code(code), None)
        if handle is None:
            return False
        logger.info("room evicted", room=handle.code)
        return True

    def attach(self, code: str, conn_id: str) -> RoomHandle:
        handle = self.get(code)
        if handle is None:
            raise RoomNotFoundError(code)
        handle.subscribers.add(conn_id)
        return handle

    def detach(self, code: str, conn_id: str) -> bool:
        """Drop one subscriber. Returns True when that emptied (and evicted) the room."""
        handle = self.get(code)
        if handle is None:
            return False
        handle.subscribers.discard(conn_id)
        if handle.subscribers:
            return False
        return self.evict(handle.code)

    async def submit(self, code: str, action: Action, publish: Publish) -> bool:
        """
        Apply one action and publish the next state if it changed.
        Returns whether anything was published.
        """
        handle = self.get(code)
        if handle is None:
            raise RoomNotFoundError(code)

        async with handle.lock:
            # evicted while we waited for the lock
            if self._rooms.get(handle.code) is not handle:
                raise RoomNotFoundError(code)

            prev = handle.state
            nxt = self.machine.apply(prev, action)
            if same_state(prev, nxt):
                logger.debug("action ignored", room=handle.code, action=action.type)
                return False

            handle.state = nxt
            handle.last_activity = now_ts()
            logger.info("action applied", room=handle.code, action=action.type, phase=nxt.phase)
            await publish(nxt)
            return True
