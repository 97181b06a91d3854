# partyroom/store/redis_keys.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RK:
    """
    Redis key builder for one room.
    Only the host-owned relay uses these; the central server keeps rooms in memory.
    """
    room_code: str

    # ---- Channels ----
    def actions(self) -> str:
        return f"room:{self.room_code}:actions"  # PUBSUB clients -> host

    def state(self) -> str:
        return f"room:{self.room_code}:state"  # PUBSUB host -> clients

    # ---- Keys ----
    def snapshot(self) -> str:
        return f"room:{self.room_code}:snapshot"  # STRING latest state.update JSON

    def host(self) -> str:
        return f"room:{self.room_code}:host"  # STRING claim marker (SET NX)
