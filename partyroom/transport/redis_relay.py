# partyroom/transport/redis_relay.py
from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import random
import sys
from typing import Any, Dict, List, Optional, Union

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from partyroom.domain.room.machine import RoomStateMachine
from partyroom.log import configure_logging
from partyroom.settings import get_settings
from partyroom.store.models import Room, dump_room, same_state
from partyroom.store.redis_keys import RK
from partyroom.store.registry import (
    RoomCodeExhaustedError,
    generate_room_code,
    is_valid_room_code,
    normalize_code,
)
from partyroom.transport.protocols import (
    PLAYER_ACTIONS,
    Action,
    HostAction,
    InCodenamesAssign,
    InCodenamesStart,
    InHostPlayAgain,
    InHostReset,
    InHostStart,
    InWatch,
    OutStateUpdate,
    parse_incoming,
)

logger = structlog.get_logger(__name__)


class RedisRoomRelay:
    """
    Host-owned room over Redis pub/sub.

    The host process keeps the only copy of the state. Clients publish player
    actions on RK.actions(); every change goes out on RK.state() and is also
    written to RK.snapshot() so a late subscriber can catch up.
    Host intents never travel over the channel: only host_action() applies them.
    """

    def __init__(
        self,
        redis: Redis,
        code: str,
        machine: RoomStateMachine,
        ttl_sec: int = 1800,
        heartbeat_sec: Optional[float] = None,
    ) -> None:
        self.redis = redis
        self.code = code
        self.keys = RK(code)
        self.machine = machine
        self.ttl_sec = ttl_sec
        self.state: Room = machine.create_room(code)
        self._lock = asyncio.Lock()
        self.heartbeat_sec = heartbeat_sec if heartbeat_sec is not None else max(1.0, ttl_sec / 3)
        self._pubsub = None
        self._heartbeat: Optional[asyncio.Task] = None

    @classmethod
    async def claim(
        cls,
        redis: Redis,
        machine: RoomStateMachine,
        *,
        code: Optional[str] = None,
        ttl_sec: int = 1800,
        heartbeat_sec: Optional[float] = None,
        rng: Optional[random.Random] = None,
        max_attempts: int = 50,
    ) -> "RedisRoomRelay":
        """
        Reserve a room code with SET NX on its host key.
        An explicit code gets one try; otherwise codes are generated until one is free.
        Raises ValueError for an explicit code that is not a well-formed room code.
        """
        if code:
            code = normalize_code(code)
            if not is_valid_room_code(code):
                raise ValueError(f"invalid room code: {code!r}")
        rng = rng or machine.rng
        attempts = 1 if code else max_attempts
        for _ in range(attempts):
            candidate = code or generate_room_code(rng)
            if await redis.set(RK(candidate).host(), b"1", nx=True, ex=ttl_sec):
                return cls(redis, candidate, machine, ttl_sec=ttl_sec, heartbeat_sec=heartbeat_sec)
        if code:
            raise RoomCodeExhaustedError(f"room code {code} is already hosted")
        raise RoomCodeExhaustedError(f"no free room code after {max_attempts} attempts")

    async def open(self) -> None:
        self._pubsub = self.redis.pubsub()
        await self._pubsub.subscribe(self.keys.actions())
        await self.publish_state(self.state)
        self._heartbeat = asyncio.create_task(self._keepalive())
        logger.info("relay started", room=self.code)

    async def publish_state(self, room: Room) -> None:
        payload = json.dumps(OutStateUpdate(state=dump_room(room)).to_wire())
        await self.redis.publish(self.keys.state(), payload)
        await self.redis.set(self.keys.snapshot(), payload, ex=self.ttl_sec)
        await self.redis.expire(self.keys.host(), self.ttl_sec)

    async def refresh(self) -> None:
        """Push the host claim and the snapshot forward by another ttl."""
        await self.redis.expire(self.keys.host(), self.ttl_sec)
        await self.redis.expire(self.keys.snapshot(), self.ttl_sec)

    async def _keepalive(self) -> None:
        # an idle room must keep its claim for as long as the host runs
        while True:
            await asyncio.sleep(self.heartbeat_sec)
            try:
                await self.refresh()
            except RedisError as e:
                logger.warning("refresh failed", room=self.code, error=str(e))

    async def _submit(self, action: Action) -> bool:
        async with self._lock:
            nxt = self.machine.apply(self.state, action)
            if same_state(self.state, nxt):
                logger.debug("action ignored", room=self.code, action=action.type)
                return False
            self.state = nxt
            logger.info("action applied", room=self.code, action=action.type, phase=nxt.phase)
            await self.publish_state(nxt)
            return True

    async def host_action(self, action: HostAction) -> bool:
        return await self._submit(action)

    async def handle_payload(self, data: Union[bytes, str]) -> bool:
        """
        One message from the actions channel.
        Returns whether it changed the room.
        """
        try:
            if isinstance(data, bytes):
                data = data.decode("utf-8")
            msg = parse_incoming(json.loads(data))
        except (ValueError, RecursionError) as e:
            logger.warning("bad message", room=self.code, error=str(e))
            return False

        if isinstance(msg, InWatch):
            async with self._lock:
                await self.publish_state(self.state)
            return False
        if not isinstance(msg, PLAYER_ACTIONS):
            logger.warning("ignored non-player message", room=self.code, action=msg.type)
            return False
        return await self._submit(msg)

    async def serve(self) -> None:
        if self._pubsub is None:
            raise RuntimeError("relay is not open")
        async for message in self._pubsub.listen():
            if message.get("type") != "message":
                continue
            await self.handle_payload(message["data"])

    async def close(self) -> None:
        if self._heartbeat is not None:
            self._heartbeat.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._heartbeat
            self._heartbeat = None
        if self._pubsub is not None:
            await self._pubsub.unsubscribe(self.keys.actions())
            await self._pubsub.aclose()
            self._pubsub = None
        await self.redis.delete(self.keys.host())
        logger.info("relay stopped", room=self.code)


# ----------------------------
# Client-side helpers
# ----------------------------

async def publish_action(redis: Redis, code: str, payload: Dict[str, Any]) -> int:
    return await redis.publish(RK(normalize_code(code)).actions(), json.dumps(payload))


async def fetch_snapshot(redis: Redis, code: str) -> Optional[Dict[str, Any]]:
    raw = await redis.get(RK(normalize_code(code)).snapshot())
    if raw is None:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    return json.loads(raw)


# ----------------------------
# partyroom-host
# ----------------------------

HELP = "commands: start | reset | again | begin | assign PID red|blue|none [spymaster|guesser] | quit"


def parse_command(line: str) -> Optional[HostAction]:
    """
    Host console command -> host action. None for a blank line.
    Raises ValueError for anything it doesn't understand.
    """
    parts = line.split()
    if not parts:
        return None

    cmd, args = parts[0].lower(), parts[1:]
    if cmd == "start":
        return InHostStart()
    if cmd == "reset":
        return InHostReset()
    if cmd == "again":
        return InHostPlayAgain()
    if cmd == "begin":
        return InCodenamesStart()
    if cmd == "assign":
        if len(args) not in (2, 3):
            raise ValueError("usage: assign PID red|blue|none [spymaster|guesser]")
        team = None if args[1].lower() == "none" else args[1].lower()
        role = args[2].lower() if len(args) == 3 else None
        return InCodenamesAssign(player_id=args[0], team=team, role=role)
    raise ValueError(f"unknown command: {cmd}")


async def _host_loop(relay: RedisRoomRelay) -> None:
    while True:
        line = await asyncio.to_thread(sys.stdin.readline)
        if not line or line.strip().lower() == "quit":
            return
        try:
            action = parse_command(line)
        except ValueError as e:
            print(f"{e}\n{HELP}")
            continue
        if action is None:
            continue
        changed = await relay.host_action(action)
        print(f"{relay.state.phase}{'' if changed else ' (unchanged)'}")


async def _run(args: argparse.Namespace) -> None:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, json=settings.LOG_JSON)

    redis = Redis.from_url(args.redis_url or settings.REDIS_URL, decode_responses=False)
    machine = RoomStateMachine(random.Random(settings.RNG_SEED))
    try:
        relay = await RedisRoomRelay.claim(
            redis,
            machine,
            code=args.code,
            ttl_sec=settings.ROOM_TTL_SEC,
            max_attempts=settings.ROOM_CODE_ATTEMPTS,
        )
        await relay.open()
        print(f"room {relay.code}\n{HELP}")

        listener = asyncio.create_task(relay.serve())
        try:
            await _host_loop(relay)
        finally:
            listener.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await listener
            await relay.close()
    finally:
        await redis.aclose()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="partyroom-host", description="Host a party room over Redis pub/sub.")
    parser.add_argument("--code", default=None, help="room code to claim (generated when omitted)")
    parser.add_argument("--redis-url", default=None, help="defaults to REDIS_URL")
    args = parser.parse_args(argv)

    try:
        asyncio.run(_run(args))
    except (RoomCodeExhaustedError, ValueError) as e:
        print(str(e), file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
