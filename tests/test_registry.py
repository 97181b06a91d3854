import asyncio
import random

import pytest

from partyroom.domain.room.machine import RoomStateMachine
from partyroom.store.registry import (
    ROOM_CODE_ALPHABET,
    RoomCodeExhaustedError,
    RoomNotFoundError,
    RoomRegistry,
    generate_room_code,
)
from partyroom.transport.protocols import InHostStart, InJoin, InMove, InVote


class FixedRng(random.Random):
    """Always picks the first alphabet letter, so every code is AAAA."""

    def choice(self, seq):
        return seq[0]


class Recorder:
    def __init__(self):
        self.published = []

    async def __call__(self, room):
        self.published.append(room)


def _registry(seed=5, **kw):
    return RoomRegistry(RoomStateMachine(random.Random(seed)), rng=random.Random(seed), **kw)


def test_room_code_alphabet():
    assert len(ROOM_CODE_ALPHABET) == 32
    for ch in "0O1I":
        assert ch not in ROOM_CODE_ALPHABET

    rng = random.Random(0)
    for _ in range(200):
        code = generate_room_code(rng)
        assert len(code) == 4
        assert set(code) <= set(ROOM_CODE_ALPHABET)


def test_create_registers_lobby():
    reg = _registry()
    handle = reg.create("host1")
    assert handle.host_id == "host1"
    assert handle.state.phase == "lobby"
    assert handle.state.code == handle.code
    assert reg.get(handle.code) is handle
    assert reg.get(handle.code.lower()) is handle


def test_create_retries_then_gives_up():
    reg = RoomRegistry(RoomStateMachine(), rng=FixedRng(), max_attempts=3)
    assert reg.create("h").code == "AAAA"
    with pytest.raises(RoomCodeExhaustedError):
        reg.create("h2")


def test_detach_last_subscriber_evicts():
    reg = _registry()
    code = reg.create("h").code
    reg.attach(code, "c1")
    reg.attach(code, "c2")

    assert reg.detach(code, "c1") is False
    assert reg.get(code) is not None
    assert reg.detach(code, "c2") is True
    assert reg.get(code) is None


def test_attach_unknown_room():
    with pytest.raises(RoomNotFoundError):
        _registry().attach("ZZZZ", "c1")


@pytest.mark.asyncio
async def test_submit_publishes_only_on_change():
    reg = _registry()
    code = reg.create("h").code
    rec = Recorder()

    assert await reg.submit(code, InJoin(player_id="p1", name="Ada"), rec) is True
    assert await reg.submit(code, InJoin(player_id="p1", name="Ada"), rec) is False
    assert await reg.submit(code, InMove(player_id="p1", index=0), rec) is False

    assert len(rec.published) == 1
    assert reg.get(code).state.players[0].name == "Ada"


@pytest.mark.asyncio
async def test_submit_unknown_room():
    with pytest.raises(RoomNotFoundError):
        await _registry().submit("ZZZZ", InHostStart(), Recorder())


@pytest.mark.asyncio
async def test_concurrent_submits_are_serialized():
    reg = _registry()
    code = reg.create("h").code
    order = []

    async def slow_publish(room):
        order.append(("start", len(room.players)))
        await asyncio.sleep(0)
        order.append(("end", len(room.players)))

    await asyncio.gather(*(reg.submit(code, InJoin(player_id=f"p{i}", name=f"P{i}"), slow_publish) for i in range(5)))

    assert len(reg.get(code).state.players) == 5
    # each publish finishes before the next one starts, in state order
    assert order == [(tag, n) for n in range(1, 6) for tag in ("start", "end")]


@pytest.mark.asyncio
async def test_evicted_room_rejects_submit():
    reg = _registry()
    code = reg.create("h").code
    reg.evict(code)
    with pytest.raises(RoomNotFoundError):
        await reg.submit(code, InVote(player_id="p1", game_id="uno"), Recorder())
