# partyroom/domain/games/word_wall.py
from __future__ import annotations

import random
from typing import Sequence

from partyroom.store.models import Player, WordRoom
from partyroom.transport.protocols import Action, InSubmit

PROMPTS = (
    "Write one word that describes your day.",
    "Write one word a villain would put on a welcome mat.",
    "Write one word you'd never want to hear a doctor say.",
    "Write one word that belongs in a space adventure.",
    "Write one word that sounds like a dance move.",
    "Write one word your pet is secretly thinking.",
)


def pick_prompt(rng: random.Random) -> str:
    return rng.choice(PROMPTS)


def setup(code: str, players: Sequence[Player], rng: random.Random) -> WordRoom:
    return WordRoom(
        code=code,
        players=tuple(Player(id=p.id, name=p.name) for p in players),
        prompt=pick_prompt(rng),
        submissions={},
    )


def restart(room: WordRoom, rng: random.Random) -> WordRoom:
    """New prompt, wall cleared."""
    return room.model_copy(update={"prompt": pick_prompt(rng), "submissions": {}})


def submit(room: WordRoom, action: InSubmit) -> WordRoom:
    text = action.text.strip()
    if not text:
        return room
    if not any(p.id == action.player_id for p in room.players):
        return room
    # one entry per player, latest wins
    return room.model_copy(update={"submissions": {**room.submissions, action.player_id: text}})


def apply(room: WordRoom, action: Action, rng: random.Random) -> WordRoom:
    if isinstance(action, InSubmit):
        return submit(room, action)
    return room
