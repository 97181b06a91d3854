# partyroom/store/models.py
from __future__ import annotations

from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from partyroom.domain.common.types import (
    CardColor,
    Direction,
    GameId,
    Mark,
    Role,
    Team,
    UnoColor,
    UnoValue,
)


class Frozen(BaseModel):
    """
    Immutable value with camelCase keys on the wire.
    Transitions build new instances (model_copy / constructor), never mutate.
    """
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


# =========================
# Players
# =========================

class Player(Frozen):
    id: str
    name: str


class TttPlayer(Player):
    mark: Optional[Mark] = None  # None = spectator


class CodenamesPlayer(Player):
    team: Optional[Team] = None
    role: Role = "guesser"


class UnoCard(Frozen):
    id: str
    color: Union[UnoColor, Literal["wild"]]
    value: UnoValue


class UnoPlayer(Player):
    hand: Tuple[UnoCard, ...] = ()


class CodeCard(Frozen):
    word: str
    color: CardColor
    revealed: bool = False


class Remaining(Frozen):
    red: int
    blue: int


# =========================
# Rooms (one variant per phase)
# =========================

class LobbyRoom(Frozen):
    code: str
    phase: Literal["lobby"] = "lobby"
    players: Tuple[Player, ...] = ()
    votes: Dict[str, GameId] = Field(default_factory=dict)  # playerId -> gameId


class TttRoom(Frozen):
    code: str
    phase: Literal["ttt"] = "ttt"
    players: Tuple[TttPlayer, ...]
    board: Tuple[Optional[Mark], ...]
    turn: Mark = "X"
    winner: Optional[Union[Mark, Literal["draw"]]] = None


class WordRoom(Frozen):
    code: str
    phase: Literal["word"] = "word"
    players: Tuple[Player, ...]
    prompt: str
    submissions: Dict[str, str] = Field(default_factory=dict)  # playerId -> text


class CodenamesSetupRoom(Frozen):
    code: str
    phase: Literal["codenames-setup"] = "codenames-setup"
    players: Tuple[CodenamesPlayer, ...]
    starting_team: Team


class CodenamesPlayRoom(Frozen):
    code: str
    phase: Literal["codenames-play"] = "codenames-play"
    players: Tuple[CodenamesPlayer, ...]
    cards: Tuple[CodeCard, ...]
    remaining: Remaining
    turn: Team
    starting_team: Team
    winner: Optional[Team] = None


class UnoRoom(Frozen):
    code: str
    phase: Literal["uno"] = "uno"
    players: Tuple[UnoPlayer, ...]
    draw_pile: Tuple[UnoCard, ...]
    discard_pile: Tuple[UnoCard, ...]
    current_color: UnoColor
    turn_index: int = 0
    direction: Direction = 1
    winner: Optional[str] = None  # playerId


Room = Annotated[
    Union[LobbyRoom, TttRoom, WordRoom, CodenamesSetupRoom, CodenamesPlayRoom, UnoRoom],
    Field(discriminator="phase"),
]

_ROOM_ADAPTER: TypeAdapter = TypeAdapter(Room)


def dump_room(room: Room) -> Dict[str, Any]:
    """Room -> JSON-ready dict (camelCase)."""
    return room.model_dump(mode="json", by_alias=True)


def load_room(data: Dict[str, Any]) -> Room:
    return _ROOM_ADAPTER.validate_python(data)


def same_state(a: Room, b: Room) -> bool:
    """True when b carries nothing new compared to a (no broadcast needed)."""
    if a is b:
        return True
    return type(a) is type(b) and a.model_dump() == b.model_dump()


def base_players(room: Room) -> Tuple[Player, ...]:
    """Strip phase decorations (mark/team/role/hand) keeping ids + names in order."""
    return tuple(Player(id=p.id, name=p.name) for p in room.players)
