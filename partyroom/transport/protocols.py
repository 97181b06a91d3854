# partyroom/transport/protocols.py
from __future__ import annotations

from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from partyroom.domain.common.types import GameId, Role, Team, UnoColor


# =========================
# Incoming (Client -> Server)
# =========================

class InBase(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)
    type: str


PlayerId = Annotated[str, Field(min_length=1, max_length=64)]


# ---- Connection / lifecycle ----

class InHostCreate(InBase):
    type: Literal["host.create"] = "host.create"


class InWatch(InBase):
    type: Literal["room.watch"] = "room.watch"


class InReconnect(InBase):
    type: Literal["reconnect"] = "reconnect"
    client_id: str = Field(min_length=1, max_length=64)


# ---- Lobby ----

class InJoin(InBase):
    type: Literal["player.join"] = "player.join"
    player_id: PlayerId
    name: str = Field(min_length=1, max_length=24)


class InVote(InBase):
    type: Literal["player.vote"] = "player.vote"
    player_id: PlayerId
    game_id: GameId


# ---- Game actions ----

class InMove(InBase):
    type: Literal["player.move"] = "player.move"
    player_id: PlayerId
    index: int


class InSubmit(InBase):
    type: Literal["player.submit"] = "player.submit"
    player_id: PlayerId
    text: str = Field(min_length=1, max_length=200)


class InUnoPlay(InBase):
    type: Literal["player.uno.play"] = "player.uno.play"
    player_id: PlayerId
    card_id: str = Field(min_length=1, max_length=64)
    chosen_color: Optional[UnoColor] = None


class InUnoDraw(InBase):
    type: Literal["player.uno.draw"] = "player.uno.draw"
    player_id: PlayerId


class InReveal(InBase):
    type: Literal["player.reveal"] = "player.reveal"
    player_id: PlayerId
    index: int


class InEndTurn(InBase):
    type: Literal["player.endTurn"] = "player.endTurn"
    player_id: PlayerId


# ---- Host intents ----

class InHostStart(InBase):
    type: Literal["host.start"] = "host.start"


class InHostReset(InBase):
    type: Literal["host.reset"] = "host.reset"


class InHostPlayAgain(InBase):
    type: Literal["host.playAgain"] = "host.playAgain"


class InCodenamesAssign(InBase):
    type: Literal["host.codenames.assign"] = "host.codenames.assign"
    player_id: PlayerId
    team: Optional[Team] = None
    role: Optional[Role] = None


class InCodenamesStart(InBase):
    type: Literal["host.codenames.start"] = "host.codenames.start"


PlayerAction = Union[InJoin, InVote, InMove, InSubmit, InUnoPlay, InUnoDraw, InReveal, InEndTurn]
HostAction = Union[InHostStart, InHostReset, InHostPlayAgain, InCodenamesAssign, InCodenamesStart]
Action = Union[PlayerAction, HostAction]

PLAYER_ACTIONS = (InJoin, InVote, InMove, InSubmit, InUnoPlay, InUnoDraw, InReveal, InEndTurn)
HOST_ACTIONS = (InHostStart, InHostReset, InHostPlayAgain, InCodenamesAssign, InCodenamesStart)

IncomingMessage = Union[InHostCreate, InWatch, InReconnect, Action]


# =========================
# Outgoing (Server -> Client)
# =========================

class OutBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
    type: str

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class OutError(OutBase):
    type: Literal["error"] = "error"
    code: str
    message: str


class OutHello(OutBase):
    type: Literal["hello"] = "hello"
    client_id: str
    room_code: str


class OutRoomCreated(OutBase):
    type: Literal["room.created"] = "room.created"
    code: str


class OutStateUpdate(OutBase):
    """Full room snapshot; never a delta."""
    type: Literal["state.update"] = "state.update"
    state: Dict[str, Any]


# =========================
# Parser helpers
# =========================

_INCOMING_BY_TYPE = {
    "host.create": InHostCreate,
    "room.watch": InWatch,
    "reconnect": InReconnect,
    "player.join": InJoin,
    "player.vote": InVote,
    "player.move": InMove,
    "player.submit": InSubmit,
    "player.uno.play": InUnoPlay,
    "player.uno.draw": InUnoDraw,
    "player.reveal": InReveal,
    "player.endTurn": InEndTurn,
    "host.start": InHostStart,
    "host.reset": InHostReset,
    "host.playAgain": InHostPlayAgain,
    "host.codenames.assign": InCodenamesAssign,
    "host.codenames.start": InCodenamesStart,
}


def parse_incoming(payload: Any) -> IncomingMessage:
    """
    Convert raw dict -> validated message model.
    Raises ValidationError (a ValueError) if invalid.
    """
    if not isinstance(payload, dict):
        raise ValueError("Message must be a JSON object")

    t = payload.get("type")
    if not isinstance(t, str):
        raise ValueError("Missing/invalid type")

    cls = _INCOMING_BY_TYPE.get(t)
    if cls is None:
        raise ValueError(f"Unknown message type: {t}")

    return cls.model_validate(payload)
