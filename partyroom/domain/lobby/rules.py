# partyroom/domain/lobby/rules.py
from __future__ import annotations

from partyroom.store.models import LobbyRoom, Player, Room, base_players
from partyroom.transport.protocols import InJoin, InVote


def join(room: Room, action: InJoin) -> Room:
    """
    Lobby only. Players are appended in join order; a repeated id is ignored.
    Once a game starts the roster is frozen, so late joins are no-ops.
    """
    if not isinstance(room, LobbyRoom):
        return room

    name = action.name.strip()
    if not name:
        return room
    if any(p.id == action.player_id for p in room.players):
        return room

    return room.model_copy(update={"players": room.players + (Player(id=action.player_id, name=name),)})


def vote(room: Room, action: InVote) -> Room:
    """Lobby only, known players only. Re-voting overwrites."""
    if not isinstance(room, LobbyRoom):
        return room
    if not any(p.id == action.player_id for p in room.players):
        return room

    return room.model_copy(update={"votes": {**room.votes, action.player_id: action.game_id}})


def reset_to_lobby(room: Room) -> LobbyRoom:
    """Any phase -> lobby. Keeps ids + names, drops decorations and votes."""
    return LobbyRoom(code=room.code, players=base_players(room), votes={})
