# partyroom/domain/room/machine.py
from __future__ import annotations

import random
from typing import Optional

import structlog

from partyroom.domain.games import GAMES_BY_ID, codenames, tictactoe, uno, word_wall
from partyroom.domain.helpers.voting import pick_game
from partyroom.domain.lobby.rules import join, reset_to_lobby, vote
from partyroom.store.models import (
    CodenamesPlayRoom,
    CodenamesSetupRoom,
    LobbyRoom,
    Room,
    TttRoom,
    UnoRoom,
    WordRoom,
)
from partyroom.transport.protocols import (
    Action,
    InCodenamesAssign,
    InCodenamesStart,
    InHostPlayAgain,
    InHostReset,
    InHostStart,
    InJoin,
    InVote,
)

logger = structlog.get_logger(__name__)


class RoomStateMachine:
    """
    Authoritative reducer for one room at a time.

    apply() never raises for a well-typed action: anything illegal for the
    current phase returns the room unchanged. Rooms are immutable, so the
    caller decides whether the returned value is new and needs broadcasting.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()

    def create_room(self, code: str) -> LobbyRoom:
        return LobbyRoom(code=code, players=(), votes={})

    # ----------------------------
    # Dispatch
    # ----------------------------
    def apply(self, room: Room, action: Action) -> Room:
        # phase-independent
        if isinstance(action, InJoin):
            return join(room, action)
        if isinstance(action, InVote):
            return vote(room, action)

        # host intents
        if isinstance(action, InHostStart):
            return self.start_game(room)
        if isinstance(action, InHostReset):
            return reset_to_lobby(room)
        if isinstance(action, InHostPlayAgain):
            return self.play_again(room)
        if isinstance(action, InCodenamesAssign):
            if isinstance(room, CodenamesSetupRoom):
                return codenames.assign(room, action)
            return room
        if isinstance(action, InCodenamesStart):
            if isinstance(room, CodenamesSetupRoom):
                return codenames.begin(room, self.rng)
            return room

        return self._apply_game_action(room, action)

    def _apply_game_action(self, room: Room, action: Action) -> Room:
        if isinstance(room, LobbyRoom):
            return room
        if isinstance(room, TttRoom):
            return tictactoe.apply(room, action, self.rng)
        if isinstance(room, WordRoom):
            return word_wall.apply(room, action, self.rng)
        if isinstance(room, CodenamesSetupRoom):
            # setup only takes host intents
            return room
        if isinstance(room, CodenamesPlayRoom):
            return codenames.apply(room, action, self.rng)
        if isinstance(room, UnoRoom):
            return uno.apply(room, action, self.rng)
        raise TypeError(f"Unhandled room phase: {type(room).__name__}")

    # ----------------------------
    # Host intents
    # ----------------------------
    def start_game(self, room: Room) -> Room:
        """
        Lobby -> game picked by vote.
        Player-count limits come from the game catalog; codenames goes through setup first.
        """
        if not isinstance(room, LobbyRoom):
            return room

        game_id = pick_game(room.votes)
        info = GAMES_BY_ID[game_id]
        if not info.accepts(len(room.players)):
            logger.debug("start rejected", room=room.code, game=game_id, players=len(room.players))
            return room

        if game_id == "tic-tac-toe":
            return tictactoe.setup(room.code, room.players, self.rng)
        if game_id == "word-wall":
            return word_wall.setup(room.code, room.players, self.rng)
        if game_id == "codenames":
            return codenames.setup(room.code, room.players, self.rng)
        return uno.setup(room.code, room.players, self.rng)

    def play_again(self, room: Room) -> Room:
        """Same game, same roster, fresh round."""
        if isinstance(room, TttRoom):
            if len(tictactoe.marked_players(room)) < 2:
                return reset_to_lobby(room)
            return tictactoe.restart(room)
        if isinstance(room, WordRoom):
            return word_wall.restart(room, self.rng)
        if isinstance(room, CodenamesPlayRoom):
            return codenames.restart(room, self.rng)
        if isinstance(room, UnoRoom):
            return uno.restart(room, self.rng)
        return room
