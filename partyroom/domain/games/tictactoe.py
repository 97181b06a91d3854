# partyroom/domain/games/tictactoe.py
from __future__ import annotations

import random
from typing import Optional, Sequence, Tuple

from partyroom.domain.common.types import Mark
from partyroom.store.models import Player, TttPlayer, TttRoom
from partyroom.transport.protocols import Action, InMove

EMPTY_BOARD: Tuple[Optional[Mark], ...] = (None,) * 9

LINES = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)


def check_winner(board: Sequence[Optional[Mark]]) -> Optional[str]:
    """Returns "X" / "O" for a completed line, "draw" for a full board, else None."""
    for a, b, c in LINES:
        if board[a] and board[a] == board[b] == board[c]:
            return board[a]
    if all(board):
        return "draw"
    return None


def assign_marks(players: Sequence[Player]) -> Tuple[TttPlayer, ...]:
    """First two players get X and O; anyone after them watches."""
    marks = ("X", "O")
    return tuple(
        TttPlayer(id=p.id, name=p.name, mark=marks[i] if i < len(marks) else None)
        for i, p in enumerate(players)
    )


def setup(code: str, players: Sequence[Player], rng: Optional[random.Random] = None) -> TttRoom:
    return TttRoom(code=code, players=assign_marks(players), board=EMPTY_BOARD, turn="X", winner=None)


def restart(room: TttRoom) -> TttRoom:
    return room.model_copy(update={"board": EMPTY_BOARD, "turn": "X", "winner": None})


def marked_players(room: TttRoom) -> Tuple[TttPlayer, ...]:
    return tuple(p for p in room.players if p.mark is not None)


def move(room: TttRoom, action: InMove) -> TttRoom:
    if room.winner is not None:
        return room

    player = next((p for p in room.players if p.id == action.player_id), None)
    if player is None or player.mark != room.turn:
        return room

    if not 0 <= action.index < len(room.board):
        return room
    if room.board[action.index] is not None:
        return room

    board = list(room.board)
    board[action.index] = player.mark
    result = check_winner(board)
    if result:
        return room.model_copy(update={"board": tuple(board), "winner": result})

    return room.model_copy(update={"board": tuple(board), "turn": "O" if room.turn == "X" else "X"})


def apply(room: TttRoom, action: Action, rng: Optional[random.Random] = None) -> TttRoom:
    if isinstance(action, InMove):
        return move(room, action)
    return room
