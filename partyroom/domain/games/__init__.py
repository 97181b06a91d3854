# partyroom/domain/games/__init__.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from partyroom.domain.common.types import GameId


@dataclass(frozen=True)
class GameInfo:
    id: GameId
    name: str
    players_needed: str
    min_players: int
    max_players: Optional[int] = None

    def accepts(self, player_count: int) -> bool:
        if player_count < self.min_players:
            return False
        return self.max_players is None or player_count <= self.max_players


TIC_TAC_TOE = GameInfo(id="tic-tac-toe", name="Tic Tac Toe", players_needed="2 players", min_players=2)
WORD_WALL = GameInfo(id="word-wall", name="Word Wall", players_needed="2 players", min_players=2)
CODENAMES = GameInfo(id="codenames", name="Codenames", players_needed="4+ players", min_players=4)
UNO = GameInfo(id="uno", name="Uno", players_needed="2-8 players", min_players=2, max_players=8)

# Enumeration order doubles as the vote tie-break order.
GAMES: Tuple[GameInfo, ...] = (TIC_TAC_TOE, WORD_WALL, CODENAMES, UNO)
GAME_ORDER: Tuple[GameId, ...] = tuple(g.id for g in GAMES)
GAMES_BY_ID: Dict[str, GameInfo] = {g.id: g for g in GAMES}

__all__ = [
    "GameInfo",
    "GAMES",
    "GAME_ORDER",
    "GAMES_BY_ID",
    "TIC_TAC_TOE",
    "WORD_WALL",
    "CODENAMES",
    "UNO",
]
