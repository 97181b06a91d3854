# partyroom/domain/common/types.py
from __future__ import annotations

from typing import Literal

GameId = Literal["tic-tac-toe", "word-wall", "codenames", "uno"]

# Tic-tac-toe
Mark = Literal["X", "O"]

# Codenames
Team = Literal["red", "blue"]
Role = Literal["spymaster", "guesser"]
CardColor = Literal["red", "blue", "neutral", "assassin"]

# Uno
UnoColor = Literal["red", "yellow", "green", "blue"]
UnoValue = Literal[
    "0", "1", "2", "3", "4", "5", "6", "7", "8", "9",
    "skip", "reverse", "draw2", "wild", "wild4",
]
Direction = Literal[1, -1]
