from __future__ import annotations

from typing import Dict, Mapping

from partyroom.domain.common.types import GameId
from partyroom.domain.games import GAME_ORDER


def tally_votes(votes: Mapping[str, str]) -> Dict[GameId, int]:
    """
    Count one vote per player.
    Unknown game ids are dropped. Result keys follow enumeration order.
    """
    counts: Dict[GameId, int] = {g: 0 for g in GAME_ORDER}
    for game_id in votes.values():
        if game_id in counts:
            counts[game_id] += 1
    return counts


def pick_game(votes: Mapping[str, str]) -> GameId:
    """
    Majority wins. Ties go to whichever game is enumerated first,
    so an empty ballot picks tic-tac-toe.
    """
    counts = tally_votes(votes)
    best = GAME_ORDER[0]
    for game_id in GAME_ORDER:
        if counts[game_id] > counts[best]:
            best = game_id
    return best
