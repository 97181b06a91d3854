from __future__ import annotations

from .voting import pick_game, tally_votes

__all__ = [
    "pick_game",
    "tally_votes",
]
