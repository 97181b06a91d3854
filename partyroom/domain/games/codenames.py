# partyroom/domain/games/codenames.py
from __future__ import annotations

import random
from typing import List, Optional, Sequence, Tuple

from partyroom.domain.common.types import CardColor, Team
from partyroom.store.models import (
    CodeCard,
    CodenamesPlayer,
    CodenamesPlayRoom,
    CodenamesSetupRoom,
    Player,
    Remaining,
)
from partyroom.transport.protocols import Action, InCodenamesAssign, InEndTurn, InReveal

BOARD_SIZE = 25
STARTING_TEAM_CARDS = 9
OTHER_TEAM_CARDS = 8
NEUTRAL_CARDS = 7
MIN_PLAYERS = 4

_RAW_WORDS = (
    "Apple", "Bridge", "Glass", "Tiger", "Piano", "Jupiter", "Doctor", "Knight",
    "Forest", "Rocket", "Castle", "Circle", "Lightning", "Diamond", "Shadow", "Orange",
    "Camera", "Library", "Bottle", "Garden", "Pirate", "Planet", "Dragon", "Robot",
    "Anchor", "River", "Tablet", "Spiral", "Cactus", "Mirror", "Museum", "Engine",
    "Market", "Thunder", "Rocket", "Battery", "Helmet", "Needle", "Sailor", "Signal",
    "Turkey", "Canyon", "Falcon", "Bubble", "Comet", "Crown", "Feather", "Galaxy",
    "Harbor", "Jungle", "Lantern", "Magnet", "Marble", "Sphinx", "Temple", "Tunnel",
    "Velvet", "Whisper", "Winter", "Zombie", "Tornado", "Volcano", "Sapphire", "Quartz",
    "Viking", "Whale", "Wizard", "Saturn", "Orbit", "Coral", "Lemon", "Alps",
    "Atlas", "Beacon", "Blizzard", "Cobra", "Desert", "Eagle", "Forest", "Fossil",
    "Giant", "Harpoon", "Icicle", "Lagoon", "Lighthouse", "Meteor", "Oasis", "Palace",
    "Quartz", "Ranger", "Rhythm", "Sahara", "Tanker", "Temple", "Voyage", "Warden",
)
# a board must never show the same word twice
WORDS: Tuple[str, ...] = tuple(dict.fromkeys(_RAW_WORDS))


def other_team(team: Team) -> Team:
    return "blue" if team == "red" else "red"


def initial_remaining(starting_team: Team) -> Remaining:
    return Remaining(
        red=STARTING_TEAM_CARDS if starting_team == "red" else OTHER_TEAM_CARDS,
        blue=STARTING_TEAM_CARDS if starting_team == "blue" else OTHER_TEAM_CARDS,
    )


def generate_board(rng: random.Random, starting_team: Team) -> Tuple[CodeCard, ...]:
    words = rng.sample(WORDS, BOARD_SIZE)
    colors: List[CardColor] = (
        [starting_team] * STARTING_TEAM_CARDS
        + [other_team(starting_team)] * OTHER_TEAM_CARDS
        + ["neutral"] * NEUTRAL_CARDS
        + ["assassin"]
    )
    rng.shuffle(colors)
    return tuple(CodeCard(word=w, color=c, revealed=False) for w, c in zip(words, colors))


# ----------------------------
# Setup (teams + roles)
# ----------------------------

def setup(code: str, players: Sequence[Player], rng: random.Random) -> CodenamesSetupRoom:
    """Everyone starts unassigned as a guesser; the host sorts teams before the board is dealt."""
    return CodenamesSetupRoom(
        code=code,
        players=tuple(CodenamesPlayer(id=p.id, name=p.name, team=None, role="guesser") for p in players),
        starting_team=rng.choice(("red", "blue")),
    )


def assign(room: CodenamesSetupRoom, action: InCodenamesAssign) -> CodenamesSetupRoom:
    if action.team is None and action.role is None:
        return room
    if not any(p.id == action.player_id for p in room.players):
        return room

    update = {}
    if action.team is not None:
        update["team"] = action.team
    if action.role is not None:
        update["role"] = action.role
    players = tuple(p.model_copy(update=update) if p.id == action.player_id else p for p in room.players)
    return room.model_copy(update={"players": players})


def can_begin(players: Sequence[CodenamesPlayer]) -> bool:
    """
    Requirements:
    - at least 4 players
    - each team has at least one member
    - each team has a spymaster
    """
    if len(players) < MIN_PLAYERS:
        return False
    for team in ("red", "blue"):
        members = [p for p in players if p.team == team]
        if not members:
            return False
        if not any(p.role == "spymaster" for p in members):
            return False
    return True


def _deal(code: str, players: Tuple[CodenamesPlayer, ...], starting_team: Team, rng: random.Random) -> CodenamesPlayRoom:
    return CodenamesPlayRoom(
        code=code,
        players=players,
        cards=generate_board(rng, starting_team),
        remaining=initial_remaining(starting_team),
        turn=starting_team,
        starting_team=starting_team,
        winner=None,
    )


def begin(room: CodenamesSetupRoom, rng: random.Random):
    if not can_begin(room.players):
        return room
    return _deal(room.code, room.players, room.starting_team, rng)


def restart(room: CodenamesPlayRoom, rng: random.Random) -> CodenamesPlayRoom:
    """Fresh board, same teams and roles."""
    return _deal(room.code, room.players, rng.choice(("red", "blue")), rng)


# ----------------------------
# Play
# ----------------------------

def _find(room: CodenamesPlayRoom, player_id: str) -> Optional[CodenamesPlayer]:
    return next((p for p in room.players if p.id == player_id), None)


def reveal(room: CodenamesPlayRoom, action: InReveal) -> CodenamesPlayRoom:
    if room.winner is not None:
        return room

    player = _find(room, action.player_id)
    if player is None or player.role != "guesser" or player.team != room.turn:
        return room

    if not 0 <= action.index < len(room.cards):
        return room
    card = room.cards[action.index]
    if card.revealed:
        return room

    cards = tuple(c.model_copy(update={"revealed": True}) if i == action.index else c for i, c in enumerate(room.cards))

    if card.color == "assassin":
        return room.model_copy(update={"cards": cards, "winner": other_team(room.turn)})

    if card.color == "neutral":
        return room.model_copy(update={"cards": cards, "turn": other_team(room.turn)})

    # red/blue: the owning team's count drops, whoever turned it over
    left = max(0, getattr(room.remaining, card.color) - 1)
    remaining = room.remaining.model_copy(update={card.color: left})
    if left == 0:
        return room.model_copy(update={"cards": cards, "remaining": remaining, "winner": card.color})
    if card.color != room.turn:
        return room.model_copy(update={"cards": cards, "remaining": remaining, "turn": other_team(room.turn)})
    return room.model_copy(update={"cards": cards, "remaining": remaining})


def end_turn(room: CodenamesPlayRoom, action: InEndTurn) -> CodenamesPlayRoom:
    if room.winner is not None:
        return room
    player = _find(room, action.player_id)
    if player is None or player.team != room.turn:
        return room
    return room.model_copy(update={"turn": other_team(room.turn)})


def apply(room: CodenamesPlayRoom, action: Action, rng: random.Random) -> CodenamesPlayRoom:
    if isinstance(action, InReveal):
        return reveal(room, action)
    if isinstance(action, InEndTurn):
        return end_turn(room, action)
    return room
