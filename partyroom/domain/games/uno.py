# partyroom/domain/games/uno.py
from __future__ import annotations

import random
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from partyroom.domain.common.types import UnoColor
from partyroom.store.models import Player, UnoCard, UnoPlayer, UnoRoom
from partyroom.transport.protocols import Action, InUnoDraw, InUnoPlay

COLORS: Tuple[UnoColor, ...] = ("red", "yellow", "green", "blue")
NUMBERED = ("1", "2", "3", "4", "5", "6", "7", "8", "9", "skip", "reverse", "draw2")
HAND_SIZE = 7
DECK_SIZE = 108
DRAW_PENALTY = {"draw2": 2, "wild4": 4}


def _card(color: str, value: str, n: int) -> UnoCard:
    return UnoCard(id=f"{color}-{value}-{n}", color=color, value=value)


def fresh_deck() -> List[UnoCard]:
    """Unshuffled 108-card deck with stable ids."""
    cards: List[UnoCard] = []
    for color in COLORS:
        cards.append(_card(color, "0", 0))
        for value in NUMBERED:
            cards.append(_card(color, value, 1))
            cards.append(_card(color, value, 2))
    for i in range(4):
        cards.append(_card("wild", "wild", i))
        cards.append(_card("wild", "wild4", i))
    return cards


def build_deck(rng: random.Random) -> List[UnoCard]:
    cards = fresh_deck()
    rng.shuffle(cards)
    return cards


def can_play(card: UnoCard, top: UnoCard, current_color: UnoColor) -> bool:
    if card.color == "wild":
        return True
    if card.color == current_color:
        return True
    return card.value == top.value


def next_index(current: int, count: int, direction: int, skip: int = 0) -> int:
    idx = current
    for _ in range(1 + skip):
        idx = (idx + direction) % count
    return idx


def card_total(room: UnoRoom) -> int:
    return sum(len(p.hand) for p in room.players) + len(room.draw_pile) + len(room.discard_pile)


# ----------------------------
# Setup
# ----------------------------

def setup(code: str, players: Sequence[Player], rng: random.Random) -> UnoRoom:
    deck = build_deck(rng)
    dealt = []
    for p in players:
        hand, deck = deck[:HAND_SIZE], deck[HAND_SIZE:]
        dealt.append(UnoPlayer(id=p.id, name=p.name, hand=tuple(hand)))

    # the opening card can't be a wild; those go to the bottom
    top = deck.pop(0)
    while top.color == "wild":
        deck.append(top)
        top = deck.pop(0)

    return UnoRoom(
        code=code,
        players=tuple(dealt),
        draw_pile=tuple(deck),
        discard_pile=(top,),
        current_color=top.color,
        turn_index=0,
        direction=1,
        winner=None,
    )


def restart(room: UnoRoom, rng: random.Random) -> UnoRoom:
    return setup(room.code, room.players, rng)


# ----------------------------
# Drawing
# ----------------------------

def _reshuffle(
    held_ids: Set[str],
    discard_pile: Tuple[UnoCard, ...],
    rng: random.Random,
) -> Tuple[List[UnoCard], Tuple[UnoCard, ...]]:
    """
    Rebuild the draw pile from a fresh deck minus every card still in play
    (hands, cards being dealt, discard top). The discard pile collapses to its top.
    """
    top = discard_pile[-1]
    in_play = held_ids | {top.id}
    pile = [c for c in fresh_deck() if c.id not in in_play]
    rng.shuffle(pile)
    return pile, (top,)


def take_cards(
    hands: Iterable[Tuple[UnoCard, ...]],
    draw_pile: Tuple[UnoCard, ...],
    discard_pile: Tuple[UnoCard, ...],
    count: int,
    rng: random.Random,
) -> Tuple[Tuple[UnoCard, ...], Tuple[UnoCard, ...], Tuple[UnoCard, ...]]:
    """
    Take up to `count` cards off the draw pile, reshuffling when it runs dry.
    Returns (drawn, draw_pile, discard_pile). Fewer cards come back only when
    nothing is left to reshuffle.
    """
    held = {c.id for hand in hands for c in hand}
    pile = list(draw_pile)
    drawn: List[UnoCard] = []
    while len(drawn) < count:
        if not pile:
            pile, discard_pile = _reshuffle(held | {c.id for c in drawn}, discard_pile, rng)
            if not pile:
                break
        drawn.append(pile.pop(0))
    return tuple(drawn), tuple(pile), discard_pile


# ----------------------------
# Actions
# ----------------------------

def _seat(room: UnoRoom, player_id: str) -> Optional[int]:
    for idx, p in enumerate(room.players):
        if p.id == player_id:
            return idx
    return None


def play(room: UnoRoom, action: InUnoPlay, rng: random.Random) -> UnoRoom:
    """
    Resolution order:
      1. remove card from hand
      2. append to discard
      3. resolve color (wild needs chosenColor)
      4. reverse
      5. next seat (+skip)
      6. draw2/wild4: deal to that seat, then move past it
      7. winner from the actor's hand size
    """
    if room.winner is not None:
        return room

    seat = _seat(room, action.player_id)
    if seat is None or seat != room.turn_index:
        return room

    player = room.players[seat]
    card = next((c for c in player.hand if c.id == action.card_id), None)
    if card is None:
        return room

    top = room.discard_pile[-1]
    if not can_play(card, top, room.current_color):
        return room

    is_wild = card.color == "wild"
    if is_wild != (action.chosen_color is not None):
        return room

    hands = [p.hand for p in room.players]
    hands[seat] = tuple(c for c in player.hand if c.id != card.id)
    discard_pile = room.discard_pile + (card,)
    color = action.chosen_color if is_wild else card.color

    direction = -room.direction if card.value == "reverse" else room.direction
    skip = 1 if card.value == "skip" else 0
    count = len(room.players)
    turn = next_index(room.turn_index, count, direction, skip)

    draw_pile = room.draw_pile
    penalty = DRAW_PENALTY.get(card.value, 0)
    if penalty:
        drawn, draw_pile, discard_pile = take_cards(hands, draw_pile, discard_pile, penalty, rng)
        hands[turn] = hands[turn] + drawn
        turn = next_index(turn, count, direction)

    winner = player.id if not hands[seat] else None
    players = tuple(p.model_copy(update={"hand": hands[i]}) for i, p in enumerate(room.players))
    return room.model_copy(
        update={
            "players": players,
            "draw_pile": draw_pile,
            "discard_pile": discard_pile,
            "current_color": color,
            "direction": direction,
            "turn_index": turn,
            "winner": winner,
        }
    )


def draw(room: UnoRoom, action: InUnoDraw, rng: random.Random) -> UnoRoom:
    if room.winner is not None:
        return room

    seat = _seat(room, action.player_id)
    if seat is None or seat != room.turn_index:
        return room

    hands = [p.hand for p in room.players]
    drawn, draw_pile, discard_pile = take_cards(hands, room.draw_pile, room.discard_pile, 1, rng)
    if not drawn:
        return room

    players = tuple(
        p.model_copy(update={"hand": p.hand + drawn}) if i == seat else p for i, p in enumerate(room.players)
    )
    return room.model_copy(
        update={
            "players": players,
            "draw_pile": draw_pile,
            "discard_pile": discard_pile,
            "turn_index": next_index(room.turn_index, len(room.players), room.direction),
        }
    )


def apply(room: UnoRoom, action: Action, rng: random.Random) -> UnoRoom:
    if isinstance(action, InUnoPlay):
        return play(room, action, rng)
    if isinstance(action, InUnoDraw):
        return draw(room, action, rng)
    return room
