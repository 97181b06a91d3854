import random

from partyroom.domain.games import codenames
from partyroom.store.models import (
    CodeCard,
    CodenamesPlayer,
    CodenamesPlayRoom,
    CodenamesSetupRoom,
    Player,
    Remaining,
)
from partyroom.transport.protocols import InCodenamesAssign, InEndTurn, InReveal

TEAMS = [
    CodenamesPlayer(id="r1", name="R1", team="red", role="spymaster"),
    CodenamesPlayer(id="r2", name="R2", team="red", role="guesser"),
    CodenamesPlayer(id="b1", name="B1", team="blue", role="spymaster"),
    CodenamesPlayer(id="b2", name="B2", team="blue", role="guesser"),
]


def _play_room(turn="red"):
    # index: 0 red, 1 blue, 2 neutral, 3 assassin, then filler
    colors = ["red", "blue", "neutral", "assassin"] + ["red"] * 8 + ["blue"] * 7 + ["neutral"] * 6
    cards = tuple(CodeCard(word=f"W{i}", color=c) for i, c in enumerate(colors))
    return CodenamesPlayRoom(
        code="ABCD",
        players=tuple(TEAMS),
        cards=cards,
        remaining=Remaining(red=9, blue=8),
        turn=turn,
        starting_team="red",
    )


def _invariant(room):
    revealed = sum(1 for c in room.cards if c.revealed and c.color in ("red", "blue"))
    return room.remaining.red + room.remaining.blue + revealed


def test_generate_board_composition():
    cards = codenames.generate_board(random.Random(4), "blue")
    colors = [c.color for c in cards]
    assert len(cards) == 25
    assert colors.count("blue") == 9
    assert colors.count("red") == 8
    assert colors.count("neutral") == 7
    assert colors.count("assassin") == 1
    assert len({c.word for c in cards}) == 25
    assert not any(c.revealed for c in cards)


def test_board_is_deterministic_for_seed():
    assert codenames.generate_board(random.Random(11), "red") == codenames.generate_board(random.Random(11), "red")


def test_setup_then_assign_then_begin():
    players = [Player(id=p.id, name=p.name) for p in TEAMS]
    room = codenames.setup("ABCD", players, random.Random(2))
    assert isinstance(room, CodenamesSetupRoom)
    assert all(p.team is None and p.role == "guesser" for p in room.players)

    # not ready yet
    assert codenames.begin(room, random.Random(0)) is room

    for p in TEAMS:
        room = codenames.assign(room, InCodenamesAssign(player_id=p.id, team=p.team, role=p.role))

    started = codenames.begin(room, random.Random(0))
    assert isinstance(started, CodenamesPlayRoom)
    assert started.turn == room.starting_team
    assert started.remaining == codenames.initial_remaining(room.starting_team)


def test_begin_requires_spymaster_per_team():
    players = [p.model_copy(update={"role": "guesser"}) if p.id == "b1" else p for p in TEAMS]
    room = CodenamesSetupRoom(code="ABCD", players=tuple(players), starting_team="red")
    assert codenames.begin(room, random.Random(0)) is room


def test_assign_unknown_player_is_noop():
    room = CodenamesSetupRoom(code="ABCD", players=tuple(TEAMS), starting_team="red")
    assert codenames.assign(room, InCodenamesAssign(player_id="zz", team="red")) is room


def test_reveal_own_color_keeps_turn():
    room = codenames.reveal(_play_room(), InReveal(player_id="r2", index=0))
    assert room.cards[0].revealed
    assert room.remaining == Remaining(red=8, blue=8)
    assert room.turn == "red"


def test_reveal_enemy_color_decrements_owner_and_passes():
    room = codenames.reveal(_play_room(), InReveal(player_id="r2", index=1))
    assert room.remaining == Remaining(red=9, blue=7)
    assert room.turn == "blue"


def test_reveal_neutral_passes_turn():
    room = codenames.reveal(_play_room(), InReveal(player_id="r2", index=2))
    assert room.remaining == Remaining(red=9, blue=8)
    assert room.turn == "blue"


def test_reveal_assassin_ends_game_for_other_team():
    before = _play_room()
    room = codenames.reveal(before, InReveal(player_id="r2", index=3))
    assert room.winner == "blue"
    assert room.remaining == before.remaining

    # frozen after a winner
    assert codenames.reveal(room, InReveal(player_id="r2", index=0)) is room


def test_last_card_wins_for_its_color():
    room = _play_room().model_copy(update={"remaining": Remaining(red=1, blue=8)})
    room = codenames.reveal(room, InReveal(player_id="r2", index=0))
    assert room.winner == "red"
    assert room.remaining.red == 0


def test_spymaster_and_off_turn_cannot_reveal():
    room = _play_room()
    assert codenames.reveal(room, InReveal(player_id="r1", index=0)) is room
    assert codenames.reveal(room, InReveal(player_id="b2", index=0)) is room
    assert codenames.reveal(room, InReveal(player_id="r2", index=25)) is room


def test_revealed_card_is_noop_and_idempotent():
    room = codenames.reveal(_play_room(), InReveal(player_id="r2", index=0))
    first = codenames.reveal(room, InReveal(player_id="r2", index=0))
    second = codenames.reveal(room, InReveal(player_id="r2", index=0))
    assert first.model_dump() == second.model_dump() == room.model_dump()


def test_end_turn_only_for_team_on_turn():
    room = _play_room()
    assert codenames.end_turn(room, InEndTurn(player_id="b2")) is room
    assert codenames.end_turn(room, InEndTurn(player_id="r1")).turn == "blue"


def test_remaining_plus_revealed_is_constant():
    rng = random.Random(5)
    room = _play_room()
    total = _invariant(room)
    guesser = {"red": "r2", "blue": "b2"}
    while room.winner is None:
        hidden = [i for i, c in enumerate(room.cards) if not c.revealed and c.color != "assassin"]
        room = codenames.reveal(room, InReveal(player_id=guesser[room.turn], index=rng.choice(hidden)))
        assert _invariant(room) == total


def test_restart_keeps_teams():
    room = codenames.reveal(_play_room(), InReveal(player_id="r2", index=3))
    again = codenames.restart(room, random.Random(8))
    assert again.winner is None
    assert again.players == room.players
    assert not any(c.revealed for c in again.cards)
