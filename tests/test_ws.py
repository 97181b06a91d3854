import random
from contextlib import ExitStack

import pytest
from fastapi.testclient import TestClient

from partyroom.main import create_app
from partyroom.settings import Settings


@pytest.fixture
def app():
    return create_app(Settings(LOG_LEVEL="WARNING"), rng=random.Random(21))


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def _create(stack, client):
    """Open /ws-create and consume hello, room.created and the first snapshot."""
    ws = stack.enter_context(client.websocket_connect("/ws-create"))
    ws.send_json({"type": "host.create"})
    hello = ws.receive_json()
    created = ws.receive_json()
    snap = ws.receive_json()
    assert hello["type"] == "hello"
    assert created == {"type": "room.created", "code": hello["roomCode"]}
    assert snap["type"] == "state.update"
    assert snap["state"] == {"code": hello["roomCode"], "phase": "lobby", "players": [], "votes": {}}
    return ws, hello["clientId"], hello["roomCode"]


def _join_socket(stack, client, code):
    ws = stack.enter_context(client.websocket_connect(f"/ws/{code}"))
    hello = ws.receive_json()
    snap = ws.receive_json()
    assert hello["type"] == "hello"
    assert snap["type"] == "state.update"
    return ws, hello["clientId"]


def test_health_and_games(client):
    assert client.get("/health").json()["ok"] is True
    games = client.get("/games").json()["games"]
    assert [g["id"] for g in games] == ["tic-tac-toe", "word-wall", "codenames", "uno"]
    assert games[2]["playersNeeded"] == "4+ players"


def test_ws_create_rejects_other_first_message(client):
    with client.websocket_connect("/ws-create") as ws:
        ws.send_json({"type": "player.join", "playerId": "x", "name": "X"})
        err = ws.receive_json()
        assert err["type"] == "error"
        assert err["code"] == "ONLY_HOST_CREATE"


def test_unknown_room_is_rejected(client):
    with client.websocket_connect("/ws/ZZZZ") as ws:
        err = ws.receive_json()
        assert err == {"type": "error", "code": "ROOM_NOT_FOUND", "message": "Room ZZZZ not found"}


def test_full_flow_join_vote_start_move(client, app):
    with ExitStack() as stack:
        host, _, code = _create(stack, client)
        p1, pid1 = _join_socket(stack, client, code)
        p2, pid2 = _join_socket(stack, client, code)

        p1.send_json({"type": "player.join", "playerId": pid1, "name": "Ada"})
        for ws in (host, p1, p2):
            state = ws.receive_json()["state"]
            assert [p["name"] for p in state["players"]] == ["Ada"]

        p2.send_json({"type": "player.join", "playerId": pid2, "name": "Bo"})
        for ws in (host, p1, p2):
            assert len(ws.receive_json()["state"]["players"]) == 2

        host.send_json({"type": "host.start"})
        for ws in (host, p1, p2):
            state = ws.receive_json()["state"]
            assert state["phase"] == "ttt"
            assert state["turn"] == "X"

        p1.send_json({"type": "player.move", "playerId": pid1, "index": 0})
        for ws in (host, p1, p2):
            state = ws.receive_json()["state"]
            assert state["board"][0] == "X"
            assert state["turn"] == "O"

    # last socket gone -> room evicted
    assert app.state.registry.rooms() == []


def test_illegal_action_is_silent(client):
    with ExitStack() as stack:
        _, _, code = _create(stack, client)
        p1, pid1 = _join_socket(stack, client, code)

        # move in the lobby: nothing comes back, the next frame is the watch reply
        p1.send_json({"type": "player.move", "playerId": pid1, "index": 0})
        p1.send_json({"type": "room.watch"})
        reply = p1.receive_json()
        assert reply["type"] == "state.update"
        assert reply["state"]["phase"] == "lobby"


def test_transport_errors(client):
    with ExitStack() as stack:
        _, _, code = _create(stack, client)
        p1, pid1 = _join_socket(stack, client, code)

        p1.send_text("{not json")
        assert p1.receive_json()["code"] == "BAD_MESSAGE"

        p1.send_json({"type": "player.fly", "playerId": pid1})
        assert p1.receive_json()["code"] == "BAD_MESSAGE"

        p1.send_json({"type": "player.join", "playerId": pid1, "name": "x" * 30})
        assert p1.receive_json()["code"] == "BAD_MESSAGE"

        p1.send_json({"type": "host.start"})
        assert p1.receive_json()["code"] == "NOT_HOST"

        p1.send_json({"type": "player.join", "playerId": "someone-else", "name": "Mallory"})
        assert p1.receive_json()["code"] == "PID_MISMATCH"

        p1.send_json({"type": "host.create"})
        assert p1.receive_json()["code"] == "BAD_MESSAGE"


def test_deeply_nested_json_keeps_socket_open(client):
    with ExitStack() as stack:
        host, _, code = _create(stack, client)
        p1, pid1 = _join_socket(stack, client, code)

        p1.send_text("[" * 100_000 + "]" * 100_000)
        assert p1.receive_json()["code"] == "BAD_MESSAGE"

        p1.send_json({"type": "player.join", "playerId": pid1, "name": "Ada"})
        assert p1.receive_json()["state"]["players"] == [{"id": pid1, "name": "Ada"}]
        assert host.receive_json()["state"]["players"] == [{"id": pid1, "name": "Ada"}]


def test_reconnect_takes_over_client_id(client):
    with ExitStack() as stack:
        host, _, code = _create(stack, client)

        with ExitStack() as first:
            p1, pid1 = _join_socket(first, client, code)
            p1.send_json({"type": "player.join", "playerId": pid1, "name": "Ada"})
            host.receive_json()
            p1.receive_json()

        p1b, fresh = _join_socket(stack, client, code)
        assert fresh != pid1
        p1b.send_json({"type": "reconnect", "clientId": pid1})
        assert p1b.receive_json() == {"type": "hello", "clientId": pid1, "roomCode": code}

        p1b.send_json({"type": "player.vote", "playerId": pid1, "gameId": "uno"})
        assert p1b.receive_json()["state"]["votes"] == {pid1: "uno"}
        assert host.receive_json()["state"]["votes"] == {pid1: "uno"}


def test_admin_lists_and_closes_rooms(client, app):
    with ExitStack() as stack:
        _, _, code = _create(stack, client)

        rooms = client.get("/admin/rooms").json()["rooms"]
        assert [r["room_code"] for r in rooms] == [code]
        assert rooms[0]["phase"] == "lobby"
        assert rooms[0]["connected"] == 1

        assert client.post("/admin/rooms/NOPE/close").status_code == 404
        resp = client.post(f"/admin/rooms/{code}/close").json()
        assert resp == {"ok": True, "room_code": code, "closed": 1}
        assert app.state.registry.get(code) is None
