from __future__ import annotations

from fastapi.testclient import TestClient

from fanorona.protocol.http.app import create_app

CHAIN = "........./........./W.B....../.B......./........B w"
START = "WWWWWWWWW/WWWWWWWWW/WBWB.BWBW/BBBBBBBBB/BBBBBBBBB w"


def _client() -> TestClient:
    return TestClient(create_app())


def _game_at(client: TestClient, position: str) -> str:
    game_id = client.post("/api/games").json()["game_id"]
    r = client.post(f"/api/games/{game_id}/position", json={"position": position})
    assert r.status_code == 200
    return game_id


def test_ai_turn_plays_whole_chain() -> None:
    client = _client()
    game_id = _game_at(client, CHAIN)
    r = client.post(f"/api/games/{game_id}/ai-turn", json={"strategy": "minimax", "difficulty": 1})
    assert r.status_code == 200
    body = r.json()
    assert body["moves"] == ["a3b3", "b3b2"]
    assert body["state"]["side_to_move"] == "b"
    assert body["state"]["black_count"] == 1


def test_search_endpoint_shape() -> None:
    client = _client()
    game_id = client.post("/api/games").json()["game_id"]
    r = client.post(f"/api/games/{game_id}/search", json={"strategy": "minimax", "difficulty": 1})
    assert r.status_code == 200
    data = r.json()
    assert {"best_move", "strategy", "score", "nodes", "depth", "time_ms", "timed_out"} <= set(data)
    assert data["best_move"] in ("d2e3", "e2e3", "f2e3")
    assert data["strategy"] == "minimax"
    assert data["depth"] == 2

    # Searching never changes the game
    assert client.get(f"/api/games/{game_id}/state").json()["position"] == START


def test_search_with_each_strategy() -> None:
    client = _client()
    game_id = client.post("/api/games").json()["game_id"]
    for strategy in ("mcts", "markov", "hybrid"):
        r = client.post(
            f"/api/games/{game_id}/search",
            json={"strategy": strategy, "difficulty": 1, "movetime_ms": 200},
        )
        assert r.status_code == 200
        assert r.json()["best_move"] in ("d2e3", "e2e3", "f2e3")


def test_chain_through_move_and_end_turn() -> None:
    client = _client()
    game_id = _game_at(client, CHAIN)
    r = client.post(f"/api/games/{game_id}/move", json={"move": "a3b3"})
    state = r.json()
    assert state["side_to_move"] == "w"
    assert state["chain"] == {"origin": "b3", "visited": ["a3", "b3"]}
    assert state["legal_moves"] == ["b3b2"]

    r = client.post(f"/api/games/{game_id}/end-turn")
    state = r.json()
    assert r.status_code == 200
    assert state["side_to_move"] == "b"
    assert state["chain"] is None

    # Undo unwinds the end of turn together with the capture
    state = client.post(f"/api/games/{game_id}/undo").json()
    assert state["position"] == CHAIN
    assert state["chain"] is None


def test_perft_endpoint() -> None:
    client = _client()
    r = client.post("/api/perft", json={"position": START, "depth": 1})
    assert r.status_code == 200
    assert r.json() == {"nodes": 3}

    r = client.post("/api/perft", json={"position": "bogus", "depth": 1})
    assert r.status_code == 400
