from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from fanorona.protocol.http.app import create_app


def _new_game(client: TestClient) -> str:
    return client.post("/api/games").json()["game_id"]


def test_error_envelope_for_http_exception() -> None:
    app: FastAPI = create_app()

    @app.get("/boom")
    def boom():  # type: ignore[no-redef]
        raise HTTPException(status_code=400, detail="oops")

    client = TestClient(app)
    r = client.get("/boom")
    assert r.status_code == 400
    body = r.json()
    assert "error" in body
    err = body["error"]
    assert err["code"] == "bad_request"
    assert err["message"] == "oops"
    assert err["type"] == "client_error"
    assert err["request_id"]


def test_unhandled_exception_is_500_envelope() -> None:
    app: FastAPI = create_app()

    @app.get("/crash")
    def crash():  # type: ignore[no-redef]
        raise RuntimeError("kaboom")

    client = TestClient(app, raise_server_exceptions=False)
    r = client.get("/crash")
    assert r.status_code == 500
    err = r.json()["error"]
    assert err["code"] == "internal_error"
    assert err["type"] == "server_error"


def test_illegal_move() -> None:
    client = TestClient(create_app())
    game_id = _new_game(client)
    # a2 is occupied by WHITE
    r = client.post(f"/api/games/{game_id}/move", json={"move": "a1a2"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "illegal_move"

    # Paika while a capture exists
    client.post(
        f"/api/games/{game_id}/position",
        json={"position": "........./........./W.B....../........./........B w"},
    )
    r = client.post(f"/api/games/{game_id}/move", json={"move": "a3a4"})
    assert r.json()["error"]["code"] == "illegal_move"


def test_bad_notation() -> None:
    client = TestClient(create_app())
    game_id = _new_game(client)
    r = client.post(f"/api/games/{game_id}/move", json={"move": "zz"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "bad_request"


def test_end_turn_without_chain() -> None:
    client = TestClient(create_app())
    game_id = _new_game(client)
    r = client.post(f"/api/games/{game_id}/end-turn")
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "no_capture_chain"


def test_validation_error_is_422() -> None:
    client = TestClient(create_app())
    game_id = _new_game(client)
    r = client.post(f"/api/games/{game_id}/move", json={})
    assert r.status_code == 422
    err = r.json()["error"]
    assert err["code"] == "unprocessable_entity"
    assert err["field_errors"]

    r = client.post(f"/api/games/{game_id}/search", json={"difficulty": 9})
    assert r.status_code == 422


def test_move_after_game_over_is_409() -> None:
    client = TestClient(create_app())
    game_id = _new_game(client)
    client.post(
        f"/api/games/{game_id}/position",
        json={"position": "W.B....../........./........./........./......... w"},
    )
    r = client.post(f"/api/games/{game_id}/move", json={"move": "a1b1"})
    assert r.status_code == 200
    state = r.json()
    assert state["finished"] and state["winner"] == "white"
    assert state["legal_moves"] == []

    r = client.post(f"/api/games/{game_id}/move", json={"move": "b1c1"})
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "game_over"
