from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from fanorona.engine.board import Board
from fanorona.engine.game import Game
from fanorona.protocol.http.app import create_app
from fanorona.protocol.http.session import InMemorySessionStore


def test_store_lifecycle() -> None:
    store = InMemorySessionStore()
    gid = store.create()
    assert len(store) == 1 and store.ids() == [gid]
    assert store.get(gid).to_text().endswith(" w")

    assert store.mark_learned(gid)
    assert not store.mark_learned(gid)
    # Replacing the game resets the learned flag
    store.set(gid, Game.new())
    assert store.mark_learned(gid)

    store.delete(gid)
    assert store.get(gid) is None
    assert not store.mark_learned(gid)
    with pytest.raises(KeyError):
        store.set(gid, Game.new())


def test_finished_opening_game_is_learned_once() -> None:
    app = create_app()
    client = TestClient(app)
    gid = client.post("/api/games").json()["game_id"]

    # Keep the opening start record but jump to a won position
    game = app.state.store.get(gid)
    game.board = Board.from_text("W.B....../........./........./........./.........")
    r = client.post(f"/api/games/{gid}/move", json={"move": "a1b1"})
    assert r.json()["finished"]
    assert app.state.store.session(gid).learned

    # Positions set by hand never feed the model
    gid2 = client.post("/api/games").json()["game_id"]
    client.post(
        f"/api/games/{gid2}/position",
        json={"position": "W.B....../........./........./........./......... w"},
    )
    client.post(f"/api/games/{gid2}/move", json={"move": "a1b1"})
    assert not app.state.store.session(gid2).learned
