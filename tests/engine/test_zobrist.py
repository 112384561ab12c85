from __future__ import annotations

from fanorona.engine.board import Board
from fanorona.engine.rules import classify_move, generate_moves
from fanorona.engine.topology import BLACK, WHITE
from fanorona.engine.zobrist import ZobristKeys, hash_position, update_hash


def test_zobrist_deterministic_same_seed() -> None:
    a = ZobristKeys(123)
    b = ZobristKeys(123)
    assert a.piece_keys == b.piece_keys
    assert a.turn_key == b.turn_key
    assert ZobristKeys(124).piece_keys != a.piece_keys


def test_hash_same_position(keys) -> None:
    b1 = Board.startpos()
    b2 = Board.from_text(b1.to_text())
    assert hash_position(b1, keys) == hash_position(b2, keys)
    assert hash_position(Board.empty(), keys) == 0


def test_turn_key_only_for_black(keys) -> None:
    b = Board.startpos()
    h = hash_position(b, keys)
    assert hash_position(b, keys, turn=WHITE) == h
    assert hash_position(b, keys, turn=BLACK) == h ^ keys.turn_key


def test_colour_matters(keys) -> None:
    w = Board.from_text("W......../........./........./........./.........")
    bl = Board.from_text("B......../........./........./........./.........")
    assert hash_position(w, keys) == keys.key(0, WHITE)
    assert hash_position(bl, keys) == keys.key(0, BLACK)
    assert hash_position(w, keys) != hash_position(bl, keys)


def test_incremental_matches_scratch(keys) -> None:
    b = Board.startpos()
    h = hash_position(b, keys)
    player = WHITE
    for _ in range(4):
        moves = generate_moves(b, player)
        if not moves:
            break
        move = moves[0]
        h = update_hash(h, keys, move, player)
        b.apply_move(move)
        assert h == hash_position(b, keys)
        player = -player


def test_paika_update(keys) -> None:
    b = Board.from_text("W......../........./........./........./........B")
    move = classify_move(b, 0, 10)
    h = update_hash(hash_position(b, keys), keys, move, WHITE)
    b.apply_move(move)
    assert h == hash_position(b, keys)


def test_single_step_changes_hash(keys) -> None:
    before = Board.from_text("........./........./....W..../........./........B")
    after = before.copy()
    after.apply_move(classify_move(after, 22, 23))
    assert hash_position(before, keys) != hash_position(after, keys)
    assert hash_position(after, keys) == hash_position(before, keys) ^ keys.key(22, WHITE) ^ keys.key(23, WHITE)
