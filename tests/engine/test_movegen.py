from __future__ import annotations

from fanorona.engine.board import Board
from fanorona.engine.rules import (
    MAX_MOVES,
    generate_moves,
    has_any_capture_available,
    is_move_valid,
    legal_moves,
)
from fanorona.engine.topology import BLACK, WHITE


def _paths(moves):
    return [(m.from_node, m.to_node) for m in moves]


def test_opening_moves_white() -> None:
    moves = generate_moves(Board.startpos(), WHITE)
    assert _paths(moves) == [(12, 22), (13, 22), (14, 22)]
    assert all(m.is_capture and m.capture_count == 2 for m in moves)


def test_opening_moves_black() -> None:
    moves = generate_moves(Board.startpos(), BLACK)
    assert _paths(moves) == [(21, 22), (23, 22), (30, 22), (31, 22), (32, 22)]
    assert all(m.is_capture for m in moves)
    assert [m.capture_count for m in moves] == [1, 1, 2, 2, 2]


def test_capture_is_mandatory() -> None:
    b = Board.from_text("W.B....../........./........./........./....W....")
    moves = generate_moves(b, WHITE)
    assert _paths(moves) == [(0, 1)]
    assert has_any_capture_available(b, WHITE)
    # A paika step elsewhere is rejected while the capture exists
    assert not is_move_valid(b, 40, 31, WHITE)
    assert is_move_valid(b, 0, 1, WHITE)


def test_paika_when_no_capture() -> None:
    b = Board.from_text("W......../........./........./........./........B")
    moves = generate_moves(b, WHITE)
    assert _paths(moves) == [(0, 1), (0, 9), (0, 10)]
    assert not any(m.is_capture for m in moves)
    assert is_move_valid(b, 0, 10, WHITE)


def test_is_move_valid_basic_rejections() -> None:
    b = Board.startpos()
    assert not is_move_valid(b, 13, 22, BLACK)  # not the mover's piece
    assert not is_move_valid(b, 12, 13, WHITE)  # occupied destination
    assert not is_move_valid(b, 4, 22, WHITE)  # not adjacent
    assert not is_move_valid(b, -1, 22, WHITE)
    assert not is_move_valid(None, 13, 22, WHITE)


def test_generated_moves_are_valid_and_bounded() -> None:
    b = Board.startpos()
    for player in (WHITE, BLACK):
        moves = legal_moves(b, player)
        assert len(moves) <= MAX_MOVES
        for m in moves:
            assert is_move_valid(b, m.from_node, m.to_node, player)


def test_generate_moves_none_board() -> None:
    assert generate_moves(None, WHITE) == []
