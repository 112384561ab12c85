from __future__ import annotations

import pytest

from fanorona.engine.board import STARTPOS_TEXT, Board, apply_move, init_board
from fanorona.engine.move import CaptureKind, Move
from fanorona.engine.topology import BLACK, EMPTY, WHITE


def test_startpos_layout() -> None:
    b = init_board()
    assert b.to_text() == STARTPOS_TEXT
    assert b.count(WHITE) == 22
    assert b.count(BLACK) == 22
    assert b.owner_at(22) == EMPTY
    # Middle row alternates around the centre
    assert [b.owner_at(n) for n in range(18, 27)] == [
        WHITE, BLACK, WHITE, BLACK, EMPTY, BLACK, WHITE, BLACK, WHITE,
    ]


def test_text_round_trip_and_digits() -> None:
    text = "........./........./WB......./........./........B"
    assert Board.from_text(text).to_text() == text
    assert Board.from_text("9/9/WB7/9/8B").to_text() == text


@pytest.mark.parametrize(
    "text",
    [
        "",
        "........./........./........./.........",  # four rows
        "........./........./....X..../........./.........",  # bad piece
        "........./........./........../........./.........",  # ten columns
        "........./......../........./........./.........",  # eight columns
    ],
)
def test_from_text_rejects_bad_input(text: str) -> None:
    with pytest.raises(ValueError):
        Board.from_text(text)


def test_apply_move_marks_captured_dead() -> None:
    b = Board.startpos()
    move = Move(13, 22, True, (31, 40), CaptureKind.PERCUSSION)
    apply_move(b, move)
    assert b.owner_at(22) == WHITE
    assert b.owner_at(13) == EMPTY
    assert b.owner_at(31) == EMPTY and b.owner_at(40) == EMPTY
    assert b.count(BLACK) == 20
    # Pieces are kept, only flagged
    assert len(b.pieces) == 44
    assert sum(1 for p in b.pieces if not p.alive) == 2
    moved = b.piece_at(22)
    assert moved is not None and (moved.row, moved.col) == (2, 4)


def test_apply_move_ignores_invalid() -> None:
    b = Board.startpos()
    before = b.to_text()
    apply_move(b, Move(22, 13))  # empty origin
    apply_move(b, Move(13, 12))  # occupied destination
    apply_move(b, Move(-1, 99))
    apply_move(None, Move(13, 22))
    assert b.to_text() == before


def test_copy_is_deep() -> None:
    b = Board.startpos()
    c = b.copy()
    c.apply_move(Move(13, 22, True, (31, 40), CaptureKind.PERCUSSION))
    assert b.to_text() == STARTPOS_TEXT
    assert b.count(BLACK) == 22


def test_place_rejects_occupied() -> None:
    b = Board.empty()
    b.place(4, WHITE)
    with pytest.raises(ValueError):
        b.place(4, BLACK)
    with pytest.raises(ValueError):
        b.place(5, EMPTY)
