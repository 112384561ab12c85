from __future__ import annotations

from fanorona.engine.board import Board
from fanorona.engine.rules import GameOutcome, check_game_over, count_alive
from fanorona.engine.snapshot import to_snapshot
from fanorona.engine.topology import BLACK, WHITE


def test_side_without_pieces_loses() -> None:
    b = Board.from_text("WWW....../........./........./........./.........")
    assert check_game_over(b) == GameOutcome(True, WHITE)
    b = Board.from_text("........./........./........./........./BB.......")
    assert check_game_over(b) == GameOutcome(True, BLACK)


def test_blocked_side_loses() -> None:
    # WHITE on a1 is walled in by b1, a2 and b2
    b = Board.from_text("WB......./BB......./........./........./.........")
    assert check_game_over(b) == GameOutcome(True, BLACK)


def test_game_continues_at_opening() -> None:
    outcome = check_game_over(Board.startpos())
    assert not outcome.finished
    assert outcome.winner is None


def test_check_game_over_on_snapshot(keys) -> None:
    snap = to_snapshot(Board.from_text("W......../........./........./........./........."), keys)
    assert check_game_over(snap) == GameOutcome(True, WHITE)


def test_count_alive() -> None:
    b = Board.startpos()
    assert count_alive(b, WHITE) == 22
    assert count_alive(b, BLACK) == 22
    assert count_alive(None, WHITE) == 0
    assert not check_game_over(None).finished
