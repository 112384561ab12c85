from __future__ import annotations

from fanorona.engine.board import Board
from fanorona.engine.topology import BLACK, WHITE
from fanorona.eval import evaluate, evaluate_material_only, evaluate_position


def test_opening_score_breakdown() -> None:
    b = Board.startpos()
    # material 0, mobility (3 - 5) * 10, centre (9 - 11) * 5, strong nodes (13 - 9) * 3
    assert evaluate(b, WHITE) == -18


def test_evaluate_is_antisymmetric() -> None:
    for text in (
        "WWWWWWWWW/WWWWWWWWW/WBWB.BWBW/BBBBBBBBB/BBBBBBBBB",
        "W.B....../........./....W..../.B......./........B",
    ):
        b = Board.from_text(text)
        assert evaluate(b, WHITE) == -evaluate(b, BLACK)
        assert evaluate_material_only(b, WHITE) == -evaluate_material_only(b, BLACK)


def test_material_dominates() -> None:
    ahead = Board.from_text("WW......./........./........./........./........B")
    assert evaluate(ahead, WHITE) > 0
    assert evaluate_material_only(ahead, WHITE) == 100


def test_position_breakdown() -> None:
    ev = evaluate_position(Board.startpos(), WHITE)
    assert ev.material == 0
    assert ev.mobility == -20
    # Three captures of two pieces each
    assert ev.capture_potential == 120
    assert ev.total == ev.material + ev.mobility + ev.position + ev.capture_potential
