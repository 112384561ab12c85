"""Evaluation heuristics and related utilities.

Pure, deterministic, and side-effect free. Scores are from the point of view
of the ``player`` argument: positive favours that player.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from fanorona.engine.rules import generate_moves
from fanorona.engine.topology import COLS, EMPTY, NODES, ROWS, node_id, opponent


# Weights
PIECE_VAL: Final = 100
MOBILITY_VAL: Final = 10
CENTRAL_BONUS: Final = 5
STRONG_BONUS: Final = 3
WEAK_BONUS: Final = 1
CAPTURE_POTENTIAL_VAL: Final = 20

# Terminal scores; mate-style scores shrink with ply so faster wins rank higher
WIN_SCORE: Final = 1_000_000
INF: Final = 10_000_000

CENTRAL_NODES: Final = tuple(
    node_id(r, c) for r in range(1, ROWS - 1) for c in range(1, COLS - 1)
)
STRONG_NODES: Final = tuple(n.id for n in NODES if n.strong)


@dataclass(frozen=True)
class PositionEvaluation:
    material: int
    mobility: int
    position: int
    capture_potential: int

    @property
    def total(self) -> int:
        return self.material + self.mobility + self.position + self.capture_potential


def _side_sum(position, nodes, player: int, bonus: int) -> int:
    score = 0
    for node in nodes:
        owner = position.owner_at(node)
        if owner == EMPTY:
            continue
        score += bonus if owner == player else -bonus
    return score


def material(position, player: int) -> int:
    return (position.count(player) - position.count(opponent(player))) * PIECE_VAL


def mobility(position, player: int) -> int:
    mine = len(generate_moves(position, player))
    theirs = len(generate_moves(position, opponent(player)))
    return (mine - theirs) * MOBILITY_VAL


def evaluate(position, player: int) -> int:
    """Static score used at search leaves.

    Material (100 per piece) and mobility (10 per move) differences, plus
    5 per piece off the board edge and 3 per piece on a strong node.
    """
    score = material(position, player)
    score += mobility(position, player)
    score += _side_sum(position, CENTRAL_NODES, player, CENTRAL_BONUS)
    score += _side_sum(position, STRONG_NODES, player, STRONG_BONUS)
    return score


def evaluate_material_only(position, player: int) -> int:
    """Material plus centralisation; no move generation, for hot loops."""
    return material(position, player) + _side_sum(position, CENTRAL_NODES, player, CENTRAL_BONUS)


def evaluate_position(position, player: int) -> PositionEvaluation:
    """Itemised evaluation for reporting.

    The positional term weights strong nodes 3 and weak nodes 1, and the
    capture potential rewards 20 per piece the side to move could take now.
    """
    pos_score = 0
    for node in NODES:
        owner = position.owner_at(node.id)
        if owner == EMPTY:
            continue
        value = STRONG_BONUS if node.strong else WEAK_BONUS
        pos_score += value if owner == player else -value
    potential = sum(
        m.capture_count * CAPTURE_POTENTIAL_VAL
        for m in generate_moves(position, player)
        if m.is_capture
    )
    return PositionEvaluation(
        material=material(position, player),
        mobility=mobility(position, player),
        position=pos_score,
        capture_potential=potential,
    )
