from __future__ import annotations

from .rules import generate_moves
from .topology import opponent


def perft(position, player: int, depth: int) -> int:
    """Compute the perft node count for ``position`` at ``depth``.

    Definition:
    - depth == 0 returns 1 (the current node).
    - depth > 0 returns the sum over all child positions' perft(depth-1).

    Every step is one ply and sides alternate after each step, so capture
    chains are not followed. ``position`` is any Board or BoardSnapshot; it
    is copied for each child and never mutated.
    """
    if depth < 0:
        raise ValueError("depth must be >= 0")
    if depth == 0:
        return 1

    moves = generate_moves(position, player)
    if depth == 1:
        return len(moves)
    nodes = 0
    for m in moves:
        child = position.copy()
        child.apply_move(m)
        nodes += perft(child, opponent(player), depth - 1)
    return nodes


def perft_divide(position, player: int, depth: int) -> dict:
    """Per-root-move perft counts keyed by move string."""
    if depth < 1:
        raise ValueError("depth must be >= 1")
    out = {}
    for m in generate_moves(position, player):
        child = position.copy()
        child.apply_move(m)
        out[m.to_str()] = perft(child, opponent(player), depth - 1)
    return out
