from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


ROWS = 5
COLS = 9
NODE_COUNT = ROWS * COLS

# Player / occupancy codes
EMPTY = 0
WHITE = 1
BLACK = -1

Direction = Tuple[int, int]

# N, S, W, E, NW, NE, SW, SE
_STEPS: Tuple[Direction, ...] = (
    (-1, 0),
    (1, 0),
    (0, -1),
    (0, 1),
    (-1, -1),
    (-1, 1),
    (1, -1),
    (1, 1),
)


@dataclass(frozen=True)
class Node:
    """One intersection of the 5x9 board.

    Attributes:
        id (int): Node index, ``row * COLS + col``.
        row (int): Row 0..4 (row 0 is WHITE's home row).
        col (int): Column 0..8.
        strong (bool): Whether diagonal lines pass through this node.
        neighbors (Tuple[int, ...]): Adjacent node ids in ascending order.
    """

    id: int
    row: int
    col: int
    strong: bool
    neighbors: Tuple[int, ...]


def in_bounds(row: int, col: int) -> bool:
    return 0 <= row < ROWS and 0 <= col < COLS


def node_id(row: int, col: int) -> int:
    return row * COLS + col


def row_col(node: int) -> Tuple[int, int]:
    return node // COLS, node % COLS


def is_strong(row: int, col: int) -> bool:
    return (row + col) % 2 == 0


def is_valid_node(node: object) -> bool:
    return isinstance(node, int) and 0 <= node < NODE_COUNT


def opponent(player: int) -> int:
    return -player


def build_topology() -> Tuple[Node, ...]:
    """Build the adjacency graph of the board.

    Orthogonal neighbors are always connected; diagonal neighbors only when
    both endpoints are strong nodes.
    """
    nodes = []
    for row in range(ROWS):
        for col in range(COLS):
            strong = is_strong(row, col)
            neighbors = []
            for i, (dr, dc) in enumerate(_STEPS):
                rr, cc = row + dr, col + dc
                if not in_bounds(rr, cc):
                    continue
                if i >= 4 and not (strong and is_strong(rr, cc)):
                    continue
                neighbors.append(node_id(rr, cc))
            nodes.append(
                Node(
                    id=node_id(row, col),
                    row=row,
                    col=col,
                    strong=strong,
                    neighbors=tuple(sorted(neighbors)),
                )
            )
    return tuple(nodes)


# Immutable graph shared by every board and snapshot
NODES: Tuple[Node, ...] = build_topology()


def are_adjacent(a: int, b: int) -> bool:
    if not (is_valid_node(a) and is_valid_node(b)):
        return False
    return b in NODES[a].neighbors


def direction(from_node: int, to_node: int) -> Optional[Direction]:
    """Return the unit step from ``from_node`` to an adjacent ``to_node``.

    Returns None when the nodes are not connected by a board line.
    """
    if not are_adjacent(from_node, to_node):
        return None
    fr, fc = row_col(from_node)
    tr, tc = row_col(to_node)
    return tr - fr, tc - fc


def node_to_str(node: int) -> str:
    """Convert a node id into board notation (column letter, row number).

    Raises:
        ValueError: If ``node`` is outside 0..44.
    """
    if not is_valid_node(node):
        raise ValueError(f"invalid node index: {node}")
    row, col = row_col(node)
    return chr(ord("a") + col) + str(row + 1)


def str_to_node(s: str) -> int:
    """Parse board notation such as ``"e3"`` into a node id.

    Raises:
        ValueError: If ``s`` does not name a board intersection.
    """
    if len(s) != 2 or s[0] < "a" or s[0] > "i" or s[1] < "1" or s[1] > "5":
        raise ValueError(f"invalid node: {s!r}")
    col = ord(s[0]) - ord("a")
    row = int(s[1]) - 1
    return node_id(row, col)
