from __future__ import annotations

from typing import List, Optional, TYPE_CHECKING

from .move import Move
from .topology import BLACK, NODE_COUNT, WHITE

if TYPE_CHECKING:  # pragma: no cover
    from .board import Board
    from .snapshot import BoardSnapshot


MASK64 = 0xFFFFFFFFFFFFFFFF
DEFAULT_SEED = 0xC0FFEE_F00D_DEAD


class _SplitMix64:
    def __init__(self, seed: int) -> None:
        self.state = seed & MASK64

    def next(self) -> int:
        # Deterministic 64-bit SplitMix64
        self.state = (self.state + 0x9E3779B97F4A7C15) & MASK64
        z = self.state
        z = (z ^ (z >> 30)) * 0xBF58476D1CE4E5B9 & MASK64
        z = (z ^ (z >> 27)) * 0x94D049BB133111EB & MASK64
        z = z ^ (z >> 31)
        return z & MASK64


def color_index(player: int) -> int:
    return 0 if player == WHITE else 1


class ZobristKeys:
    """Zobrist hashing seeds.

    Table layout:
    - piece_keys[45][2]: per node, colour index 0 = WHITE, 1 = BLACK
    - turn_key: toggle for BLACK to move

    Instances are plain values: build one (seeded) and pass it to whatever
    needs to hash positions. Equal seeds give equal tables.
    """

    piece_keys: List[List[int]]
    turn_key: int

    def __init__(self, seed: int = DEFAULT_SEED) -> None:
        self.seed = seed
        prng = _SplitMix64(seed)
        self.piece_keys = [[prng.next(), prng.next()] for _ in range(NODE_COUNT)]
        self.turn_key = prng.next()

    def key(self, node: int, player: int) -> int:
        return self.piece_keys[node][color_index(player)]


def hash_position(
    position: "Board | BoardSnapshot", keys: ZobristKeys, turn: Optional[int] = None
) -> int:
    """Compute the 64-bit Zobrist hash of a position from scratch.

    The result depends on occupancy only, unless ``turn`` is given, in which
    case the turn key is folded in for BLACK to move.
    """
    h = 0
    for node in range(NODE_COUNT):
        owner = position.owner_at(node)
        if owner:
            h ^= keys.piece_keys[node][color_index(owner)]
    if turn == BLACK:
        h ^= keys.turn_key
    return h & MASK64


def update_hash(h: int, keys: ZobristKeys, move: Move, mover: int) -> int:
    """Incrementally apply ``move`` (played by ``mover``) to hash ``h``."""
    mine = color_index(mover)
    theirs = 1 - mine
    h ^= keys.piece_keys[move.from_node][mine]
    h ^= keys.piece_keys[move.to_node][mine]
    for node in move.captured:
        h ^= keys.piece_keys[node][theirs]
    return h & MASK64
