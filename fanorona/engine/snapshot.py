from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .board import PLAYER_TO_CHAR, Board
from .move import Move
from .topology import BLACK, COLS, EMPTY, NODE_COUNT, ROWS, WHITE, is_valid_node
from .zobrist import ZobristKeys, hash_position, update_hash


@dataclass
class BoardSnapshot:
    """Flat, cheaply copyable projection of a board used by the searches.

    ``owners[node]`` is the signed owner (WHITE, BLACK or EMPTY) of each node.
    ``hash`` covers occupancy only; searches fold the side to move in
    themselves.
    """

    owners: List[int] = field(default_factory=lambda: [EMPTY] * NODE_COUNT)
    white_count: int = 0
    black_count: int = 0
    hash: int = 0
    keys: Optional[ZobristKeys] = None

    def owner_at(self, node: int) -> int:
        if not is_valid_node(node):
            return EMPTY
        return self.owners[node]

    def is_alive(self, node: int) -> bool:
        return self.owner_at(node) != EMPTY

    def count(self, player: int) -> int:
        if player == WHITE:
            return self.white_count
        if player == BLACK:
            return self.black_count
        return 0

    @property
    def piece_count(self) -> int:
        return self.white_count + self.black_count

    def copy(self) -> "BoardSnapshot":
        return BoardSnapshot(
            owners=list(self.owners),
            white_count=self.white_count,
            black_count=self.black_count,
            hash=self.hash,
            keys=self.keys,
        )

    def apply_move(self, move: Move) -> None:
        """Play ``move`` on the snapshot, keeping counts and hash in step.

        Moves with a bad origin or destination are ignored, like
        ``Board.apply_move``.
        """
        if not (is_valid_node(move.from_node) and is_valid_node(move.to_node)):
            return
        mover = self.owners[move.from_node]
        if mover == EMPTY or self.owners[move.to_node] != EMPTY:
            return
        self.owners[move.to_node] = mover
        self.owners[move.from_node] = EMPTY
        removed = []
        for node in move.captured:
            if is_valid_node(node) and self.owners[node] == -mover:
                self.owners[node] = EMPTY
                removed.append(node)
        if mover == WHITE:
            self.black_count -= len(removed)
        else:
            self.white_count -= len(removed)
        if self.keys is not None:
            applied = move if len(removed) == len(move.captured) else Move(
                move.from_node, move.to_node, bool(removed), tuple(removed), move.kind
            )
            self.hash = update_hash(self.hash, self.keys, applied, mover)

    def to_text(self) -> str:
        return "/".join(
            "".join(PLAYER_TO_CHAR[self.owners[r * COLS + c]] for c in range(COLS))
            for r in range(ROWS)
        )


def to_snapshot(board: Optional[Board], keys: Optional[ZobristKeys] = None) -> BoardSnapshot:
    """Project a board onto a snapshot.

    Args:
        board (Board | None): Source board. ``None`` gives an empty snapshot.
        keys (ZobristKeys | None): Keys used for the occupancy hash; without
            keys the hash stays 0.

    Returns:
        BoardSnapshot: Independent snapshot of the board.
    """
    snap = BoardSnapshot(keys=keys)
    if board is None:
        return snap
    for node in range(NODE_COUNT):
        snap.owners[node] = board.owner_at(node)
    snap.white_count = board.count(WHITE)
    snap.black_count = board.count(BLACK)
    if keys is not None:
        snap.hash = hash_position(snap, keys)
    return snap


def apply_move_to_snapshot(snapshot: Optional[BoardSnapshot], move: Optional[Move]) -> None:
    if snapshot is None or move is None:
        return
    snapshot.apply_move(move)
