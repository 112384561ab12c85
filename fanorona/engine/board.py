from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Iterator, List, Optional

from .move import Move
from .topology import (
    BLACK,
    COLS,
    EMPTY,
    NODE_COUNT,
    NODES,
    ROWS,
    WHITE,
    is_valid_node,
    node_id,
    row_col,
)


logger = logging.getLogger(__name__)


PIECES_PER_SIDE = 22
STARTPOS_TEXT = "WWWWWWWWW/WWWWWWWWW/WBWB.BWBW/BBBBBBBBB/BBBBBBBBB"

CHAR_TO_PLAYER = {"W": WHITE, "B": BLACK, ".": EMPTY}
PLAYER_TO_CHAR = {WHITE: "W", BLACK: "B", EMPTY: "."}


@dataclass
class Piece:
    id: int
    owner: int
    row: int
    col: int
    alive: bool = True


@dataclass
class Board:
    """Occupancy over the shared topology.

    Notes:
    - The board owns every piece in ``pieces``; ``slots[node]`` is the index
      of the live piece standing on ``node`` or None.
    - Capturing marks a piece dead and clears its slot. Pieces are never
      removed from ``pieces``, so piece ids stay stable for the whole game.
    """

    pieces: List[Piece] = field(default_factory=list)
    slots: List[Optional[int]] = field(default_factory=lambda: [None] * NODE_COUNT)

    @classmethod
    def startpos(cls) -> "Board":
        """Create a board with the standard opening layout.

        Rows 0 and 1 hold WHITE, rows 3 and 4 hold BLACK, and the middle row
        alternates ``W B W B . B W B W`` around the empty centre.
        """
        return cls.from_text(STARTPOS_TEXT)

    @classmethod
    def empty(cls) -> "Board":
        return cls()

    @classmethod
    def from_text(cls, text: str) -> "Board":
        """Create a board from its text placement.

        Args:
            text (str): Five rows separated by ``/``, row 0 first. Each row
                uses ``W``, ``B`` and ``.`` (digits stand for runs of empty
                nodes).

        Returns:
            Board: Board with the described occupancy.

        Raises:
            ValueError: If the text does not describe exactly 5 rows of 9.
        """
        if not text or not isinstance(text, str):
            raise ValueError("position must be a non-empty string")
        rows = text.strip().split("/")
        if len(rows) != ROWS:
            raise ValueError(f"position must have {ROWS} rows")
        board = cls()
        for r, row_text in enumerate(rows):
            c = 0
            for ch in row_text:
                if ch.isdigit():
                    n = int(ch)
                    if n < 1 or n > COLS:
                        raise ValueError("invalid empty count in position")
                    c += n
                    continue
                if ch not in CHAR_TO_PLAYER:
                    raise ValueError(f"invalid piece in position: {ch!r}")
                if c >= COLS:
                    raise ValueError("too many nodes in position row")
                player = CHAR_TO_PLAYER[ch]
                if player != EMPTY:
                    board.place(node_id(r, c), player)
                c += 1
            if c != COLS:
                raise ValueError(f"row does not sum to {COLS} nodes")
        return board

    def to_text(self) -> str:
        rows = []
        for r in range(ROWS):
            rows.append(
                "".join(PLAYER_TO_CHAR[self.owner_at(node_id(r, c))] for c in range(COLS))
            )
        return "/".join(rows)

    def place(self, node: int, player: int) -> None:
        """Put a new piece for ``player`` on an empty node."""
        if not is_valid_node(node) or player not in (WHITE, BLACK):
            raise ValueError(f"cannot place {player!r} on {node!r}")
        if self.slots[node] is not None:
            raise ValueError(f"node {node} is occupied")
        row, col = row_col(node)
        self.pieces.append(Piece(id=len(self.pieces) + 1, owner=player, row=row, col=col))
        self.slots[node] = len(self.pieces) - 1

    def piece_at(self, node: int) -> Optional[Piece]:
        if not is_valid_node(node):
            return None
        idx = self.slots[node]
        if idx is None:
            return None
        piece = self.pieces[idx]
        return piece if piece.alive else None

    def owner_at(self, node: int) -> int:
        piece = self.piece_at(node)
        return piece.owner if piece is not None else EMPTY

    def count(self, player: int) -> int:
        return sum(1 for p in self.pieces if p.alive and p.owner == player)

    @property
    def piece_count(self) -> int:
        return sum(1 for p in self.pieces if p.alive)

    def nodes_of(self, player: int) -> Iterator[int]:
        for node in range(NODE_COUNT):
            if self.owner_at(node) == player:
                yield node

    def is_strong(self, node: int) -> bool:
        return NODES[node].strong

    def apply_move(self, move: Move) -> None:
        """Relocate the moving piece and mark captured pieces dead.

        Structurally invalid moves (bad ids, empty origin, occupied
        destination) are ignored.
        """
        if not (is_valid_node(move.from_node) and is_valid_node(move.to_node)):
            return
        idx = self.slots[move.from_node]
        if idx is None or not self.pieces[idx].alive:
            return
        if self.slots[move.to_node] is not None:
            return
        piece = self.pieces[idx]
        self.slots[move.to_node] = idx
        self.slots[move.from_node] = None
        piece.row, piece.col = row_col(move.to_node)

        if move.is_capture:
            for node in move.captured:
                if not is_valid_node(node):
                    continue
                cidx = self.slots[node]
                if cidx is None:
                    continue
                self.pieces[cidx].alive = False
                self.slots[node] = None

    def copy(self) -> "Board":
        return Board(
            pieces=[Piece(p.id, p.owner, p.row, p.col, p.alive) for p in self.pieces],
            slots=list(self.slots),
        )

    def __str__(self) -> str:
        lines = ["   " + " ".join(chr(ord("a") + c) for c in range(COLS))]
        for r in range(ROWS - 1, -1, -1):
            cells = " ".join(PLAYER_TO_CHAR[self.owner_at(node_id(r, c))] for c in range(COLS))
            lines.append(f"{r + 1}  {cells}")
        return "\n".join(lines)


def init_board() -> Board:
    return Board.startpos()


def apply_move(board: Optional[Board], move: Optional[Move]) -> None:
    if board is None or move is None:
        return
    board.apply_move(move)
