from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

from .board import STARTPOS_TEXT, Board
from .move import Move
from .rules import (
    CaptureChain,
    GameOutcome,
    check_game_over,
    classify_move,
    has_additional_captures,
    is_move_valid,
    legal_moves,
)
from .topology import BLACK, WHITE, opponent


SIDE_TO_CHAR = {WHITE: "w", BLACK: "b"}
CHAR_TO_SIDE = {"w": WHITE, "b": BLACK}


@dataclass
class Game:
    """Game wrapper around a board with turn and capture-chain handling.

    Responsibility: track board state and side to move, expose legal moves,
    apply moves (continuing or ending capture chains), undo.
    """

    board: Board
    side_to_move: int = WHITE
    chain: CaptureChain = field(default_factory=CaptureChain)
    move_stack: List[Tuple[int, Move]] = field(default_factory=list)
    _undo: List[Tuple[Board, int, CaptureChain]] = field(default_factory=list, repr=False)
    start_text: str = ""

    def __post_init__(self) -> None:
        if not self.start_text:
            self.start_text = self.to_text()

    @classmethod
    def new(cls) -> "Game":
        return cls(board=Board.startpos())

    @classmethod
    def from_text(cls, text: str) -> "Game":
        """Create a game from ``"<rows> w|b"``; the side defaults to WHITE."""
        parts = text.strip().split()
        if not parts or len(parts) > 2:
            raise ValueError("position must be '<rows> [w|b]'")
        side = WHITE
        if len(parts) == 2:
            if parts[1] not in CHAR_TO_SIDE:
                raise ValueError(f"invalid side to move: {parts[1]!r}")
            side = CHAR_TO_SIDE[parts[1]]
        return cls(board=Board.from_text(parts[0]), side_to_move=side)

    def to_text(self) -> str:
        return f"{self.board.to_text()} {SIDE_TO_CHAR[self.side_to_move]}"

    @property
    def started_from_opening(self) -> bool:
        return self.start_text == f"{STARTPOS_TEXT} w"

    def legal_moves(self) -> List[Move]:
        return legal_moves(self.board, self.side_to_move, self.chain)

    def apply_move(self, move: Move) -> Move:
        """Validate and play one step for the side to move.

        After a capture the same side keeps the turn while the piece can
        capture again; otherwise the turn passes.

        Returns:
            Move: The move as classified on the current board.

        Raises:
            ValueError: If the step is not legal here.
        """
        if not is_move_valid(
            self.board, move.from_node, move.to_node, self.side_to_move, self.chain
        ):
            raise ValueError("illegal move")
        played = classify_move(self.board, move.from_node, move.to_node)
        self._undo.append((self.board.copy(), self.side_to_move, self.chain.copy()))
        self.board.apply_move(played)
        self.move_stack.append((self.side_to_move, played))

        if played.is_capture:
            self.chain.record(played)
            if has_additional_captures(self.board, played.to_node, self.chain):
                return played
        self._pass_turn()
        return played

    def end_turn(self) -> None:
        """Stop the current capture chain and hand the turn over."""
        if not self.chain.active:
            raise ValueError("no capture chain in progress")
        self._undo.append((self.board.copy(), self.side_to_move, self.chain.copy()))
        self._pass_turn()

    def _pass_turn(self) -> None:
        self.chain.reset()
        self.side_to_move = opponent(self.side_to_move)

    def undo_move(self) -> None:
        if not self.move_stack:
            raise ValueError("no moves to undo")
        # end_turn pushes a snapshot without a move; unwind it together with the move
        while self._undo:
            board, side, chain = self._undo.pop()
            self.board, self.side_to_move, self.chain = board, side, chain
            if len(self._undo) < len(self.move_stack):
                break
        self.move_stack.pop()

    def outcome(self) -> GameOutcome:
        return check_game_over(self.board)

    def played_moves(self) -> List[Move]:
        return [m for _, m in self.move_stack]

    def move_history(self) -> List[str]:
        return [m.to_str() for _, m in self.move_stack]
