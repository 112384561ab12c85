from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .move import INVALID_MOVE, MAX_CAPTURED, CaptureKind, Move
from .topology import (
    BLACK,
    EMPTY,
    NODES,
    WHITE,
    Direction,
    direction,
    in_bounds,
    is_valid_node,
    node_id,
    opponent,
    row_col,
)


MAX_MOVES = 512
MAX_CHAIN_VISITED = 32

NO_CAPTURE: Tuple[CaptureKind, Tuple[int, ...]] = (CaptureKind.PAIKA, ())


@dataclass(frozen=True)
class GameOutcome:
    finished: bool
    winner: Optional[int] = None


@dataclass
class CaptureChain:
    """State of a capture sequence within one turn.

    Attributes:
        origin (int | None): Node the capturing piece now stands on, or None
            when no chain is in progress.
        last_direction (Direction | None): Direction of the previous capture.
        visited (List[int]): Nodes the capturing piece has occupied this turn,
            starting node included.
    """

    origin: Optional[int] = None
    last_direction: Optional[Direction] = None
    visited: List[int] = field(default_factory=list)

    @property
    def active(self) -> bool:
        return self.origin is not None

    def reset(self) -> None:
        self.origin = None
        self.last_direction = None
        self.visited = []

    def record(self, move: Move) -> None:
        """Extend the chain with a capture that was just played."""
        if not self.active:
            self.visited = [move.from_node]
        self.origin = move.to_node
        self.last_direction = direction(move.from_node, move.to_node)
        if len(self.visited) < MAX_CHAIN_VISITED:
            self.visited.append(move.to_node)

    def copy(self) -> "CaptureChain":
        return CaptureChain(self.origin, self.last_direction, list(self.visited))


def _scan(position, start: int, step: Direction, victim: int) -> Tuple[int, ...]:
    # Contiguous run of ``victim`` pieces starting at ``start``
    row, col = row_col(start)
    dr, dc = step
    run = []
    while in_bounds(row, col) and len(run) < MAX_CAPTURED:
        node = node_id(row, col)
        if position.owner_at(node) != victim:
            break
        run.append(node)
        row += dr
        col += dc
    return tuple(run)


def detect_capture(position, from_node: int, to_node: int) -> Tuple[CaptureKind, Tuple[int, ...]]:
    """Classify the capture a single step would make.

    Percussion (approach) is checked first: the line of opposing pieces
    directly beyond the destination. Otherwise aspiration (withdrawal): the
    line directly behind the origin.

    Args:
        position: Board or BoardSnapshot.
        from_node (int): Node holding the moving piece.
        to_node (int): Empty node adjacent to ``from_node``.

    Returns:
        Tuple[CaptureKind, Tuple[int, ...]]: Capture kind and captured node
        ids, nearest first. ``(PAIKA, ())`` when nothing is captured or the
        step itself is not possible.
    """
    if position is None:
        return NO_CAPTURE
    if not (is_valid_node(from_node) and is_valid_node(to_node)):
        return NO_CAPTURE
    mover = position.owner_at(from_node)
    if mover == EMPTY or position.owner_at(to_node) != EMPTY:
        return NO_CAPTURE
    step = direction(from_node, to_node)
    if step is None:
        return NO_CAPTURE
    victim = opponent(mover)
    dr, dc = step

    tr, tc = row_col(to_node)
    if in_bounds(tr + dr, tc + dc):
        run = _scan(position, node_id(tr + dr, tc + dc), step, victim)
        if run:
            return CaptureKind.PERCUSSION, run

    fr, fc = row_col(from_node)
    if in_bounds(fr - dr, fc - dc):
        run = _scan(position, node_id(fr - dr, fc - dc), (-dr, -dc), victim)
        if run:
            return CaptureKind.ASPIRATION, run

    return NO_CAPTURE


def classify_move(position, from_node: int, to_node: int) -> Move:
    """Build the full ``Move`` for a step, or ``INVALID_MOVE`` if it cannot be played."""
    if position is None or direction(from_node, to_node) is None:
        return INVALID_MOVE
    if position.owner_at(from_node) == EMPTY or position.owner_at(to_node) != EMPTY:
        return INVALID_MOVE
    kind, captured = detect_capture(position, from_node, to_node)
    return Move(from_node, to_node, bool(captured), captured, kind)


def _steps_for(position, player: int):
    for node in NODES:
        if position.owner_at(node.id) != player:
            continue
        for nb in node.neighbors:
            if position.owner_at(nb) == EMPTY:
                yield classify_move(position, node.id, nb)


def generate_moves(position, player: int) -> List[Move]:
    """Generate the moves ``player`` may start a turn with.

    Capturing is mandatory: when any capture exists only captures are
    returned. Moves are ordered by origin id, then destination id.
    """
    if position is None or player not in (WHITE, BLACK):
        return []
    captures: List[Move] = []
    paika: List[Move] = []
    for move in _steps_for(position, player):
        (captures if move.is_capture else paika).append(move)
    moves = captures if captures else paika
    return moves[:MAX_MOVES]


def has_any_capture_available(position, player: int) -> bool:
    if position is None:
        return False
    return any(move.is_capture for move in _steps_for(position, player))


def _continuations(position, node: int, chain: Optional[CaptureChain]) -> List[Move]:
    moves = []
    for nb in NODES[node].neighbors:
        if position.owner_at(nb) != EMPTY:
            continue
        if chain is not None and chain.active:
            if nb in chain.visited or direction(node, nb) == chain.last_direction:
                continue
        move = classify_move(position, node, nb)
        if move.is_capture:
            moves.append(move)
    return moves


def is_move_valid(
    position, from_node: int, to_node: int, player: int, chain: Optional[CaptureChain] = None
) -> bool:
    """Check a step against the rules for ``player``.

    Outside a chain a paika step is only legal when no capture exists
    anywhere for ``player``. Inside an active chain the step must start at
    the chain origin, capture, avoid visited nodes and change direction.
    """
    if position is None:
        return False
    if not (is_valid_node(from_node) and is_valid_node(to_node)):
        return False
    if position.owner_at(from_node) != player or position.owner_at(to_node) != EMPTY:
        return False
    step = direction(from_node, to_node)
    if step is None:
        return False
    _, captured = detect_capture(position, from_node, to_node)

    if chain is not None and chain.active:
        if from_node != chain.origin or not captured:
            return False
        if to_node in chain.visited:
            return False
        return step != chain.last_direction

    if not captured and has_any_capture_available(position, player):
        return False
    return True


def has_additional_captures(position, node: int, chain: Optional[CaptureChain] = None) -> bool:
    """Whether the piece on ``node`` can capture again under the chain restrictions."""
    if position is None or not is_valid_node(node):
        return False
    if position.owner_at(node) == EMPTY:
        return False
    return bool(_continuations(position, node, chain))


def chain_moves(position, player: int, chain: CaptureChain) -> List[Move]:
    if position is None or chain is None or not chain.active:
        return []
    if position.owner_at(chain.origin) != player:
        return []
    return _continuations(position, chain.origin, chain)


def legal_moves(position, player: int, chain: Optional[CaptureChain] = None) -> List[Move]:
    if chain is not None and chain.active:
        return chain_moves(position, player, chain)
    return generate_moves(position, player)


def count_alive(position, player: int) -> int:
    if position is None:
        return 0
    return position.count(player)


def check_game_over(position) -> GameOutcome:
    """Decide whether the game has ended.

    A side without pieces or without a legal move loses; when neither side
    can move the game is drawn.
    """
    if position is None:
        return GameOutcome(False)
    white = position.count(WHITE)
    black = position.count(BLACK)
    if white == 0 and black == 0:
        return GameOutcome(True)
    if white == 0:
        return GameOutcome(True, BLACK)
    if black == 0:
        return GameOutcome(True, WHITE)

    white_stuck = not generate_moves(position, WHITE)
    black_stuck = not generate_moves(position, BLACK)
    if white_stuck and black_stuck:
        return GameOutcome(True)
    if white_stuck:
        return GameOutcome(True, BLACK)
    if black_stuck:
        return GameOutcome(True, WHITE)
    return GameOutcome(False)
