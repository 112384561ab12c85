"""
Monte Carlo Tree Search with random playouts.

Features:
- UCB1 selection (unvisited children first)
- Lazy expansion: all children are created on first expansion, then
  visited one by one
- Capture-biased random playouts with a ply cap and a material-based
  reward when the cap is reached
- Node budget and cooperative deadline; both return the best move so far
"""

from __future__ import annotations

import logging
import math
import random
import time
from dataclasses import dataclass, field
from typing import List, Optional

from fanorona.engine.move import INVALID_MOVE, Move
from fanorona.engine.rules import generate_moves
from fanorona.engine.snapshot import BoardSnapshot, to_snapshot
from fanorona.engine.topology import BLACK, WHITE, opponent

from .result import SearchResult


logger = logging.getLogger(__name__)


@dataclass
class MCTSNode:
    """
    Node in the search tree.

    ``player`` is the side to move at this node; rewards stored here are
    from the point of view of the side that moved into it.
    """

    position: BoardSnapshot
    player: int
    move: Optional[Move] = None
    parent: Optional["MCTSNode"] = field(default=None, repr=False)
    children: List["MCTSNode"] = field(default_factory=list, repr=False)
    visits: int = 0
    total_reward: float = 0.0
    fully_expanded: bool = False
    moves: Optional[List[Move]] = field(default=None, repr=False)

    @property
    def mean_reward(self) -> float:
        if self.visits == 0:
            return 0.0
        return self.total_reward / self.visits

    def ucb1(self, exploration: float) -> float:
        """UCB1 score as seen from the parent; unvisited nodes score infinity."""
        if self.visits == 0:
            return math.inf
        parent_visits = self.parent.visits if self.parent is not None else self.visits
        return self.mean_reward + exploration * math.sqrt(
            math.log(max(1, parent_visits)) / self.visits
        )


class _NodeBudgetExceeded(Exception):
    pass


class MCTSSearch:
    """
    UCB1 Monte Carlo Tree Search.

    A fresh tree is built for every ``find_best_move`` call and dropped when
    it returns.
    """

    def __init__(
        self,
        iterations: int = 1000,
        exploration: float = 1.414,
        simulation_depth: int = 50,
        capture_bias: float = 0.7,
        seed: Optional[int] = None,
        max_nodes: int = 200_000,
    ) -> None:
        """
        Args:
            iterations: Number of select/expand/simulate/backup rounds.
            exploration: UCB1 exploration constant.
            simulation_depth: Maximum plies per random playout.
            capture_bias: Probability of playing a capture in a playout when
                one is available.
            seed: Seed for the playout RNG; None draws from system entropy.
            max_nodes: Tree size at which the search stops early.
        """
        self.iterations = iterations
        self.exploration = exploration
        self.simulation_depth = simulation_depth
        self.capture_bias = capture_bias
        self.seed = seed
        self.max_nodes = max_nodes
        self._rng = random.Random(seed)
        self._node_count = 0

    # --- tree phases ---

    def select(self, node: MCTSNode) -> MCTSNode:
        while node.fully_expanded and node.children:
            node = max(node.children, key=lambda c: c.ucb1(self.exploration))
        return node

    def expand(self, node: MCTSNode) -> Optional[MCTSNode]:
        """Return the next unvisited child of ``node``, creating children on first use.

        Returns None for terminal nodes.
        """
        if not node.children:
            if node.position.count(WHITE) == 0 or node.position.count(BLACK) == 0:
                return None
            moves = node.moves if node.moves is not None else generate_moves(
                node.position, node.player
            )
            if not moves:
                return None
            if self._node_count + len(moves) > self.max_nodes:
                raise _NodeBudgetExceeded()
            for m in moves:
                child_pos = node.position.copy()
                child_pos.apply_move(m)
                node.children.append(
                    MCTSNode(position=child_pos, player=opponent(node.player), move=m, parent=node)
                )
            self._node_count += len(moves)

        unvisited = [c for c in node.children if c.visits == 0]
        if not unvisited:
            node.fully_expanded = True
            return None
        if len(unvisited) == 1:
            node.fully_expanded = True
        return unvisited[0]

    def simulate(self, node: MCTSNode) -> float:
        """Random playout from ``node``.

        Returns:
            Reward in [0, 1] for the side that moved into ``node``.
        """
        pos = node.position.copy()
        perspective = opponent(node.player)
        current = node.player
        for _ in range(self.simulation_depth):
            if pos.count(WHITE) == 0 or pos.count(BLACK) == 0:
                break
            moves = generate_moves(pos, current)
            if not moves:
                # Side to move is stuck and loses
                return 0.0 if current == perspective else 1.0
            captures = [m for m in moves if m.is_capture]
            if captures and self._rng.random() < self.capture_bias:
                move = self._rng.choice(captures)
            else:
                move = self._rng.choice(moves)
            pos.apply_move(move)
            current = opponent(current)
        return material_reward(pos, perspective)

    @staticmethod
    def backpropagate(node: Optional[MCTSNode], reward: float) -> None:
        while node is not None:
            node.visits += 1
            node.total_reward += reward
            reward = 1.0 - reward
            node = node.parent

    # --- driver ---

    def find_best_move(
        self,
        position,
        player: int,
        root_moves: Optional[List[Move]] = None,
        deadline: Optional[float] = None,
        iterations: Optional[int] = None,
    ) -> SearchResult:
        """Run the search and return the most visited root move.

        Args:
            position: Board or BoardSnapshot; never mutated.
            player: Side to move at the root.
            root_moves: Candidate root moves (chain continuations); defaults
                to ``generate_moves``.
            deadline: ``time.perf_counter()`` value checked between iterations.
            iterations: Overrides the configured iteration count.

        Returns:
            SearchResult whose ``score`` is the chosen child's mean reward.
        """
        start = time.perf_counter()
        if self.seed is not None:
            self._rng = random.Random(self.seed)
        snap = position.copy() if isinstance(position, BoardSnapshot) else to_snapshot(position)
        root = MCTSNode(position=snap, player=player, moves=root_moves)
        self._node_count = 1
        budget = self.iterations if iterations is None else iterations

        done = 0
        timed_out = False
        try:
            for _ in range(budget):
                if deadline is not None and done > 0 and time.perf_counter() >= deadline:
                    timed_out = True
                    break
                node = self.select(root)
                child = self.expand(node)
                if child is not None:
                    node = child
                self.backpropagate(node, self.simulate(node))
                done += 1
        except _NodeBudgetExceeded:
            logger.warning("mcts node budget %d reached after %d iterations", self.max_nodes, done)
        except MemoryError:
            logger.warning("mcts out of memory after %d iterations", done)

        best = most_visited_child(root)
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        if best is None:
            moves = root_moves if root_moves is not None else generate_moves(snap, player)
            best_move = moves[0] if moves else INVALID_MOVE
            score = None
        else:
            best_move = best.move if best.move is not None else INVALID_MOVE
            score = best.mean_reward
        logger.debug(
            "mcts iterations=%d nodes=%d best=%s time_ms=%d",
            done,
            self._node_count,
            best_move.to_str(),
            elapsed_ms,
        )
        return SearchResult(
            best_move=best_move,
            score=score,
            nodes=self._node_count,
            time_ms=elapsed_ms,
            timed_out=timed_out,
            strategy="mcts",
            iterations=done,
        )


def most_visited_child(node: MCTSNode) -> Optional[MCTSNode]:
    best: Optional[MCTSNode] = None
    for child in node.children:
        if best is None or child.visits > best.visits:
            best = child
    return best


def material_reward(position: BoardSnapshot, player: int) -> float:
    """Reward for ``player`` from the piece balance of a non-terminal position."""
    mine = position.count(player)
    theirs = position.count(opponent(player))
    if theirs == 0 and mine > 0:
        return 1.0
    if mine == 0:
        return 0.0
    return 0.5 + 0.5 * (mine - theirs) / (mine + theirs)
