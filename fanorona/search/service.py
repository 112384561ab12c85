from __future__ import annotations

import logging
import time
import warnings
from dataclasses import dataclass, replace
from enum import Enum, IntEnum
from typing import Dict, List, Optional

from fanorona.engine.board import Board
from fanorona.engine.move import INVALID_MOVE, Move
from fanorona.engine.rules import CaptureChain, legal_moves
from fanorona.engine.snapshot import BoardSnapshot, to_snapshot
from fanorona.engine.topology import BLACK, WHITE
from fanorona.engine.zobrist import DEFAULT_SEED, ZobristKeys

from .markov import DEFAULT_TABLE_SIZE, MarkovModel
from .mcts import MCTSSearch
from .minimax import QUIESCENCE_DEPTH, MinimaxSearch
from .result import SearchResult
from .transposition import TranspositionTable


logger = logging.getLogger(__name__)


class Strategy(str, Enum):
    MINIMAX = "minimax"
    MCTS = "mcts"
    MARKOV = "markov"
    HYBRID = "hybrid"


class Difficulty(IntEnum):
    EASY = 1
    MEDIUM = 2
    HARD = 3


DEPTH_BY_DIFFICULTY: Dict[Difficulty, int] = {
    Difficulty.EASY: 2,
    Difficulty.MEDIUM: 4,
    Difficulty.HARD: 6,
}


class SearchInconsistencyWarning(RuntimeWarning):
    """A strategy proposed a move outside the legal root set."""


@dataclass
class EngineConfig:
    tt_size_mb: int = 64
    mcts_iterations: int = 1000
    mcts_exploration: float = 1.414
    mcts_simulation_depth: int = 50
    mcts_capture_bias: float = 0.7
    mcts_max_nodes: int = 200_000
    quiescence_depth: int = QUIESCENCE_DEPTH
    hybrid_mcts_iterations: int = 500
    markov_table_size: int = DEFAULT_TABLE_SIZE
    # Hybrid: more than opening_threshold pieces -> markov,
    # fewer than endgame_threshold -> minimax, otherwise mcts
    opening_threshold: int = 30
    endgame_threshold: int = 15
    movetime_ms: Optional[int] = None
    seed: Optional[int] = None
    zobrist_seed: int = DEFAULT_SEED


def _allocate_tt(size_mb: int) -> Optional[TranspositionTable]:
    if size_mb <= 0:
        logger.info("transposition table disabled")
        return None
    try:
        return TranspositionTable(size_mb)
    except MemoryError:
        logger.warning("cannot allocate %d MB transposition table, searching without it", size_mb)
        return None


class MinimaxStrategy:
    name = "minimax"

    def __init__(
        self,
        depth: int,
        tt: Optional[TranspositionTable],
        keys: ZobristKeys,
        quiescence_depth: int = QUIESCENCE_DEPTH,
    ) -> None:
        self.depth = depth
        self.searcher = MinimaxSearch(tt=tt, keys=keys, quiescence_depth=quiescence_depth)

    def search(
        self,
        position: BoardSnapshot,
        player: int,
        root_moves: List[Move],
        deadline: Optional[float] = None,
    ) -> SearchResult:
        return self.searcher.find_best_move(
            position, player, self.depth, root_moves=root_moves, deadline=deadline
        )


class MCTSStrategy:
    name = "mcts"

    def __init__(self, config: EngineConfig, iterations: Optional[int] = None) -> None:
        self.searcher = MCTSSearch(
            iterations=config.mcts_iterations if iterations is None else iterations,
            exploration=config.mcts_exploration,
            simulation_depth=config.mcts_simulation_depth,
            capture_bias=config.mcts_capture_bias,
            seed=config.seed,
            max_nodes=config.mcts_max_nodes,
        )

    def search(
        self,
        position: BoardSnapshot,
        player: int,
        root_moves: List[Move],
        deadline: Optional[float] = None,
    ) -> SearchResult:
        return self.searcher.find_best_move(position, player, root_moves=root_moves, deadline=deadline)


class MarkovStrategy:
    name = "markov"

    def __init__(self, model: MarkovModel) -> None:
        self.model = model

    def search(
        self,
        position: BoardSnapshot,
        player: int,
        root_moves: List[Move],
        deadline: Optional[float] = None,
    ) -> SearchResult:
        return self.model.find_best_move(position, player, root_moves=root_moves)


class HybridStrategy:
    """Markov in the opening, MCTS in the middlegame, minimax in the endgame."""

    name = "hybrid"

    def __init__(
        self,
        config: EngineConfig,
        depth: int,
        tt: Optional[TranspositionTable],
        keys: ZobristKeys,
        model: MarkovModel,
    ) -> None:
        self.config = config
        self.markov = MarkovStrategy(model)
        self.mcts = MCTSStrategy(config, iterations=config.hybrid_mcts_iterations)
        self.minimax = MinimaxStrategy(depth, tt, keys, config.quiescence_depth)

    def pick(self, position: BoardSnapshot):
        pieces = position.count(WHITE) + position.count(BLACK)
        if pieces > self.config.opening_threshold:
            return self.markov
        if pieces < self.config.endgame_threshold:
            return self.minimax
        return self.mcts

    def search(
        self,
        position: BoardSnapshot,
        player: int,
        root_moves: List[Move],
        deadline: Optional[float] = None,
    ) -> SearchResult:
        chosen = self.pick(position)
        logger.debug("hybrid picked %s", chosen.name)
        return chosen.search(position, player, root_moves, deadline)


class AiEngine:
    """Computer player bound to one side, one strategy and one difficulty.

    ``find_best_move`` never raises: every failure path is logged and
    answered with the first legal move (or ``INVALID_MOVE`` when there is
    none). Owns its transposition table and Markov model; not thread-safe.

    The constructor raises ``ValueError`` for an unknown strategy,
    difficulty or player; ``create_engine`` turns that into a disabled
    engine instead.
    """

    def __init__(
        self,
        strategy: Strategy,
        difficulty: Difficulty,
        player: int,
        config: Optional[EngineConfig] = None,
        keys: Optional[ZobristKeys] = None,
        markov_model: Optional[MarkovModel] = None,
    ) -> None:
        if player not in (WHITE, BLACK):
            raise ValueError(f"invalid player: {player!r}")
        self.strategy = Strategy(strategy)
        self.difficulty = Difficulty(difficulty)
        self.player = player
        self.config = config if config is not None else EngineConfig()
        self.keys = keys if keys is not None else ZobristKeys(self.config.zobrist_seed)
        self.depth = DEPTH_BY_DIFFICULTY[self.difficulty]
        self.tt: Optional[TranspositionTable] = None
        self.markov: Optional[MarkovModel] = markov_model
        self.last_result: Optional[SearchResult] = None
        self.closed = False

        if self.strategy in (Strategy.MINIMAX, Strategy.HYBRID):
            self.tt = _allocate_tt(self.config.tt_size_mb)
        if self.strategy in (Strategy.MARKOV, Strategy.HYBRID) and self.markov is None:
            self.markov = MarkovModel(self.config.markov_table_size, keys=self.keys)

        if self.strategy == Strategy.MINIMAX:
            self._impl = MinimaxStrategy(
                self.depth, self.tt, self.keys, self.config.quiescence_depth
            )
        elif self.strategy == Strategy.MCTS:
            self._impl = MCTSStrategy(self.config)
        elif self.strategy == Strategy.MARKOV:
            self._impl = MarkovStrategy(self.markov)
        else:
            self._impl = HybridStrategy(self.config, self.depth, self.tt, self.keys, self.markov)
        logger.info(
            "engine created: strategy=%s difficulty=%s player=%s",
            self.strategy.value,
            self.difficulty.name.lower(),
            "white" if player == WHITE else "black",
        )

    def find_best_move(self, board: Optional[Board], chain: Optional[CaptureChain] = None) -> Move:
        """Choose a move for ``self.player``.

        Args:
            board (Board | None): Current position; never mutated.
            chain (CaptureChain | None): Active capture chain, if the engine
                is continuing a multi-capture turn.

        Returns:
            Move: A legal move, or ``INVALID_MOVE`` when none exists.
        """
        self.last_result = None
        if self.closed or board is None:
            return INVALID_MOVE
        snap = to_snapshot(board, self.keys)
        legal = legal_moves(snap, self.player, chain)
        if not legal:
            logger.info("no legal move for %s", "white" if self.player == WHITE else "black")
            return INVALID_MOVE

        deadline = None
        if self.config.movetime_ms is not None:
            deadline = time.perf_counter() + self.config.movetime_ms / 1000.0
        try:
            result = self._impl.search(snap, self.player, legal, deadline)
        except Exception:
            logger.exception("%s search failed, playing first legal move", self.strategy.value)
            return legal[0]

        self.last_result = result
        chosen = next((m for m in legal if m.same_path(result.best_move)), None)
        if chosen is None:
            msg = f"{result.strategy or self.strategy.value} returned {result.best_move.to_str()}, not a legal move"
            logger.warning(msg)
            warnings.warn(msg, SearchInconsistencyWarning, stacklevel=2)
            return legal[0]
        logger.info(
            "%s chose %s score=%s nodes=%d time_ms=%d",
            result.strategy,
            chosen.to_str(),
            result.score,
            result.nodes,
            result.time_ms,
        )
        return chosen

    def close(self) -> None:
        if self.tt is not None:
            self.tt.clear()
        self.tt = None
        self.closed = True

    @classmethod
    def disabled(cls, config: Optional[EngineConfig] = None) -> "AiEngine":
        """A closed engine: ``find_best_move`` always returns ``INVALID_MOVE``."""
        base = config if config is not None else EngineConfig()
        engine = cls(Strategy.MARKOV, Difficulty.EASY, WHITE, config=replace(base, markov_table_size=1))
        engine.close()
        return engine


def create_engine(
    strategy: Strategy,
    difficulty: Difficulty,
    player: int,
    config: Optional[EngineConfig] = None,
    keys: Optional[ZobristKeys] = None,
    markov_model: Optional[MarkovModel] = None,
) -> AiEngine:
    """Build an engine, or a disabled one when the arguments are invalid.

    Unlike the ``AiEngine`` constructor this never raises: a bad strategy,
    difficulty or player is logged and yields an engine that plays no move.
    """
    try:
        return AiEngine(
            strategy, difficulty, player, config=config, keys=keys, markov_model=markov_model
        )
    except ValueError as exc:
        logger.error("engine not created: %s", exc)
        return AiEngine.disabled(config)


def destroy_engine(engine: Optional[AiEngine]) -> None:
    if engine is not None:
        engine.close()
