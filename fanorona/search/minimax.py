from __future__ import annotations

import logging
import time
from typing import List, Optional

from fanorona.engine.move import INVALID_MOVE, Move
from fanorona.engine.rules import generate_moves
from fanorona.engine.snapshot import BoardSnapshot, to_snapshot
from fanorona.engine.topology import BLACK, opponent
from fanorona.engine.zobrist import ZobristKeys, hash_position
from fanorona.eval import INF, WIN_SCORE, evaluate

from .result import SearchResult
from .transposition import EXACT, LOWER, UPPER, TranspositionTable


logger = logging.getLogger(__name__)

# Capture-only plies searched past the nominal depth
QUIESCENCE_DEPTH = 2
# Scores beyond this are wins or losses at a known distance
MATE_BOUND = WIN_SCORE - 1000


def score_to_tt(score: int, ply: int) -> int:
    """Make a win/loss score relative to the node before storing it."""
    if score >= MATE_BOUND:
        return score + ply
    if score <= -MATE_BOUND:
        return score - ply
    return score


def score_from_tt(score: int, ply: int) -> int:
    """Inverse of ``score_to_tt`` for a lookup at ``ply``."""
    if score >= MATE_BOUND:
        return score - ply
    if score <= -MATE_BOUND:
        return score + ply
    return score


class MinimaxSearch:
    """Depth-limited alpha-beta minimax over board snapshots.

    Scores are always from ``ai_player``'s point of view: the maximizing
    side is ``ai_player`` and the minimizing side its opponent. Each
    elementary step is one ply, so a capture chain is searched as if the
    turn passed after every capture.
    """

    def __init__(
        self,
        tt: Optional[TranspositionTable] = None,
        keys: Optional[ZobristKeys] = None,
        quiescence_depth: int = QUIESCENCE_DEPTH,
    ) -> None:
        self.tt = tt
        self.keys = keys if keys is not None else ZobristKeys()
        self.quiescence_depth = max(0, quiescence_depth)
        self.nodes = 0
        self._tt_player: Optional[int] = None

    def _snapshot(self, position) -> BoardSnapshot:
        if isinstance(position, BoardSnapshot):
            snap = position.copy()
            if snap.keys is not self.keys:
                snap.keys = self.keys
                snap.hash = hash_position(snap, self.keys)
            return snap
        return to_snapshot(position, self.keys)

    def _key(self, position: BoardSnapshot, to_move: int) -> int:
        return position.hash ^ (self.keys.turn_key if to_move == BLACK else 0)

    def _claim_tt(self, ai_player: int) -> None:
        # Stored scores are relative to ai_player; a table filled for the
        # other side is useless
        if self.tt is None:
            return
        if self._tt_player is not None and self._tt_player != ai_player:
            self.tt.clear()
        self._tt_player = ai_player

    def search(
        self,
        position: BoardSnapshot,
        depth: int,
        alpha: int,
        beta: int,
        maximizing: bool,
        ai_player: int,
        ply: int = 0,
    ) -> int:
        self.nodes += 1
        to_move = ai_player if maximizing else opponent(ai_player)

        if position.count(ai_player) == 0:
            return -(WIN_SCORE - ply)
        if position.count(opponent(ai_player)) == 0:
            return WIN_SCORE - ply
        moves = generate_moves(position, to_move)
        if not moves:
            return -(WIN_SCORE - ply) if maximizing else WIN_SCORE - ply
        if depth <= 0:
            return self.quiescence(
                position, alpha, beta, maximizing, ai_player, self.quiescence_depth, ply
            )

        alpha_orig, beta_orig = alpha, beta
        key = self._key(position, to_move)
        hint: Optional[Move] = None
        if self.tt is not None:
            entry = self.tt.probe(key)
            if entry is not None:
                hint = entry.best_move
                if entry.depth >= depth:
                    cached = score_from_tt(entry.score, ply)
                    if entry.flag == EXACT:
                        return cached
                    if entry.flag == LOWER and cached >= beta:
                        return cached
                    if entry.flag == UPPER and cached <= alpha:
                        return cached
        if hint is not None:
            moves = _hint_first(moves, hint)

        best_move: Optional[Move] = None
        if maximizing:
            value = -INF
            for m in moves:
                child = position.copy()
                child.apply_move(m)
                score = self.search(child, depth - 1, alpha, beta, False, ai_player, ply + 1)
                if score > value:
                    value, best_move = score, m
                alpha = max(alpha, value)
                if alpha >= beta:
                    break
        else:
            value = INF
            for m in moves:
                child = position.copy()
                child.apply_move(m)
                score = self.search(child, depth - 1, alpha, beta, True, ai_player, ply + 1)
                if score < value:
                    value, best_move = score, m
                beta = min(beta, value)
                if alpha >= beta:
                    break

        if self.tt is not None:
            if value <= alpha_orig:
                flag = UPPER
            elif value >= beta_orig:
                flag = LOWER
            else:
                flag = EXACT
            self.tt.store(key, depth, score_to_tt(value, ply), flag, best_move)
        return value

    def quiescence(
        self,
        position: BoardSnapshot,
        alpha: int,
        beta: int,
        maximizing: bool,
        ai_player: int,
        depth: int = QUIESCENCE_DEPTH,
        ply: int = 0,
    ) -> int:
        """Extend a leaf over captures only, standing pat on the static score.

        Fail-hard: the result is clamped to ``[alpha, beta]``. At most
        ``depth`` capture plies are searched.
        """
        self.nodes += 1
        if position.count(ai_player) == 0:
            return -(WIN_SCORE - ply)
        if position.count(opponent(ai_player)) == 0:
            return WIN_SCORE - ply

        stand_pat = evaluate(position, ai_player)
        if maximizing:
            if stand_pat >= beta:
                return beta
            alpha = max(alpha, stand_pat)
        else:
            if stand_pat <= alpha:
                return alpha
            beta = min(beta, stand_pat)
        if depth <= 0:
            return alpha if maximizing else beta

        to_move = ai_player if maximizing else opponent(ai_player)
        for m in generate_moves(position, to_move):
            if not m.is_capture:
                # No capture available here
                break
            child = position.copy()
            child.apply_move(m)
            score = self.quiescence(child, alpha, beta, not maximizing, ai_player, depth - 1, ply + 1)
            if maximizing:
                if score >= beta:
                    return beta
                alpha = max(alpha, score)
            else:
                if score <= alpha:
                    return alpha
                beta = min(beta, score)
        return alpha if maximizing else beta

    def find_best_move(
        self,
        position,
        player: int,
        depth: int,
        root_moves: Optional[List[Move]] = None,
        deadline: Optional[float] = None,
    ) -> SearchResult:
        """Search every root move and return the best one.

        Args:
            position: Board or BoardSnapshot; it is never mutated.
            player (int): Side to move, the maximizing side.
            depth (int): Plies to search (at least 1).
            root_moves (List[Move] | None): Candidate moves; defaults to the
                moves ``generate_moves`` produces. Chain continuations are
                passed in here.
            deadline (float | None): ``time.perf_counter()`` value after which
                no further root move is started.

        Returns:
            SearchResult: Best move (``INVALID_MOVE`` if there is none) and
            search statistics. Ties keep the earlier root move.
        """
        start = time.perf_counter()
        depth = max(1, depth)
        self.nodes = 0
        self._claim_tt(player)
        snap = self._snapshot(position)
        moves = list(root_moves) if root_moves is not None else generate_moves(snap, player)
        if not moves:
            return SearchResult(best_move=INVALID_MOVE, depth=depth, strategy="minimax")

        best = moves[0]
        best_score = -INF
        alpha, beta = -INF, INF
        timed_out = False
        for idx, m in enumerate(moves):
            if idx > 0 and deadline is not None and time.perf_counter() >= deadline:
                timed_out = True
                break
            child = snap.copy()
            child.apply_move(m)
            score = self.search(child, depth - 1, alpha, beta, False, player, 1)
            if score > best_score:
                best_score, best = score, m
            alpha = max(alpha, best_score)

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        logger.debug(
            "minimax depth=%d best=%s score=%s nodes=%d time_ms=%d",
            depth,
            best.to_str(),
            best_score,
            self.nodes,
            elapsed_ms,
        )
        return SearchResult(
            best_move=best,
            score=best_score,
            nodes=self.nodes,
            depth=depth,
            time_ms=elapsed_ms,
            timed_out=timed_out,
            strategy="minimax",
            tt=self.tt.stats() if self.tt is not None else {},
        )


def _hint_first(moves: List[Move], hint: Move) -> List[Move]:
    for i, m in enumerate(moves):
        if m.same_path(hint):
            return [m] + moves[:i] + moves[i + 1 :]
    return moves


def minimax_search(
    position,
    depth: int,
    alpha: int,
    beta: int,
    maximizing: bool,
    ai_player: int,
    tt: Optional[TranspositionTable] = None,
    keys: Optional[ZobristKeys] = None,
    quiescence_depth: int = QUIESCENCE_DEPTH,
) -> int:
    """Alpha-beta value of ``position`` for ``ai_player``."""
    searcher = MinimaxSearch(tt=tt, keys=keys, quiescence_depth=quiescence_depth)
    return searcher.search(searcher._snapshot(position), depth, alpha, beta, maximizing, ai_player)
