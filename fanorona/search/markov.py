from __future__ import annotations

import logging
import os
import struct
import time
from dataclasses import dataclass
from enum import IntEnum
from typing import List, Optional, Sequence

from fanorona.engine.board import Board
from fanorona.engine.move import INVALID_MOVE, CaptureKind, Move
from fanorona.engine.rules import generate_moves
from fanorona.engine.topology import BLACK, WHITE
from fanorona.engine.zobrist import ZobristKeys, hash_position

from .result import SearchResult


logger = logging.getLogger(__name__)


DEFAULT_TABLE_SIZE = 4096
CAPTURE_BONUS = 0.3
EXPLORATION_SCORE = 0.2

OPENING_MIN_PIECES = 35
MIDGAME_MIN_PIECES = 15

# File layout: header, then one variable-length record per transition
MAGIC = b"FMKV"
FORMAT_VERSION = 1
_HEADER = struct.Struct(">4sHIII")  # magic, version, table_size, transitions, games
_PATTERN = struct.Struct(">QBBBB")  # hash, phase, white, black, last_move_capture
_MOVE = struct.Struct(">bbBBB")  # from, to, is_capture, kind, captured count
_STATS = struct.Struct(">dI")  # probability, frequency


class GamePhase(IntEnum):
    OPENING = 0
    MIDGAME = 1
    ENDGAME = 2


@dataclass(frozen=True)
class PositionPattern:
    position_hash: int
    phase: GamePhase
    white_count: int
    black_count: int
    last_move_capture: bool


@dataclass
class MarkovTransition:
    from_pattern: PositionPattern
    move: Move
    to_pattern: PositionPattern
    probability: float
    frequency: int = 1


def determine_phase(position) -> GamePhase:
    total = position.count(WHITE) + position.count(BLACK)
    if total >= OPENING_MIN_PIECES:
        return GamePhase.OPENING
    if total >= MIDGAME_MIN_PIECES:
        return GamePhase.MIDGAME
    return GamePhase.ENDGAME


def extract_pattern(position, last_move: Move, keys: ZobristKeys) -> PositionPattern:
    return PositionPattern(
        position_hash=hash_position(position, keys),
        phase=determine_phase(position),
        white_count=position.count(WHITE),
        black_count=position.count(BLACK),
        last_move_capture=last_move.is_capture,
    )


class MarkovModel:
    """First-order move predictor learned from finished games.

    Transitions are bucketed by ``position_hash % table_size`` and matched on
    (position hash, origin, destination). A transition's probability is its
    frequency divided by the number of learned games plus one, refreshed
    whenever the transition is seen again.

    Not thread-safe; one model is owned by one engine or service.
    """

    def __init__(self, table_size: int = DEFAULT_TABLE_SIZE, keys: Optional[ZobristKeys] = None) -> None:
        if table_size <= 0:
            table_size = DEFAULT_TABLE_SIZE
        self.table_size = table_size
        self.keys = keys if keys is not None else ZobristKeys()
        self.buckets: List[List[MarkovTransition]] = [[] for _ in range(table_size)]
        self.total_transitions = 0
        self.learning_games = 0
        self.learning_mode = True

    def _bucket(self, position_hash: int) -> List[MarkovTransition]:
        return self.buckets[position_hash % self.table_size]

    def _find(self, position_hash: int, move: Move) -> Optional[MarkovTransition]:
        for t in self._bucket(position_hash):
            if t.from_pattern.position_hash == position_hash and t.move.same_path(move):
                return t
        return None

    def add_transition(self, from_pattern: PositionPattern, move: Move, to_pattern: PositionPattern) -> None:
        if not self.learning_mode:
            return
        existing = self._find(from_pattern.position_hash, move)
        if existing is not None:
            existing.frequency += 1
            existing.probability = existing.frequency / (self.learning_games + 1)
            return
        self._bucket(from_pattern.position_hash).append(
            MarkovTransition(
                from_pattern=from_pattern,
                move=move,
                to_pattern=to_pattern,
                probability=1.0 / (self.learning_games + 1),
            )
        )
        self.total_transitions += 1
        if self.total_transitions % 1000 == 0:
            logger.info("markov model holds %d transitions", self.total_transitions)

    def get_move_probability(self, pattern: PositionPattern, move: Move) -> float:
        t = self._find(pattern.position_hash, move)
        return t.probability if t is not None else 0.0

    def learn_from_game(self, moves: Sequence[Move], winner: Optional[int]) -> None:
        """Replay a game from the opening position and record its transitions.

        Games shorter than two moves are ignored.
        """
        if moves is None or len(moves) < 2:
            return
        board = Board.startpos()
        last = extract_pattern(board, INVALID_MOVE, self.keys)
        for move in moves:
            board.apply_move(move)
            pattern = extract_pattern(board, move, self.keys)
            self.add_transition(last, move, pattern)
            last = pattern
        self.learning_games += 1
        logger.info(
            "markov learned game of %d moves (winner=%s, games=%d)",
            len(moves),
            {WHITE: "white", BLACK: "black"}.get(winner, "none"),
            self.learning_games,
        )

    def find_best_move(
        self, position, player: int, root_moves: Optional[List[Move]] = None
    ) -> SearchResult:
        """Pick the move the model rates highest.

        A learned move scores its probability plus ``CAPTURE_BONUS`` if it
        captures; a move never seen here scores ``EXPLORATION_SCORE``. Ties
        keep the earlier move.
        """
        start = time.perf_counter()
        moves = list(root_moves) if root_moves is not None else generate_moves(position, player)
        if not moves:
            return SearchResult(best_move=INVALID_MOVE, strategy="markov")
        pattern = extract_pattern(position, INVALID_MOVE, self.keys)
        best = moves[0]
        best_score = -1.0
        for m in moves:
            prob = self.get_move_probability(pattern, m)
            score = prob + (CAPTURE_BONUS if m.is_capture else 0.0)
            if prob == 0.0:
                score = EXPLORATION_SCORE
            logger.debug("markov %s prob=%.3f score=%.3f", m.to_str(), prob, score)
            if score > best_score:
                best_score, best = score, m
        return SearchResult(
            best_move=best,
            score=best_score,
            nodes=len(moves),
            time_ms=int((time.perf_counter() - start) * 1000),
            strategy="markov",
        )

    def transitions(self) -> List[MarkovTransition]:
        return [t for bucket in self.buckets for t in bucket]

    # --- persistence ---

    def save_model(self, path: str) -> bool:
        """Write the model to ``path``; returns False if the file cannot be written."""
        records = self.transitions()
        try:
            with open(path, "wb") as f:
                f.write(
                    _HEADER.pack(MAGIC, FORMAT_VERSION, self.table_size, len(records), self.learning_games)
                )
                for t in records:
                    f.write(_pack_pattern(t.from_pattern))
                    m = t.move
                    f.write(_MOVE.pack(m.from_node, m.to_node, int(m.is_capture), int(m.kind), len(m.captured)))
                    f.write(bytes(m.captured))
                    f.write(_pack_pattern(t.to_pattern))
                    f.write(_STATS.pack(t.probability, t.frequency))
        except OSError as exc:
            logger.warning("cannot save markov model to %s: %s", path, exc)
            return False
        logger.info("markov model saved: %d transitions in %s", len(records), path)
        return True

    @classmethod
    def load_model(cls, path: str, keys: Optional[ZobristKeys] = None) -> "MarkovModel":
        """Read a model written by ``save_model``.

        A missing or unreadable file yields a fresh, empty model.
        """
        if not os.path.exists(path):
            logger.info("markov model %s not found, starting a new one", path)
            return cls(keys=keys)
        try:
            with open(path, "rb") as f:
                data = f.read()
            return cls._decode(data, keys)
        except (OSError, ValueError, struct.error) as exc:
            logger.warning("cannot load markov model from %s: %s", path, exc)
            return cls(keys=keys)

    @classmethod
    def _decode(cls, data: bytes, keys: Optional[ZobristKeys]) -> "MarkovModel":
        magic, version, table_size, count, games = _HEADER.unpack_from(data, 0)
        if magic != MAGIC or version != FORMAT_VERSION:
            raise ValueError("not a markov model file")
        model = cls(table_size=table_size, keys=keys)
        model.learning_games = games
        off = _HEADER.size
        for _ in range(count):
            from_pattern, off = _unpack_pattern(data, off)
            fr, to, is_capture, kind, n = _MOVE.unpack_from(data, off)
            off += _MOVE.size
            captured = tuple(data[off : off + n])
            if len(captured) != n:
                raise ValueError("truncated markov record")
            off += n
            to_pattern, off = _unpack_pattern(data, off)
            probability, frequency = _STATS.unpack_from(data, off)
            off += _STATS.size
            move = Move(fr, to, bool(is_capture), captured, CaptureKind(kind))
            model._bucket(from_pattern.position_hash).append(
                MarkovTransition(from_pattern, move, to_pattern, probability, frequency)
            )
            model.total_transitions += 1
        logger.info("markov model loaded: %d transitions, %d games", model.total_transitions, games)
        return model


def _pack_pattern(p: PositionPattern) -> bytes:
    return _PATTERN.pack(p.position_hash, int(p.phase), p.white_count, p.black_count, int(p.last_move_capture))


def _unpack_pattern(data: bytes, off: int):
    h, phase, white, black, last_capture = _PATTERN.unpack_from(data, off)
    return PositionPattern(h, GamePhase(phase), white, black, bool(last_capture)), off + _PATTERN.size


def load_model(path: str, keys: Optional[ZobristKeys] = None) -> MarkovModel:
    return MarkovModel.load_model(path, keys=keys)
