from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

from fanorona.engine.move import INVALID_MOVE, Move


@dataclass
class SearchResult:
    best_move: Move = INVALID_MOVE
    score: Optional[float] = None
    nodes: int = 0
    depth: int = 0
    time_ms: int = 0
    timed_out: bool = False
    strategy: str = ""
    iterations: int = 0
    tt: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "best_move": self.best_move.to_str(),
            "score": self.score,
            "nodes": self.nodes,
            "depth": self.depth,
            "time_ms": self.time_ms,
            "timed_out": self.timed_out,
            "strategy": self.strategy,
            "iterations": self.iterations,
            "tt": dict(self.tt),
        }
