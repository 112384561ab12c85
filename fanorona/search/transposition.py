from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from fanorona.engine.move import Move


EXACT = "EXACT"
LOWER = "LOWER"  # fail-high, score is a lower bound
UPPER = "UPPER"  # fail-low, score is an upper bound

ENTRY_BYTES = 64


@dataclass
class TTEntry:
    key: int
    depth: int
    score: int
    flag: str  # "EXACT", "LOWER", "UPPER"
    best_move: Optional[Move]


class TranspositionTable:
    """Fixed-size, direct-mapped transposition table.

    Every store overwrites slot ``key % capacity``; probes only return an
    entry whose full key matches, so index collisions never leak a foreign
    score.
    """

    def __init__(self, size_mb: int = 64) -> None:
        if size_mb <= 0:
            raise ValueError("size_mb must be > 0")
        self.size_mb = size_mb
        self.capacity = max(1, size_mb * 1024 * 1024 // ENTRY_BYTES)
        self.table: List[Optional[TTEntry]] = [None] * self.capacity
        self.probes = 0
        self.hits = 0
        self.stores = 0
        self.overwrites = 0
        self.used = 0

    def _index(self, key: int) -> int:
        return key % self.capacity

    def probe(self, key: int) -> Optional[TTEntry]:
        self.probes += 1
        entry = self.table[self._index(key)]
        if entry is None or entry.key != key:
            return None
        self.hits += 1
        return entry

    def store(
        self, key: int, depth: int, score: int, flag: str, best_move: Optional[Move] = None
    ) -> None:
        idx = self._index(key)
        existing = self.table[idx]
        if existing is None:
            self.used += 1
        elif existing.key != key:
            self.overwrites += 1
        self.table[idx] = TTEntry(key, depth, score, flag, best_move)
        self.stores += 1

    def clear(self) -> None:
        self.table = [None] * self.capacity
        self.probes = self.hits = self.stores = self.overwrites = self.used = 0

    def hashfull(self) -> int:
        """Occupancy in permille."""
        return int(min(1000, self.used * 1000 // self.capacity))

    def stats(self) -> Dict[str, int]:
        return {
            "probes": self.probes,
            "hits": self.hits,
            "stores": self.stores,
            "overwrites": self.overwrites,
            "used": self.used,
            "capacity": self.capacity,
        }

    def __len__(self) -> int:
        return self.used
