from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Tuple

from .topology import node_to_str, str_to_node


# Bounded by the number of pieces a side owns
MAX_CAPTURED = 22


class CaptureKind(IntEnum):
    PAIKA = 0
    PERCUSSION = 1
    ASPIRATION = 2


@dataclass(frozen=True)
class Move:
    """Engine-internal move representation.

    Attributes:
        from_node (int): Origin node id, or -1 for the invalid sentinel.
        to_node (int): Destination node id, or -1 for the invalid sentinel.
        is_capture (bool): Whether the move removes opposing pieces.
        captured (Tuple[int, ...]): Node ids of the removed pieces, nearest first.
        kind (CaptureKind): Paika, percussion (approach) or aspiration (withdrawal).
    """

    from_node: int
    to_node: int
    is_capture: bool = False
    captured: Tuple[int, ...] = ()
    kind: CaptureKind = CaptureKind.PAIKA

    @property
    def is_valid(self) -> bool:
        return self.from_node >= 0 and self.to_node >= 0

    @property
    def capture_count(self) -> int:
        return len(self.captured)

    def same_path(self, other: "Move") -> bool:
        return self.from_node == other.from_node and self.to_node == other.to_node

    def to_str(self) -> str:
        """Serialize as origin and destination, e.g. ``"e2e3"``.

        Returns:
            str: Move string, or ``"(none)"`` for the invalid sentinel.
        """
        if not self.is_valid:
            return "(none)"
        return node_to_str(self.from_node) + node_to_str(self.to_node)


INVALID_MOVE = Move(-1, -1)


def parse_move(text: str) -> Tuple[int, int]:
    """Parse a move string into ``(from_node, to_node)``.

    The capture details depend on the position, so callers classify the
    returned path with the rules engine.

    Raises:
        ValueError: If the string is not two node names.
    """
    text = text.strip().lower().replace("-", "")
    if len(text) != 4:
        raise ValueError(f"invalid move length: {text!r}")
    return str_to_node(text[0:2]), str_to_node(text[2:4])
