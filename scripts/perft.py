#!/usr/bin/env python3
# ruff: noqa: E402
from __future__ import annotations

import argparse
import time
import os
import sys

# Allow running this script directly via `python scripts/perft.py`
# by adding the repo root (which contains `fanorona/`) to sys.path.
REPO_ROOT = os.path.dirname(os.path.dirname(__file__))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from fanorona.engine.board import STARTPOS_TEXT
from fanorona.engine.game import Game
from fanorona.engine.perft import perft, perft_divide


def main() -> None:
    parser = argparse.ArgumentParser(description="Run perft on a given position and depth")
    parser.add_argument(
        "--position",
        type=str,
        default=f"{STARTPOS_TEXT} w",
        help="Position text '<rows> w|b' (default: opening, white to move)",
    )
    parser.add_argument("--depth", type=int, default=3, help="Perft depth (default: 3)")
    parser.add_argument("--divide", action="store_true", help="Print per-move counts")
    args = parser.parse_args()

    game = Game.from_text(args.position)
    start = time.perf_counter()
    if args.divide:
        counts = perft_divide(game.board, game.side_to_move, args.depth)
        for move, n in counts.items():
            print(f"{move}: {n}")
        nodes = sum(counts.values())
    else:
        nodes = perft(game.board, game.side_to_move, args.depth)
    dt = time.perf_counter() - start
    print(f"nodes={nodes} depth={args.depth} time_ms={int(dt*1000)} nps={int(nodes/max(dt,1e-9))}")


if __name__ == "__main__":
    main()
