#!/usr/bin/env python3
# ruff: noqa: E402
from __future__ import annotations

import argparse
import json
import os
import platform
import subprocess
import sys
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

# Ensure repo root (which contains `fanorona/`) is importable when running directly
REPO_ROOT = os.path.dirname(os.path.dirname(__file__))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from fanorona.engine.board import STARTPOS_TEXT
from fanorona.engine.game import Game
from fanorona.search.service import (
    Difficulty,
    EngineConfig,
    Strategy,
    create_engine,
    destroy_engine,
)


def _git_info() -> Dict[str, Optional[str]]:
    def run(cmd: List[str]) -> Optional[str]:
        try:
            out = subprocess.check_output(cmd, cwd=REPO_ROOT, stderr=subprocess.DEVNULL)
            return out.decode().strip()
        except (OSError, subprocess.CalledProcessError):
            return None

    return {
        "commit": run(["git", "rev-parse", "HEAD"]),
        "describe": run(["git", "describe", "--dirty", "--tags", "--always"]),
    }


@dataclass
class BenchItem:
    id: str
    name: str
    position: str


# Opening, a thinned middlegame and a sparse endgame
DEFAULT_ITEMS = [
    BenchItem("open", "Opening", f"{STARTPOS_TEXT} w"),
    BenchItem(
        "mid",
        "Middlegame",
        "WW.W.WW.W/W.W.W.W.W/.B.W...B./B.B...B.B/BB.B.B.BB b",
    ),
    BenchItem("end", "Endgame", "W......../..W....../....B..../......B../.......W. w"),
]


def load_positions(path: str) -> List[BenchItem]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    items: List[BenchItem] = []
    for obj in data.get("positions", []):
        items.append(
            BenchItem(
                id=str(obj.get("id", obj.get("name", "pos"))),
                name=str(obj.get("name", "Unnamed")),
                position=str(obj["position"]),
            )
        )
    return items


def bench_position(
    item: BenchItem,
    strategy: Strategy,
    difficulty: Difficulty,
    config: EngineConfig,
    iterations: int,
) -> Dict[str, Any]:
    try:
        game = Game.from_text(item.position)
    except ValueError as e:
        raise ValueError(f"Invalid position for {item.id}: {e}")

    total_time = 0
    total_nodes = 0
    best = "(none)"
    for _ in range(max(1, iterations)):
        engine = create_engine(strategy, difficulty, game.side_to_move, config=config)
        try:
            move = engine.find_best_move(game.board, game.chain)
            res = engine.last_result
        finally:
            destroy_engine(engine)
        best = move.to_str()
        if res is not None:
            total_time += max(0, res.time_ms)
            total_nodes += max(0, res.nodes)

    n = max(1, iterations)
    avg_time = total_time // n
    avg_nodes = total_nodes // n
    return {
        "id": item.id,
        "name": item.name,
        "position": item.position,
        "strategy": strategy.value,
        "best_move": best,
        "time_ms": avg_time,
        "nodes": avg_nodes,
        "nps": int(avg_nodes * 1000 / max(1, avg_time)),
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Run engine benchmarks over a positions suite")
    parser.add_argument("--positions", default=None, help="Path to positions.json")
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in Strategy],
        action="append",
        help="Strategy to bench (repeatable; default: all)",
    )
    parser.add_argument("--difficulty", type=int, default=2, choices=(1, 2, 3))
    parser.add_argument("--movetime-ms", type=int, default=None, help="Cooperative time limit")
    parser.add_argument("--hash-mb", type=int, default=16, help="TT size in MiB")
    parser.add_argument("--mcts-iterations", type=int, default=1000)
    parser.add_argument("--seed", type=int, default=1)
    parser.add_argument(
        "--iterations", type=int, default=1, help="Repeat runs per position and average"
    )
    parser.add_argument("--out", type=str, default=None, help="Write JSON results to file path")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output")
    parser.add_argument(
        "--progress", action="store_true", help="Print per-position progress to stderr"
    )
    args = parser.parse_args()

    items = load_positions(args.positions) if args.positions else DEFAULT_ITEMS
    if not items:
        raise SystemExit("No positions found in positions file")
    strategies = [Strategy(s) for s in (args.strategy or [s.value for s in Strategy])]
    config = EngineConfig(
        tt_size_mb=args.hash_mb,
        mcts_iterations=args.mcts_iterations,
        movetime_ms=args.movetime_ms,
        seed=args.seed,
    )

    results: List[Dict[str, Any]] = []
    t0 = time.perf_counter()
    for strategy in strategies:
        for idx, it in enumerate(items, start=1):
            if args.progress:
                sys.stderr.write(f"[{strategy.value} {idx}/{len(items)}] {it.id}: running...\n")
                sys.stderr.flush()
            res = bench_position(
                it, strategy, Difficulty(args.difficulty), config, max(1, args.iterations)
            )
            results.append(res)
            if args.progress:
                sys.stderr.write(
                    f"    time={res['time_ms']}ms nodes={res['nodes']} nps={res['nps']} best={res['best_move']}\n"
                )
                sys.stderr.flush()

    dt_ms = int((time.perf_counter() - t0) * 1000)
    total_nodes = sum(r["nodes"] for r in results)

    payload = {
        "meta": {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "python": sys.version.split()[0],
            "platform": platform.platform(),
            "git": _git_info(),
            "engine": {"version": "0.1.0"},
            "config": {
                "positions_file": args.positions,
                "iterations": max(1, args.iterations),
                "difficulty": args.difficulty,
                "movetime_ms": args.movetime_ms,
                "hash_mb": args.hash_mb,
                "mcts_iterations": args.mcts_iterations,
                "seed": args.seed,
            },
        },
        "results": results,
        "summary": {
            "runs": len(results),
            "total_time_ms": dt_ms,
            "total_nodes": total_nodes,
            "overall_nps": int(total_nodes * 1000 / max(1, dt_ms)),
        },
    }

    if args.out:
        out_path = args.out
        os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
        with open(out_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2 if args.pretty else None)
        print(out_path)
    else:
        print(json.dumps(payload, indent=2 if args.pretty else None))


if __name__ == "__main__":
    main()
