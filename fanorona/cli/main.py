from __future__ import annotations

import argparse
import logging
from typing import Dict, List, Optional

import uvicorn

from ..engine.game import Game
from ..engine.topology import BLACK, WHITE
from ..engine.zobrist import ZobristKeys
from ..search.markov import MarkovModel
from ..search.service import (
    AiEngine,
    Difficulty,
    EngineConfig,
    Strategy,
    create_engine,
    destroy_engine,
)


logger = logging.getLogger(__name__)

PLAYER_NAMES = {WHITE: "white", BLACK: "black"}


def play_game(engines: Dict[int, AiEngine], max_plies: int) -> Game:
    """Play one engine-vs-engine game from the opening."""
    game = Game.new()
    for _ in range(max_plies):
        if game.outcome().finished:
            break
        engine = engines[game.side_to_move]
        move = engine.find_best_move(game.board, game.chain)
        if not move.is_valid:
            if game.chain.active:
                game.end_turn()
                continue
            break
        game.apply_move(move)
    return game


def selfplay(args: argparse.Namespace) -> int:
    config = EngineConfig(
        tt_size_mb=args.hash_mb,
        mcts_iterations=args.mcts_iterations,
        movetime_ms=args.movetime_ms,
        seed=args.seed,
    )
    keys = ZobristKeys(config.zobrist_seed)
    model = (
        MarkovModel.load_model(args.markov_in, keys=keys)
        if args.markov_in
        else MarkovModel(config.markov_table_size, keys=keys)
    )
    difficulty = Difficulty(args.difficulty)
    engines = {
        WHITE: create_engine(Strategy(args.white), difficulty, WHITE, config, keys, model),
        BLACK: create_engine(Strategy(args.black), difficulty, BLACK, config, keys, model),
    }
    results: List[Optional[int]] = []
    try:
        for i in range(args.games):
            game = play_game(engines, args.max_plies)
            outcome = game.outcome()
            winner = outcome.winner if outcome.finished else None
            results.append(winner)
            name = PLAYER_NAMES.get(winner, "none")
            model.learn_from_game(game.played_moves(), winner)
            print(
                f"game {i + 1}: plies={len(game.move_stack)} "
                f"winner={name} "
                f"white={game.board.count(WHITE)} black={game.board.count(BLACK)}"
            )
    finally:
        for engine in engines.values():
            destroy_engine(engine)

    print(
        f"white={results.count(WHITE)} black={results.count(BLACK)} "
        f"undecided={results.count(None)} transitions={model.total_transitions}"
    )
    if args.markov_out and not model.save_model(args.markov_out):
        return 1
    return 0


def serve(args: argparse.Namespace) -> int:
    uvicorn.run(
        "fanorona.protocol.http.app:create_app", factory=True, host=args.host, port=args.port
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fanorona", description="Fanorona engine")
    sub = parser.add_subparsers(dest="command")

    p_serve = sub.add_parser("serve", help="Run the HTTP service")
    p_serve.add_argument("--host", default="0.0.0.0")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.set_defaults(func=serve)

    strategies = [s.value for s in Strategy]
    p_self = sub.add_parser("selfplay", help="Play engine-vs-engine games")
    p_self.add_argument("--games", type=int, default=1)
    p_self.add_argument("--white", choices=strategies, default=Strategy.MINIMAX.value)
    p_self.add_argument("--black", choices=strategies, default=Strategy.MCTS.value)
    p_self.add_argument("--difficulty", type=int, choices=(1, 2, 3), default=1)
    p_self.add_argument("--max-plies", type=int, default=200)
    p_self.add_argument("--movetime-ms", type=int, default=None)
    p_self.add_argument("--hash-mb", type=int, default=16)
    p_self.add_argument("--mcts-iterations", type=int, default=200)
    p_self.add_argument("--seed", type=int, default=None)
    p_self.add_argument("--markov-in", default=None, help="Model to continue training")
    p_self.add_argument("--markov-out", default=None, help="Where to save the trained model")
    p_self.set_defaults(func=selfplay)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        # Bare invocation serves on the default port
        args = parser.parse_args(["serve"])
    logging.basicConfig(level=logging.INFO)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
