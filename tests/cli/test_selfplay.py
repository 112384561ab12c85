from __future__ import annotations

import os

from fanorona.cli.main import build_parser, main, play_game
from fanorona.engine.topology import BLACK, WHITE
from fanorona.search.markov import load_model
from fanorona.search.service import Difficulty, EngineConfig, Strategy, create_engine


def test_play_game_alternates_sides() -> None:
    config = EngineConfig(tt_size_mb=1)
    engines = {
        WHITE: create_engine(Strategy.MINIMAX, Difficulty.EASY, WHITE, config),
        BLACK: create_engine(Strategy.MARKOV, Difficulty.EASY, BLACK, config),
    }
    game = play_game(engines, 6)
    sides = [side for side, _ in game.move_stack]
    assert sides[0] == WHITE
    assert BLACK in sides
    assert 0 < len(game.move_stack) <= 6


def test_selfplay_trains_and_saves_model(tmp_path, capsys) -> None:
    out = str(tmp_path / "model.bin")
    rc = main(
        [
            "selfplay",
            "--games", "2",
            "--white", "markov",
            "--black", "markov",
            "--max-plies", "8",
            "--markov-out", out,
        ]
    )
    assert rc == 0
    assert os.path.exists(out)
    assert load_model(out).learning_games == 2
    printed = capsys.readouterr().out
    assert "game 1:" in printed and "game 2:" in printed


def test_parser_defaults() -> None:
    args = build_parser().parse_args(["serve"])
    assert (args.host, args.port) == ("0.0.0.0", 8000)
