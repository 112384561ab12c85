from __future__ import annotations

from fanorona.engine.board import Board
from fanorona.engine.move import INVALID_MOVE
from fanorona.engine.rules import generate_moves
from fanorona.engine.topology import BLACK, WHITE
from fanorona.search.markov import (
    EXPLORATION_SCORE,
    GamePhase,
    MarkovModel,
    determine_phase,
    extract_pattern,
    load_model,
)


def _short_game(plies: int = 4):
    board = Board.startpos()
    side = WHITE
    moves = []
    for _ in range(plies):
        m = generate_moves(board, side)[0]
        board.apply_move(m)
        moves.append(m)
        side = BLACK if side == WHITE else WHITE
    return moves


def test_learned_opening_move_is_preferred(keys) -> None:
    model = MarkovModel(keys=keys)
    moves = _short_game()
    model.learn_from_game(moves, WHITE)
    assert model.learning_games == 1
    assert model.total_transitions == 4

    start = Board.startpos()
    pattern = extract_pattern(start, INVALID_MOVE, keys)
    assert model.get_move_probability(pattern, moves[0]) > 0.0

    res = model.find_best_move(start, WHITE)
    assert res.best_move.same_path(moves[0])
    assert res.strategy == "markov"


def test_untrained_model_explores_first_move(keys) -> None:
    model = MarkovModel(keys=keys)
    b = Board.startpos()
    res = model.find_best_move(b, BLACK)
    assert res.best_move == generate_moves(b, BLACK)[0]
    assert res.score == EXPLORATION_SCORE


def test_short_games_are_ignored(keys) -> None:
    model = MarkovModel(keys=keys)
    model.learn_from_game(_short_game(1), BLACK)
    model.learn_from_game([], None)
    assert model.learning_games == 0
    assert model.transitions() == []


def test_repeated_game_raises_frequency(keys) -> None:
    model = MarkovModel(keys=keys)
    moves = _short_game()
    model.learn_from_game(moves, WHITE)
    model.learn_from_game(moves, WHITE)
    assert model.total_transitions == 4
    first = [t for t in model.transitions() if t.move.same_path(moves[0])][0]
    assert first.frequency == 2
    assert first.probability == 2 / 2


def test_learning_mode_off(keys) -> None:
    model = MarkovModel(keys=keys)
    model.learning_mode = False
    model.learn_from_game(_short_game(), WHITE)
    assert model.total_transitions == 0


def test_save_and_load(tmp_path, keys) -> None:
    model = MarkovModel(table_size=512, keys=keys)
    moves = _short_game(6)
    model.learn_from_game(moves, None)
    path = str(tmp_path / "model.bin")
    assert model.save_model(path)

    loaded = load_model(path, keys=keys)
    assert loaded.table_size == 512
    assert loaded.learning_games == 1
    assert loaded.total_transitions == model.total_transitions
    pattern = extract_pattern(Board.startpos(), INVALID_MOVE, keys)
    assert loaded.get_move_probability(pattern, moves[0]) == model.get_move_probability(pattern, moves[0])
    restored = sorted((t.move.from_node, t.move.to_node, t.move.captured) for t in loaded.transitions())
    original = sorted((t.move.from_node, t.move.to_node, t.move.captured) for t in model.transitions())
    assert restored == original


def test_missing_or_corrupt_file_gives_fresh_model(tmp_path, keys) -> None:
    assert load_model(str(tmp_path / "absent.bin"), keys=keys).total_transitions == 0
    bad = tmp_path / "bad.bin"
    bad.write_bytes(b"junk")
    assert load_model(str(bad), keys=keys).total_transitions == 0
    wrong = tmp_path / "wrong.bin"
    wrong.write_bytes(b"XXXX" + bytes(14))
    assert load_model(str(wrong), keys=keys).learning_games == 0


def test_save_to_unwritable_path(tmp_path, keys) -> None:
    model = MarkovModel(keys=keys)
    assert not model.save_model(str(tmp_path / "missing-dir" / "model.bin"))


def test_determine_phase() -> None:
    assert determine_phase(Board.startpos()) == GamePhase.OPENING
    mid = Board.from_text("WWWWWWWWW/W......../........./BBBBBBBBB/B........")
    assert determine_phase(mid) == GamePhase.MIDGAME
    assert determine_phase(Board.from_text("W......../........./........./........./........B")) == GamePhase.ENDGAME
