from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field

from .error import (
    GameError,
    GameOverError,
    IllegalMoveError,
    NoChainError,
    exception_handler,
    game_error_handler,
    http_exception_handler,
    request_validation_exception_handler,
)
from .logging_middleware import RequestIDLoggingMiddleware
from ...engine.game import SIDE_TO_CHAR, Game
from ...engine.move import Move, parse_move
from ...engine.perft import perft as perft_nodes
from ...engine.topology import BLACK, WHITE, node_to_str
from ...engine.zobrist import ZobristKeys
from ...search.markov import MarkovModel
from ...search.service import (
    Difficulty,
    EngineConfig,
    Strategy,
    create_engine,
    destroy_engine,
)
from .session import InMemorySessionStore


logger = logging.getLogger(__name__)

PLAYER_NAMES = {WHITE: "white", BLACK: "black"}

# Safety bound for one AI turn; a chain can never be longer than the pieces on the board
MAX_TURN_STEPS = 32


class CreateGameResponse(BaseModel):
    game_id: str
    position: str


class SetPositionRequest(BaseModel):
    position: str = Field(..., description="Five '/'-separated rows of W, B and '.', then 'w' or 'b'")


class MoveRequest(BaseModel):
    move: str = Field(..., description="Origin and destination nodes, e.g., e2e3")


class SearchRequest(BaseModel):
    strategy: Strategy = Strategy.MINIMAX
    difficulty: int = Field(default=int(Difficulty.MEDIUM), ge=1, le=3)
    movetime_ms: Optional[int] = Field(default=None, ge=1)


class PerftRequest(BaseModel):
    position: str
    depth: int = Field(default=1, ge=0, le=6)


class ChainState(BaseModel):
    origin: str
    visited: List[str]


class GameState(BaseModel):
    game_id: str
    position: str
    side_to_move: str
    legal_moves: List[str]
    chain: Optional[ChainState]
    finished: bool
    winner: Optional[str]
    white_count: int
    black_count: int
    last_move: Optional[str]
    move_history: List[str]


class SearchResponse(BaseModel):
    best_move: Optional[str]
    strategy: str
    score: Optional[float]
    nodes: int
    depth: int
    time_ms: int
    timed_out: bool


class AiTurnResponse(BaseModel):
    moves: List[str]
    state: GameState


def _game_state(game_id: str, game: Game) -> GameState:
    outcome = game.outcome()
    history = game.move_history()
    chain = None
    if game.chain.active:
        chain = ChainState(
            origin=node_to_str(game.chain.origin),
            visited=[node_to_str(n) for n in game.chain.visited],
        )
    return GameState(
        game_id=game_id,
        position=game.to_text(),
        side_to_move=SIDE_TO_CHAR[game.side_to_move],
        legal_moves=[] if outcome.finished else [m.to_str() for m in game.legal_moves()],
        chain=chain,
        finished=outcome.finished,
        winner=PLAYER_NAMES.get(outcome.winner) if outcome.winner is not None else None,
        white_count=game.board.count(WHITE),
        black_count=game.board.count(BLACK),
        last_move=history[-1] if history else None,
        move_history=history,
    )


def create_app(
    config: Optional[EngineConfig] = None, markov_model: Optional[MarkovModel] = None
) -> FastAPI:
    """Build the game service.

    Args:
        config: Engine defaults for every search; request fields override
            ``movetime_ms``. Defaults to a small transposition table.
        markov_model: Shared model used by the markov/hybrid strategies and
            trained on every finished game that started from the opening.
    """
    app = FastAPI(title="Fanorona Engine API", version="0.1.0")

    # Basic logging setup
    logging.basicConfig(level=logging.INFO)

    # Middleware & error handling
    app.add_middleware(RequestIDLoggingMiddleware)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(GameError, game_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, exception_handler)

    base_config = config if config is not None else EngineConfig(tt_size_mb=8)
    keys = ZobristKeys(base_config.zobrist_seed)
    model = markov_model if markov_model is not None else MarkovModel(
        base_config.markov_table_size, keys=keys
    )
    model_lock = threading.Lock()

    # In-memory session store for games
    store = InMemorySessionStore()
    app.state.store = store
    app.state.markov = model

    def learn_if_finished(game_id: str, game: Game) -> None:
        outcome = game.outcome()
        if not outcome.finished or not game.started_from_opening:
            return
        if not store.mark_learned(game_id):
            return
        with model_lock:
            model.learn_from_game(game.played_moves(), outcome.winner)

    def engine_for(game: Game, req: SearchRequest):
        cfg = base_config
        if req.movetime_ms is not None:
            cfg = replace(cfg, movetime_ms=req.movetime_ms)
        return create_engine(
            req.strategy,
            Difficulty(req.difficulty),
            game.side_to_move,
            config=cfg,
            keys=keys,
            markov_model=model,
        )

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/games", response_model=CreateGameResponse)
    async def create_game() -> CreateGameResponse:
        game_id = store.create(Game.new())
        game = _require_game(store, game_id)
        return CreateGameResponse(game_id=game_id, position=game.to_text())

    @app.get("/api/games/{game_id}/state", response_model=GameState)
    async def get_state(game_id: str) -> GameState:
        return _game_state(game_id, _require_game(store, game_id))

    @app.post("/api/games/{game_id}/position", response_model=GameState)
    async def set_position(game_id: str, req: SetPositionRequest) -> GameState:
        _require_game(store, game_id)
        try:
            store.set(game_id, Game.from_text(req.position))
        except ValueError:
            raise HTTPException(status_code=400, detail="invalid position")
        return _game_state(game_id, _require_game(store, game_id))

    @app.post("/api/games/{game_id}/move", response_model=GameState)
    async def make_move(game_id: str, req: MoveRequest) -> GameState:
        game = _require_game(store, game_id)
        _require_running(game)
        try:
            from_node, to_node = parse_move(req.move)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        try:
            game.apply_move(Move(from_node, to_node))
        except ValueError:
            raise IllegalMoveError(f"illegal move: {req.move}")
        learn_if_finished(game_id, game)
        return _game_state(game_id, game)

    @app.post("/api/games/{game_id}/end-turn", response_model=GameState)
    async def end_turn(game_id: str) -> GameState:
        game = _require_game(store, game_id)
        try:
            game.end_turn()
        except ValueError as e:
            raise NoChainError(str(e))
        learn_if_finished(game_id, game)
        return _game_state(game_id, game)

    @app.post("/api/games/{game_id}/undo", response_model=GameState)
    async def undo(game_id: str) -> GameState:
        game = _require_game(store, game_id)
        try:
            game.undo_move()
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _game_state(game_id, game)

    @app.post("/api/games/{game_id}/search", response_model=SearchResponse)
    async def search(game_id: str, req: SearchRequest) -> SearchResponse:
        game = _require_game(store, game_id)
        engine = engine_for(game, req)
        try:
            best = engine.find_best_move(game.board, game.chain)
            res = engine.last_result
        finally:
            destroy_engine(engine)
        return SearchResponse(
            best_move=best.to_str() if best.is_valid else None,
            strategy=res.strategy if res is not None else req.strategy.value,
            score=res.score if res is not None else None,
            nodes=res.nodes if res is not None else 0,
            depth=res.depth if res is not None else 0,
            time_ms=res.time_ms if res is not None else 0,
            timed_out=res.timed_out if res is not None else False,
        )

    @app.post("/api/games/{game_id}/ai-turn", response_model=AiTurnResponse)
    async def ai_turn(game_id: str, req: SearchRequest) -> AiTurnResponse:
        game = _require_game(store, game_id)
        _require_running(game)
        side = game.side_to_move
        engine = engine_for(game, req)
        played: List[str] = []
        try:
            # One step per iteration; capture chains keep the same side to move
            for _ in range(MAX_TURN_STEPS):
                move = engine.find_best_move(game.board, game.chain)
                if not move.is_valid:
                    if game.chain.active:
                        game.end_turn()
                    break
                game.apply_move(move)
                played.append(move.to_str())
                if game.side_to_move != side:
                    break
        finally:
            destroy_engine(engine)
        learn_if_finished(game_id, game)
        return AiTurnResponse(moves=played, state=_game_state(game_id, game))

    @app.post("/api/perft")
    async def perft(req: PerftRequest) -> Dict[str, Any]:
        try:
            game = Game.from_text(req.position)
        except ValueError:
            raise HTTPException(status_code=400, detail="invalid position")
        nodes = perft_nodes(game.board, game.side_to_move, req.depth)
        return {"nodes": nodes}

    return app


def _require_game(store: InMemorySessionStore, game_id: str) -> Game:
    game = store.get(game_id)
    if game is None:
        raise HTTPException(status_code=404, detail="game not found")
    return game


def _require_running(game: Game) -> None:
    if game.outcome().finished:
        raise GameOverError("game is over")


# Default app for non-factory servers
app = create_app()
