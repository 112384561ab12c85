from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional

from ...engine.game import Game


@dataclass
class GameSession:
    game: Game
    # Finished games are fed to the Markov model once
    learned: bool = False


class InMemorySessionStore:
    """Thread-safe in-memory game session store.

    Responsibilities:
    - Create new sessions with unique `game_id`s
    - Retrieve existing sessions (or just their games) by `game_id`
    - Replace a session's game, resetting its learned flag
    - Delete sessions
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._sessions: Dict[str, GameSession] = {}

    def create(self, game: Optional[Game] = None) -> str:
        """Create a new game session and return its `game_id`."""
        gid = str(uuid.uuid4())
        if game is None:
            game = Game.new()
        with self._lock:
            self._sessions[gid] = GameSession(game=game)
        return gid

    def session(self, game_id: str) -> Optional[GameSession]:
        with self._lock:
            return self._sessions.get(game_id)

    def get(self, game_id: str) -> Optional[Game]:
        sess = self.session(game_id)
        return sess.game if sess is not None else None

    def set(self, game_id: str, game: Game) -> None:
        with self._lock:
            if game_id not in self._sessions:
                raise KeyError(game_id)
            self._sessions[game_id] = GameSession(game=game)

    def mark_learned(self, game_id: str) -> bool:
        """Flag a session as learned; False if it already was (or is unknown)."""
        with self._lock:
            sess = self._sessions.get(game_id)
            if sess is None or sess.learned:
                return False
            sess.learned = True
            return True

    def delete(self, game_id: str) -> None:
        with self._lock:
            self._sessions.pop(game_id, None)

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
