# service.py
# Sequences board engine calls for "new game" and "move" requests and
# persists the results through an injected store.

from datetime import datetime, timezone
from typing import Callable, Optional, Union
import logging
import random
import threading
import uuid
import weakref

from . import core
from .core import DIRECTION, GameState
from .errors import GameOverError, InvalidDirectionError
from .storage import GameStore

logger = logging.getLogger(__name__)


def parse_direction(direction: Union[DIRECTION, str]) -> DIRECTION:
    """
    Converts "up", "down", "left" or "right" (case-sensitive) to a DIRECTION.
    Raises:
        InvalidDirectionError: For any other value.
    """
    try:
        return DIRECTION(direction)
    except ValueError:
        raise InvalidDirectionError(f"Invalid direction: {direction!r}") from None


class GameService:
    """
    Creates games and applies moves to them. Moves on the same game id are
    serialized so two concurrent requests never both persist a result
    computed from the same starting state.
    """

    def __init__(self, store: GameStore, rng: Optional[random.Random] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 id_factory: Optional[Callable[[], str]] = None):
        self.store = store
        self.rng = rng or random.Random()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)
        # an entry lives only while some caller holds a reference to its lock
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def _lock_for(self, game_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(game_id)
            if lock is None:
                lock = self._locks[game_id] = threading.Lock()
            return lock

    def new_game(self) -> GameState:
        state = core.new_game(self._id_factory(), rng=self.rng, created_at=self._clock())
        self.store.put(state)
        logger.info("New game created: %s", state.id)
        return state

    def get_state(self, game_id: str) -> GameState:
        return self.store.get(game_id)

    def move(self, game_id: str, direction: Union[DIRECTION, str]) -> GameState:
        """
        Applies one move and saves the game, whether or not the board changed.
        Args:
            game_id (str): The game to move in.
            direction (DIRECTION | str): One of up/down/left/right.
        Returns:
            GameState: The game after the move.
        Raises:
            InvalidDirectionError: If direction is not a valid direction.
            GameNotFoundError: If no game exists for game_id.
            GameOverError: If the game has already ended.
        """
        direction = parse_direction(direction)
        with self._lock_for(game_id):
            state = self.store.get(game_id)
            if state.game_over:
                raise GameOverError(game_id)

            moved = core.apply_move(state, direction)
            if moved:
                core.spawn_tile(state, self.rng)
                core.check_win(state)
                if not core.can_move(state):
                    state.game_over = True

            self.store.put(state)

        if moved:
            logger.info("Move applied for game %s: %s (Score: %d)", game_id, direction.value, state.score)
            if state.game_over:
                logger.info("Game over: %s (Score: %d)", game_id, state.score)
        else:
            logger.debug("Move %s did not change game %s", direction.value, game_id)
        return state
