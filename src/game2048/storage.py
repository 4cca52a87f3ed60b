# storage.py
# Game session stores. The service only needs get/put; which backend is used
# is decided by configuration.

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol, Tuple
import logging
import re
import threading

from pydantic import ValidationError

from .config import Settings
from .core import GameState
from .errors import ConfigurationError, GameNotFoundError, StorageError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_SAFE_ID = re.compile(r"[A-Za-z0-9_-]+")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GameStore(Protocol):
    """Load game state by identifier / save game state."""

    def get(self, game_id: str) -> GameState:
        ...

    def put(self, state: GameState) -> None:
        ...


class InMemoryGameStore:
    """
    Keeps sessions in a dict. Each session expires ttl_seconds after it was
    last saved; pass ttl_seconds=None to keep sessions forever.
    """

    def __init__(self, ttl_seconds: Optional[int] = 3600, clock: Optional[Clock] = None):
        self.ttl_seconds = ttl_seconds
        self._clock = clock or utcnow
        self._games: Dict[str, Tuple[GameState, Optional[datetime]]] = {}
        self._lock = threading.Lock()

    def get(self, game_id: str) -> GameState:
        with self._lock:
            item = self._games.get(game_id)
            if item is None:
                raise GameNotFoundError(game_id)
            state, expires_at = item
            if expires_at is not None and self._clock() >= expires_at:
                del self._games[game_id]
                logger.info("Game session %s expired", game_id)
                raise GameNotFoundError(game_id)
            return state.model_copy(deep=True)

    def put(self, state: GameState) -> None:
        now = self._clock()
        expires_at = None
        if self.ttl_seconds is not None:
            expires_at = now + timedelta(seconds=self.ttl_seconds)
        with self._lock:
            self._purge_expired(now)
            self._games[state.id] = (state.model_copy(deep=True), expires_at)

    def _purge_expired(self, now: datetime) -> None:
        # caller holds self._lock
        expired = [game_id for game_id, (_, expires_at) in self._games.items()
                   if expires_at is not None and now >= expires_at]
        for game_id in expired:
            del self._games[game_id]
        if expired:
            logger.info("Removed %d expired game sessions", len(expired))

    def __len__(self) -> int:
        with self._lock:
            return len(self._games)


class JsonFileGameStore:
    """Stores each session as <directory>/<id>.json in its wire format."""

    def __init__(self, directory):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, game_id: str) -> Optional[Path]:
        if not _SAFE_ID.fullmatch(game_id):
            return None
        return self.directory / f"{game_id}.json"

    def get(self, game_id: str) -> GameState:
        path = self._path(game_id)
        if path is None or not path.exists():
            raise GameNotFoundError(game_id)
        try:
            return GameState.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.error("Failed to load game session %s from %s: %s", game_id, path, e)
            raise StorageError(f"failed to load game session {game_id}") from e

    def put(self, state: GameState) -> None:
        path = self._path(state.id)
        if path is None:
            raise StorageError(f"game id not usable as a file name: {state.id!r}")
        tmp_path = path.with_suffix(".json.tmp")
        try:
            tmp_path.write_text(state.model_dump_json(by_alias=True), encoding="utf-8")
            tmp_path.replace(path)
        except OSError as e:
            logger.error("Failed to save game session %s to %s: %s", state.id, path, e)
            raise StorageError(f"failed to save game session {state.id}") from e
        logger.debug("Game session saved: %s", state.id)


def build_store(settings: Settings) -> GameStore:
    """Creates the session store selected by settings.storage_backend."""
    if settings.storage_backend == "memory":
        logger.info("Using in-memory game storage (ttl=%ss)", settings.session_ttl_seconds)
        return InMemoryGameStore(ttl_seconds=settings.session_ttl_seconds)
    if settings.storage_backend == "file":
        directory = Path(settings.data_dir) / "games"
        logger.info("Using file game storage in %s", directory)
        return JsonFileGameStore(directory)
    raise ConfigurationError(f"Unknown storage backend: {settings.storage_backend}")
