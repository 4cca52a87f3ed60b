# errors.py
# Exceptions raised by the service, storage and configuration layers.
# The board engine in core.py never raises any of these.


class GameError(Exception):
    """Base class for all game service errors."""


class GameNotFoundError(GameError):
    """Raised when no game session exists for the requested id."""

    def __init__(self, game_id: str):
        super().__init__(f"Game not found: {game_id}")
        self.game_id = game_id


class GameOverError(GameError):
    """Raised when a move is requested on a game that has already ended."""

    def __init__(self, game_id: str):
        super().__init__(f"Game over: {game_id}")
        self.game_id = game_id


class InvalidDirectionError(GameError, ValueError):
    """Raised when a move direction is not one of up/down/left/right."""


class StorageError(GameError):
    """Raised when a storage backend cannot read or write its data."""


class ConfigurationError(GameError, ValueError):
    """Raised when settings are missing or malformed."""
